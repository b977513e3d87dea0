"""
Coherence check between a listing's declared category and its text.
Low-weight signal: it lowers confidence but never invalidates a product.
"""

import unicodedata
from typing import Dict, List, Optional

from ..models.moderation import CoherenceCheck

# Vocabulary suggesting a product type
PRODUCT_KEYWORDS: Dict[str, List[str]] = {
    "tech": ["smartphone", "ordinateur", "téléphone", "laptop", "écran", "clavier", "tablette", "iphone"],
    "food": ["manger", "boire", "aliment", "restaurant", "cuisine", "épice"],
    "clothing": ["vêtement", "robe", "chemise", "pantalon", "chaussure", "t-shirt", "veste"],
    "book": ["livre", "roman", "lecture", "auteur", "page"],
    "beauty": ["parfum", "crème", "maquillage", "shampoing", "rouge à lèvres"],
    "home": ["canapé", "meuble", "lampe", "cuisine", "décoration", "table basse"],
}

# Declared (storefront) category -> product type
DECLARED_CATEGORIES: Dict[str, str] = {
    "electronique": "tech",
    "vetements": "clothing",
    "alimentation": "food",
    "livres": "book",
    "beaute": "beauty",
    "maison": "home",
}

INCOHERENT_CONFIDENCE = 0.8
DEFAULT_CONFIDENCE = 0.8


def _fold(value: str) -> str:
    """Lower-case and strip accents ("Électronique" -> "electronique")."""
    normalized = unicodedata.normalize("NFKD", value.strip().lower())
    return "".join(c for c in normalized if not unicodedata.combining(c))


class CoherenceChecker:
    """Compare the declared category with the vocabulary found in the text."""

    def __init__(
        self,
        product_keywords: Optional[Dict[str, List[str]]] = None,
        declared_categories: Optional[Dict[str, str]] = None,
    ):
        self.product_keywords = product_keywords or PRODUCT_KEYWORDS
        self.declared_categories = {
            _fold(k): v for k, v in (declared_categories or DECLARED_CATEGORIES).items()
        }

    def detect_categories(self, text: str) -> List[str]:
        text_lower = (text or "").lower()
        return [
            category
            for category, keywords in self.product_keywords.items()
            if any(keyword in text_lower for keyword in keywords)
        ]

    def check(self, text: str, declared_category: Optional[str] = None) -> CoherenceCheck:
        """
        Check coherence.

        Indeterminate cases (no declared category, unknown category, or no
        recognizable vocabulary) are coherent.
        """
        detected = self.detect_categories(text)
        expected = self.declared_categories.get(_fold(declared_category)) if declared_category else None

        if expected is None or not detected or expected in detected:
            return CoherenceCheck(
                is_coherent=True,
                confidence=DEFAULT_CONFIDENCE,
                detected_categories=detected,
                declared_category=declared_category,
            )

        return CoherenceCheck(
            is_coherent=False,
            confidence=INCOHERENT_CONFIDENCE,
            detected_categories=detected,
            declared_category=declared_category,
            note=(
                f"Description does not match declared category '{declared_category}' "
                f"(looks like: {', '.join(detected)})"
            ),
        )
