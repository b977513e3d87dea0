"""
Keyword policy for product text.
Fast local filter over forbidden terms, always available.
"""

from typing import Dict, List, Optional

from ..models.moderation import KeywordEvaluation, KeywordMatch


class KeywordPolicy:
    """Check product text for forbidden terms, grouped by category."""

    # Forbidden terms per category (matched as lower-case substrings)
    FORBIDDEN_KEYWORDS: Dict[str, List[str]] = {
        "sexual": ["sexe", "porn", "xxx", "nude", "nu", "erotique", "coquin", "chaud", "hot"],
        "violent": ["tuer", "mort", "sang", "violence", "arme", "gun", "knife"],
        "discriminatory": ["raciste", "discrimination", "haine", "suprématie"],
        "drugs": ["drogue", "cocaine", "heroine", "weed", "cannabis"],
    }

    # Severity on a 0-10 scale
    SEVERITY_SCORES: Dict[str, int] = {
        "sexual": 10,
        "violent": 9,
        "discriminatory": 8,
        "drugs": 7,
    }
    DEFAULT_SEVERITY = 5

    def __init__(
        self,
        forbidden_keywords: Optional[Dict[str, List[str]]] = None,
        severity_scores: Optional[Dict[str, int]] = None,
    ):
        keywords = forbidden_keywords if forbidden_keywords is not None else self.FORBIDDEN_KEYWORDS
        self.forbidden_keywords = {
            category: [term.lower() for term in terms] for category, terms in keywords.items()
        }
        self.severity_scores = dict(
            severity_scores if severity_scores is not None else self.SEVERITY_SCORES
        )

    def severity(self, category: str) -> int:
        return self.severity_scores.get(category, self.DEFAULT_SEVERITY)

    def evaluate(self, text: str) -> KeywordEvaluation:
        """
        Evaluate text against the forbidden terms.

        Every matched category is reported; only the most severe one lowers
        the confidence: confidence = 1 - max_severity / 10.
        """
        text_lower = (text or "").lower()
        matches: List[KeywordMatch] = []
        max_severity = 0

        for category, terms in self.forbidden_keywords.items():
            found = [term for term in terms if term in text_lower]
            if found:
                severity = self.severity(category)
                matches.append(KeywordMatch(category=category, matched_terms=found, severity=severity))
                max_severity = max(max_severity, severity)

        if not matches:
            return KeywordEvaluation(flagged=False, categories=[], confidence=1.0)

        return KeywordEvaluation(
            flagged=True,
            categories=matches,
            confidence=max(0.0, round(1.0 - max_severity / 10, 4)),
        )
