"""
Product Repository
Persistence boundary for product listings.

Products are returned by value: callers get a fresh copy on every read and
never share a mutable instance.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..errors import ProductNotFound
from ..models.product import HumanStatus, ProductListing

logger = logging.getLogger(__name__)


class ProductRepository(ABC):
    """Record store for product listings (create/read/update by id)."""

    @abstractmethod
    async def create(self, product: ProductListing) -> ProductListing:
        """Store a new product."""

    @abstractmethod
    async def get(self, product_id: str) -> ProductListing:
        """Read a product; raises ProductNotFound."""

    @abstractmethod
    async def update_ai_fields(self, product_id: str, changes: Dict[str, Any]) -> ProductListing:
        """Overwrite the AI validation fields (last write wins)."""

    @abstractmethod
    async def transition(
        self, product_id: str, expected_status: HumanStatus, changes: Dict[str, Any]
    ) -> Optional[ProductListing]:
        """
        Compare-and-set on human_status.

        Applies the changes only if the stored human_status still equals
        expected_status. Returns the updated product, or None if another
        transition got there first.
        """

    @abstractmethod
    async def list_by_status(self, status: HumanStatus) -> List[ProductListing]:
        """All products with the given human status."""


AI_FIELDS = frozenset(
    {
        "ai_validation_status",
        "ai_validation_confidence",
        "ai_flagged_categories",
        "ai_validation_reason",
        "ai_validated_at",
    }
)


def check_ai_changes(changes: Dict[str, Any]) -> None:
    unknown = set(changes) - AI_FIELDS
    if unknown:
        raise ValueError(f"Not AI validation fields: {sorted(unknown)}")


class InMemoryProductRepository(ProductRepository):
    """
    Dict-backed repository.

    Each method runs without suspension points between its read and its
    write, which makes the compare-and-set atomic under asyncio.
    """

    def __init__(self):
        self._products: Dict[str, ProductListing] = {}

    async def create(self, product: ProductListing) -> ProductListing:
        if product.id in self._products:
            raise ValueError(f"Product already exists: {product.id}")
        self._products[product.id] = product.model_copy(deep=True)
        return product.model_copy(deep=True)

    async def get(self, product_id: str) -> ProductListing:
        product = self._products.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product.model_copy(deep=True)

    async def update_ai_fields(self, product_id: str, changes: Dict[str, Any]) -> ProductListing:
        check_ai_changes(changes)
        current = self._products.get(product_id)
        if current is None:
            raise ProductNotFound(product_id)
        updated = current.with_changes(**changes)
        self._products[product_id] = updated
        return updated.model_copy(deep=True)

    async def transition(
        self, product_id: str, expected_status: HumanStatus, changes: Dict[str, Any]
    ) -> Optional[ProductListing]:
        current = self._products.get(product_id)
        if current is None:
            raise ProductNotFound(product_id)
        if current.human_status != expected_status:
            logger.debug(
                f"Compare-and-set failed for {product_id}: "
                f"expected {expected_status.value}, found {current.human_status.value}"
            )
            return None
        updated = current.with_changes(**changes)
        self._products[product_id] = updated
        return updated.model_copy(deep=True)

    async def list_by_status(self, status: HumanStatus) -> List[ProductListing]:
        return [
            p.model_copy(deep=True) for p in self._products.values() if p.human_status == status
        ]
