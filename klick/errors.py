"""
Errors
Exception taxonomy for moderation providers and the product workflow.
"""

from typing import Optional


class KlickError(Exception):
    """Base exception for moderation and workflow errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ProviderUnavailable(KlickError):
    """
    A remote moderation provider could not give a verdict.

    Raised on network errors, timeouts, error statuses and malformed payloads.
    The orchestrator recovers from it; it never reaches the workflow.
    """

    def __init__(self, provider: str, message: str, details: Optional[dict] = None):
        self.provider = provider
        super().__init__(
            message=f"{provider}: {message}", details={"provider": provider, **(details or {})}
        )


class WorkflowError(KlickError):
    """Base exception for product workflow failures surfaced to callers."""


class RequiresOverride(WorkflowError):
    """Approval refused because the AI verdict is negative and no override was given."""

    def __init__(self, product_id: str, reason: Optional[str] = None):
        super().__init__(
            message=f"Product {product_id} was rejected by automatic validation; "
            "approval requires an explicit override",
            details={"product_id": product_id, "ai_reason": reason},
        )


class InvalidReason(WorkflowError):
    """Rejection reason missing or too short."""

    def __init__(self, min_length: int, reason: Optional[str] = None):
        super().__init__(
            message=f"Rejection reason must be at least {min_length} characters",
            details={"field": "reason", "min_length": min_length, "value": reason},
        )


class ConflictingTransition(WorkflowError):
    """The product was already reviewed (or is not in the required state)."""

    def __init__(self, product_id: str, current_status: str, action: str):
        super().__init__(
            message=f"Cannot {action} product {product_id}: it is already {current_status}",
            details={"product_id": product_id, "status": current_status, "action": action},
        )


class ProductNotFound(WorkflowError):
    """No product with the given id."""

    def __init__(self, product_id: str):
        super().__init__(
            message=f"Product not found: {product_id}", details={"product_id": product_id}
        )
