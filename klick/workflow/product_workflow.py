"""
Product Workflow
Lifecycle state machine for product listings.

States (human-authoritative): pending -> approved | rejected, and an explicit
reopen of rejected -> pending. The AI verdict is advisory: it gates approval
behind an explicit override when negative, but never approves or rejects a
product by itself.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

from ..config import ModerationSettings, get_settings
from ..db.repository import ProductRepository
from ..errors import ConflictingTransition, InvalidReason, RequiresOverride
from ..models.product import AIValidationStatus, HumanStatus, ProductListing, ProductSubmission
from ..moderation import ai_state
from ..moderation.ai_state import AIValidationFields
from ..moderation.orchestrator import ModerationOrchestrator
from .notifications import NotificationEvent, NotificationKind, NotificationSink

logger = logging.getLogger(__name__)

AWAITING_MANUAL_REVIEW = "awaiting manual review"

# Schedules a validation pass for a product id (background task, Celery, ...).
# Awaitable results are tracked like background validations.
ValidationScheduler = Callable[[str], Any]


@dataclass
class TransitionOutcome:
    """Result of an admin action."""

    product: ProductListing
    changed: bool
    note: Optional[str] = None


class ProductWorkflow:
    """
    Product moderation workflow.

    Entry points:
    - submit: seller submission (creates the product, schedules validation)
    - run_validation: one automatic validation pass
    - approve / reject / reopen: admin actions, serialized per product by a
      compare-and-set on human_status
    - pending_queue / attention_queue: admin review queues
    """

    def __init__(
        self,
        repository: ProductRepository,
        orchestrator: ModerationOrchestrator,
        notifier: NotificationSink,
        settings: Optional[ModerationSettings] = None,
        scheduler: Optional[ValidationScheduler] = None,
    ):
        """
        Initialize workflow.

        Args:
            repository: Product persistence
            orchestrator: Moderation orchestrator
            notifier: Sink for notification events
            settings: Moderation settings
            scheduler: Custom validation scheduler; defaults to the one
                selected by settings.validation_mode
        """
        self.repository = repository
        self.orchestrator = orchestrator
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.scheduler = scheduler

        self._tasks: Set[asyncio.Task] = set()

    # Seller side

    async def submit(self, submission: ProductSubmission) -> ProductListing:
        """
        Create a product in pending state and start its automatic validation.

        Returns the product as created (validation runs in the background
        unless validation_mode is 'inline').
        """
        product = await self.repository.create(ProductListing.from_submission(submission))
        logger.info(
            f"Product submitted: {product.id}",
            extra={"product_id": product.id, "seller_id": product.seller_id},
        )

        for admin_id in self.settings.admin_recipients:
            await self._notify(
                NotificationEvent.build(
                    NotificationKind.PRODUCT_SUBMITTED,
                    recipient_id=admin_id,
                    message=f"New product '{product.title}' is awaiting review",
                    data={"product_id": product.id, "seller_id": product.seller_id},
                )
            )

        if self.settings.validation_mode == "inline" and self.scheduler is None:
            await self.run_validation(product.id)
            return await self.repository.get(product.id)

        self.schedule_validation(product.id)
        return product

    async def revalidate(self, product_id: str) -> ProductListing:
        """Schedule a new validation pass (e.g. after the seller edited the listing)."""
        product = await self.repository.get(product_id)
        if self.settings.validation_mode == "inline" and self.scheduler is None:
            await self.run_validation(product_id)
            return await self.repository.get(product_id)
        self.schedule_validation(product_id)
        return product

    def schedule_validation(self, product_id: str) -> Any:
        """Start a validation pass without waiting for it."""
        if self.scheduler is not None:
            scheduled = self.scheduler(product_id)
            if not inspect.isawaitable(scheduled):
                return scheduled
            task = asyncio.ensure_future(scheduled)
        else:
            task = asyncio.create_task(self._validation_task(product_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _validation_task(self, product_id: str) -> None:
        try:
            await self.run_validation(product_id)
        except Exception as e:
            logger.error(f"Background validation failed for {product_id}: {e}", exc_info=True)

    @property
    def pending_validations(self) -> int:
        return len(self._tasks)

    async def wait_for_validations(self) -> None:
        """Wait until every scheduled background validation has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def run_validation(self, product_id: str) -> AIValidationFields:
        """
        Run one automatic validation pass and store the AI fields.

        Passes for the same product may overlap; each writes its own result
        once, so the last one to complete wins.
        """
        product = await self.repository.get(product_id)
        result = await self.orchestrator.validate_product(product)
        fields = ai_state.apply(product, result)

        changes = fields.as_changes()
        changes["ai_validated_at"] = datetime.utcnow()
        updated = await self.repository.update_ai_fields(product_id, changes)

        logger.info(
            f"AI validation stored for {product_id}: {fields.status.value}",
            extra={
                "product_id": product_id,
                "ai_status": fields.status.value,
                "confidence": fields.confidence,
            },
        )

        if fields.status in (AIValidationStatus.REJECTED, AIValidationStatus.ERROR):
            for admin_id in self.settings.admin_recipients:
                await self._notify(
                    NotificationEvent.build(
                        NotificationKind.PRODUCT_FLAGGED,
                        recipient_id=admin_id,
                        message=(
                            f"Automatic validation of '{updated.title}' returned "
                            f"{fields.status.value}: {fields.reason or 'no reason given'}"
                        ),
                        data={
                            "product_id": product_id,
                            "ai_status": fields.status.value,
                            "confidence": fields.confidence,
                            "categories": list(fields.flagged_categories),
                        },
                    )
                )
        return fields

    # Admin side

    async def get(self, product_id: str) -> ProductListing:
        return await self.repository.get(product_id)

    async def approve(self, product_id: str, admin_id: str, override: bool = False) -> TransitionOutcome:
        """
        Approve a pending product.

        Raises:
            ConflictingTransition: product already reviewed
            RequiresOverride: AI rejected the product and override is False
        """
        product = await self.repository.get(product_id)
        self._ensure_pending(product, "approve")

        ai_status = product.ai_validation_status
        if ai_status == AIValidationStatus.REJECTED and not override:
            raise RequiresOverride(product_id, product.ai_validation_reason)

        if ai_status != AIValidationStatus.APPROVED and not override:
            # AI still pending or errored: stays in the queue for manual review
            updated = await self._transition(
                product, "approve", {"review_note": AWAITING_MANUAL_REVIEW}
            )
            logger.info(
                f"Approval of {product_id} deferred: AI status is "
                f"{ai_status.value if ai_status else 'absent'}",
                extra={"product_id": product_id, "admin_id": admin_id},
            )
            return TransitionOutcome(product=updated, changed=False, note=AWAITING_MANUAL_REVIEW)

        now = datetime.utcnow()
        updated = await self._transition(
            product,
            "approve",
            {
                "human_status": HumanStatus.APPROVED,
                "validated_by": admin_id,
                "validated_at": now,
                "rejection_reason": None,
                "review_note": None,
                "approved_with_override": override and ai_status != AIValidationStatus.APPROVED,
            },
        )
        logger.info(
            f"Product approved: {product_id}",
            extra={"product_id": product_id, "admin_id": admin_id, "override": override},
        )

        await self._notify(
            NotificationEvent.build(
                NotificationKind.PRODUCT_APPROVED,
                recipient_id=updated.seller_id,
                message=f"Your product '{updated.title}' has been approved by an administrator",
                data={"product_id": product_id, "validated_by": admin_id},
            )
        )
        return TransitionOutcome(product=updated, changed=True)

    async def reject(self, product_id: str, admin_id: str, reason: str) -> TransitionOutcome:
        """
        Reject a pending product.

        Raises:
            InvalidReason: reason shorter than min_rejection_reason_length
            ConflictingTransition: product already reviewed
        """
        min_length = self.settings.min_rejection_reason_length
        cleaned = (reason or "").strip()
        if len(cleaned) < min_length:
            raise InvalidReason(min_length, reason)

        product = await self.repository.get(product_id)
        self._ensure_pending(product, "reject")

        updated = await self._transition(
            product,
            "reject",
            {
                "human_status": HumanStatus.REJECTED,
                "rejection_reason": cleaned,
                "validated_by": admin_id,
                "validated_at": datetime.utcnow(),
                "review_note": None,
                "approved_with_override": False,
            },
        )
        logger.info(
            f"Product rejected: {product_id}",
            extra={"product_id": product_id, "admin_id": admin_id},
        )

        await self._notify(
            NotificationEvent.build(
                NotificationKind.PRODUCT_REJECTED,
                recipient_id=updated.seller_id,
                message=f"Your product '{updated.title}' has been rejected: {cleaned}",
                data={"product_id": product_id, "reason": cleaned, "validated_by": admin_id},
            )
        )
        return TransitionOutcome(product=updated, changed=True)

    async def reopen(
        self, product_id: str, admin_id: str, note: Optional[str] = None
    ) -> TransitionOutcome:
        """
        Send a rejected product back to pending for another review.

        Raises:
            ConflictingTransition: product is not rejected
        """
        product = await self.repository.get(product_id)
        if product.human_status != HumanStatus.REJECTED:
            raise ConflictingTransition(product_id, product.human_status.value, "reopen")

        review_note = note or f"reopened by {admin_id}"
        updated = await self.repository.transition(
            product_id,
            HumanStatus.REJECTED,
            {
                "human_status": HumanStatus.PENDING,
                "rejection_reason": None,
                "validated_by": None,
                "validated_at": None,
                "review_note": review_note,
            },
        )
        if updated is None:
            current = await self.repository.get(product_id)
            raise ConflictingTransition(product_id, current.human_status.value, "reopen")

        logger.info(
            f"Product reopened: {product_id}",
            extra={"product_id": product_id, "admin_id": admin_id},
        )
        await self._notify(
            NotificationEvent.build(
                NotificationKind.PRODUCT_REOPENED,
                recipient_id=updated.seller_id,
                message=f"Your product '{updated.title}' is back under review",
                data={"product_id": product_id, "reopened_by": admin_id, "note": review_note},
            )
        )
        return TransitionOutcome(product=updated, changed=True, note=review_note)

    async def pending_queue(self) -> List[ProductListing]:
        """Pending products, newest first."""
        products = await self.repository.list_by_status(HumanStatus.PENDING)
        return sorted(products, key=lambda p: p.created_at, reverse=True)

    async def attention_queue(self) -> List[ProductListing]:
        """Pending products the AI rejected, failed on, or never analyzed."""
        return [p for p in await self.pending_queue() if p.needs_admin_attention]

    # Helpers

    @staticmethod
    def _ensure_pending(product: ProductListing, action: str) -> None:
        if product.human_status != HumanStatus.PENDING:
            raise ConflictingTransition(product.id, product.human_status.value, action)

    async def _transition(
        self, product: ProductListing, action: str, changes: Dict[str, Any]
    ) -> ProductListing:
        updated = await self.repository.transition(product.id, HumanStatus.PENDING, changes)
        if updated is None:
            current = await self.repository.get(product.id)
            raise ConflictingTransition(product.id, current.human_status.value, action)
        return updated

    async def _notify(self, event: NotificationEvent) -> None:
        try:
            await self.notifier.publish(event)
        except Exception as e:
            # The transition is already committed; delivery is the dispatcher's concern
            logger.error(
                f"Failed to publish {event.kind.value} notification to {event.recipient_id}: {e}",
                exc_info=True,
            )
