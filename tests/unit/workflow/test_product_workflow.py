"""
Tests for the product review workflow.
"""

import asyncio
import threading

import pytest

from klick.errors import ConflictingTransition, InvalidReason, ProductNotFound, RequiresOverride
from klick.models.product import AIValidationStatus, HumanStatus, ProductSubmission
from klick.workflow import (
    AWAITING_MANUAL_REVIEW,
    NotificationKind,
    NotificationSink,
    ProductWorkflow,
)
from klick.tasks.moderation import validate_product
from klick.workflow.factory import celery_scheduler


def run(coro):
    return asyncio.run(coro)


class FailingSink(NotificationSink):
    async def publish(self, event):
        raise ConnectionError("dispatcher down")


class TestSubmit:
    def test_submit_runs_validation_inline(self, workflow, notifier, clean_submission):
        product = run(workflow.submit(clean_submission))

        assert product.human_status == HumanStatus.PENDING
        assert product.ai_validation_status == AIValidationStatus.APPROVED
        assert product.ai_validation_confidence == 1.0
        assert product.ai_validated_at is not None
        assert product.is_visible is False
        assert [e.kind for e in notifier.events] == [NotificationKind.PRODUCT_SUBMITTED]
        assert notifier.events[0].recipient_id == "admin-1"

    def test_flagged_product_notifies_admins(self, workflow, notifier, violent_submission):
        product = run(workflow.submit(violent_submission))

        assert product.ai_validation_status == AIValidationStatus.REJECTED
        assert product.ai_flagged_categories == ["violent"]
        assert "violent" in product.ai_validation_reason
        flagged = notifier.of_kind(NotificationKind.PRODUCT_FLAGGED)
        assert len(flagged) == 1
        assert flagged[0].data["ai_status"] == "rejected"

    def test_background_validation_can_be_drained(
        self, repository, orchestrator, notifier, settings, clean_submission
    ):
        settings = settings.model_copy(update={"validation_mode": "background"})
        workflow = ProductWorkflow(repository, orchestrator, notifier, settings=settings)

        async def scenario():
            created = await workflow.submit(clean_submission)
            assert created.ai_validation_status == AIValidationStatus.PENDING
            await workflow.wait_for_validations()
            return await workflow.get(created.id)

        product = run(scenario())

        assert product.ai_validation_status == AIValidationStatus.APPROVED
        assert workflow.pending_validations == 0

    def test_custom_scheduler(self, repository, orchestrator, notifier, settings, clean_submission):
        scheduled = []
        workflow = ProductWorkflow(
            repository, orchestrator, notifier, settings=settings, scheduler=scheduled.append
        )

        product = run(workflow.submit(clean_submission))

        assert scheduled == [product.id]
        assert product.ai_validation_status == AIValidationStatus.PENDING

    def test_celery_scheduler_queues_off_the_event_loop(
        self, monkeypatch, repository, orchestrator, notifier, settings, clean_submission
    ):
        queued = []

        def delay(product_id):
            queued.append((product_id, threading.get_ident()))

        monkeypatch.setattr(validate_product, "delay", delay)
        workflow = ProductWorkflow(
            repository, orchestrator, notifier, settings=settings, scheduler=celery_scheduler
        )

        async def scenario():
            product = await workflow.submit(clean_submission)
            assert workflow.pending_validations == 1
            await workflow.wait_for_validations()
            return product, threading.get_ident()

        product, loop_thread = run(scenario())

        assert [product_id for product_id, _ in queued] == [product.id]
        assert queued[0][1] != loop_thread
        assert workflow.pending_validations == 0
        assert product.ai_validation_status == AIValidationStatus.PENDING


class TestApprove:
    def test_approve_after_ai_approval(self, workflow, notifier, clean_submission):
        async def scenario():
            product = await workflow.submit(clean_submission)
            return await workflow.approve(product.id, "admin-1")

        outcome = run(scenario())

        assert outcome.changed is True
        assert outcome.product.human_status == HumanStatus.APPROVED
        assert outcome.product.validated_by == "admin-1"
        assert outcome.product.validated_at is not None
        assert outcome.product.approved_with_override is False
        assert outcome.product.is_visible is True
        approved = notifier.of_kind(NotificationKind.PRODUCT_APPROVED)
        assert [e.recipient_id for e in approved] == ["seller-1"]

    def test_ai_rejection_requires_override(self, workflow, notifier, violent_submission):
        async def scenario():
            product = await workflow.submit(violent_submission)
            with pytest.raises(RequiresOverride):
                await workflow.approve(product.id, "admin-1")
            unchanged = await workflow.get(product.id)
            assert unchanged.human_status == HumanStatus.PENDING
            return await workflow.approve(product.id, "admin-1", override=True)

        outcome = run(scenario())

        assert outcome.product.human_status == HumanStatus.APPROVED
        assert outcome.product.approved_with_override is True
        assert len(notifier.of_kind(NotificationKind.PRODUCT_APPROVED)) == 1

    def test_pending_ai_defers_approval(
        self, repository, orchestrator, notifier, settings, clean_submission
    ):
        workflow = ProductWorkflow(
            repository, orchestrator, notifier, settings=settings, scheduler=lambda product_id: None
        )

        async def scenario():
            product = await workflow.submit(clean_submission)
            return await workflow.approve(product.id, "admin-1")

        outcome = run(scenario())

        assert outcome.changed is False
        assert outcome.note == AWAITING_MANUAL_REVIEW
        assert outcome.product.human_status == HumanStatus.PENDING
        assert outcome.product.review_note == AWAITING_MANUAL_REVIEW
        assert notifier.of_kind(NotificationKind.PRODUCT_APPROVED) == []

    @pytest.mark.parametrize("ai_status", [AIValidationStatus.PENDING, AIValidationStatus.ERROR])
    def test_override_approves_without_ai_approval(
        self, repository, orchestrator, notifier, settings, clean_submission, ai_status
    ):
        workflow = ProductWorkflow(
            repository, orchestrator, notifier, settings=settings, scheduler=lambda product_id: None
        )

        async def scenario():
            product = await workflow.submit(clean_submission)
            if ai_status != AIValidationStatus.PENDING:
                await repository.update_ai_fields(product.id, {"ai_validation_status": ai_status})
            return await workflow.approve(product.id, "admin-1", override=True)

        outcome = run(scenario())

        assert outcome.changed is True
        assert outcome.product.human_status == HumanStatus.APPROVED
        assert outcome.product.approved_with_override is True
        assert len(notifier.of_kind(NotificationKind.PRODUCT_APPROVED)) == 1

    def test_second_approve_conflicts(self, workflow, clean_submission):
        async def scenario():
            product = await workflow.submit(clean_submission)
            await workflow.approve(product.id, "admin-1")
            await workflow.approve(product.id, "admin-2")

        with pytest.raises(ConflictingTransition):
            run(scenario())


class TestReject:
    def test_reject_then_second_reject_conflicts(self, workflow, notifier, violent_submission):
        async def scenario():
            product = await workflow.submit(violent_submission)
            outcome = await workflow.reject(product.id, "admin-1", "contenu non conforme")
            with pytest.raises(ConflictingTransition):
                await workflow.reject(product.id, "admin-2", "contenu non conforme")
            return outcome

        outcome = run(scenario())

        assert outcome.product.human_status == HumanStatus.REJECTED
        assert outcome.product.rejection_reason == "contenu non conforme"
        rejected = notifier.of_kind(NotificationKind.PRODUCT_REJECTED)
        assert len(rejected) == 1
        assert rejected[0].recipient_id == "seller-2"
        assert rejected[0].data["reason"] == "contenu non conforme"

    @pytest.mark.parametrize("reason", ["", "   ", "nope", "  ab  "])
    def test_short_reason_is_refused(self, workflow, clean_submission, reason):
        async def scenario():
            product = await workflow.submit(clean_submission)
            with pytest.raises(InvalidReason):
                await workflow.reject(product.id, "admin-1", reason)
            return await workflow.get(product.id)

        assert run(scenario()).human_status == HumanStatus.PENDING

    def test_reject_after_approve_conflicts(self, workflow, clean_submission):
        async def scenario():
            product = await workflow.submit(clean_submission)
            await workflow.approve(product.id, "admin-1")
            await workflow.reject(product.id, "admin-2", "Photo non conforme")

        with pytest.raises(ConflictingTransition):
            run(scenario())

    def test_concurrent_decisions_have_one_winner(self, workflow, notifier, clean_submission):
        async def scenario():
            product = await workflow.submit(clean_submission)
            notifier.clear()
            return await asyncio.gather(
                workflow.approve(product.id, "admin-1"),
                workflow.reject(product.id, "admin-2", "Photo non conforme"),
                return_exceptions=True,
            )

        outcomes = run(scenario())

        conflicts = [o for o in outcomes if isinstance(o, ConflictingTransition)]
        assert len(conflicts) == 1
        assert len(notifier.events) == 1


class TestReopen:
    def test_reopen_rejected_product(self, workflow, notifier, violent_submission):
        async def scenario():
            product = await workflow.submit(violent_submission)
            await workflow.reject(product.id, "admin-1", "contenu non conforme")
            return await workflow.reopen(product.id, "admin-2", note="seller edited the text")

        outcome = run(scenario())

        product = outcome.product
        assert product.human_status == HumanStatus.PENDING
        assert product.rejection_reason is None
        assert product.validated_by is None
        assert product.review_note == "seller edited the text"
        assert len(notifier.of_kind(NotificationKind.PRODUCT_REOPENED)) == 1

    def test_reopen_requires_rejected(self, workflow, clean_submission):
        async def scenario():
            product = await workflow.submit(clean_submission)
            await workflow.reopen(product.id, "admin-1")

        with pytest.raises(ConflictingTransition):
            run(scenario())


class TestQueues:
    def test_pending_and_attention_queues(self, workflow, clean_submission, violent_submission):
        async def scenario():
            clean = await workflow.submit(clean_submission)
            flagged = await workflow.submit(violent_submission)
            third = await workflow.submit(
                ProductSubmission(seller_id="seller-3", title="Lampe", images=["https://cdn.test/l.jpg"])
            )
            await workflow.approve(third.id, "admin-1")
            return clean, flagged, await workflow.pending_queue(), await workflow.attention_queue()

        clean, flagged, pending, attention = run(scenario())

        assert [p.id for p in pending] == [flagged.id, clean.id]
        assert [p.id for p in attention] == [flagged.id]


class TestRevalidate:
    def test_revalidate_recomputes_ai_fields(self, workflow, repository, violent_submission):
        async def scenario():
            product = await workflow.submit(violent_submission)
            # Seller edits the description out of band
            await repository.transition(
                product.id, HumanStatus.PENDING, {"description": "T-shirt en coton bio"}
            )
            return await workflow.revalidate(product.id)

        product = run(scenario())

        assert product.ai_validation_status == AIValidationStatus.APPROVED
        assert product.ai_flagged_categories == []
        assert product.ai_validation_reason is None


def test_unknown_product(workflow):
    with pytest.raises(ProductNotFound):
        run(workflow.get("missing"))


def test_notification_failure_keeps_transition(repository, orchestrator, settings, clean_submission):
    workflow = ProductWorkflow(repository, orchestrator, FailingSink(), settings=settings)

    async def scenario():
        product = await workflow.submit(clean_submission)
        outcome = await workflow.approve(product.id, "admin-1")
        return outcome, await workflow.get(product.id)

    outcome, stored = run(scenario())

    assert outcome.changed is True
    assert stored.human_status == HumanStatus.APPROVED
