"""
Workflow Factory
Wires repository, orchestrator and notification sink from settings.
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..config import ModerationSettings, get_settings
from ..db.repository import InMemoryProductRepository, ProductRepository
from ..moderation.orchestrator import ModerationOrchestrator
from .notifications import LoggingNotificationSink, NotificationSink
from .product_workflow import ProductWorkflow, ValidationScheduler

logger = logging.getLogger(__name__)


def build_repository(settings: Optional[ModerationSettings] = None) -> ProductRepository:
    """Create the repository selected by settings.repository_backend."""
    settings = settings or get_settings()
    if settings.repository_backend == "sql":
        from ..db.session import get_session_factory
        from ..db.sql_repository import SqlProductRepository

        return SqlProductRepository(get_session_factory(settings))
    return InMemoryProductRepository()


async def celery_scheduler(product_id: str):
    """Queue a validation pass on the Celery worker."""
    from ..tasks.moderation import validate_product

    # delay() talks to the broker synchronously
    return await asyncio.to_thread(validate_product.delay, product_id)


def build_workflow(
    client: httpx.AsyncClient,
    settings: Optional[ModerationSettings] = None,
    repository: Optional[ProductRepository] = None,
    notifier: Optional[NotificationSink] = None,
    scheduler: Optional[ValidationScheduler] = None,
) -> ProductWorkflow:
    """
    Build a product workflow.

    Args:
        client: Shared HTTP client for the moderation providers
        settings: Moderation settings
        repository: Product repository (default from settings)
        notifier: Notification sink (default: log sink)
        scheduler: Validation scheduler (default from settings.validation_mode)

    Returns:
        Configured ProductWorkflow
    """
    settings = settings or get_settings()
    if scheduler is None and settings.validation_mode == "celery":
        scheduler = celery_scheduler

    orchestrator = ModerationOrchestrator.from_settings(settings, client)
    workflow = ProductWorkflow(
        repository=repository or build_repository(settings),
        orchestrator=orchestrator,
        notifier=notifier or LoggingNotificationSink(),
        settings=settings,
        scheduler=scheduler,
    )
    logger.info(
        f"Workflow ready: {settings.repository_backend} repository, "
        f"{settings.validation_mode} validation"
    )
    return workflow
