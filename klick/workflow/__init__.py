"""
Product review workflow.
"""

from .factory import build_repository, build_workflow
from .notifications import (
    InMemoryNotificationSink,
    LoggingNotificationSink,
    NotificationEvent,
    NotificationKind,
    NotificationPriority,
    NotificationSink,
)
from .product_workflow import AWAITING_MANUAL_REVIEW, ProductWorkflow, TransitionOutcome

__all__ = [
    "AWAITING_MANUAL_REVIEW",
    "ProductWorkflow",
    "TransitionOutcome",
    "NotificationEvent",
    "NotificationKind",
    "NotificationPriority",
    "NotificationSink",
    "InMemoryNotificationSink",
    "LoggingNotificationSink",
    "build_repository",
    "build_workflow",
]
