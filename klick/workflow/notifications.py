"""
Notification Events
Events emitted by the product workflow after a successful transition.

Delivery (in-app, push, email, WhatsApp) belongs to an external dispatcher
that consumes these events through a NotificationSink.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Types of workflow notifications."""

    PRODUCT_SUBMITTED = "product_submitted"
    PRODUCT_FLAGGED = "product_flagged"
    PRODUCT_APPROVED = "product_approved"
    PRODUCT_REJECTED = "product_rejected"
    PRODUCT_REOPENED = "product_reopened"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


# Default title and priority per kind
NOTIFICATION_TITLES = {
    NotificationKind.PRODUCT_SUBMITTED: "New product awaiting review",
    NotificationKind.PRODUCT_FLAGGED: "Product needs attention",
    NotificationKind.PRODUCT_APPROVED: "Product approved",
    NotificationKind.PRODUCT_REJECTED: "Product rejected",
    NotificationKind.PRODUCT_REOPENED: "Product back under review",
}

NOTIFICATION_PRIORITIES = {
    NotificationKind.PRODUCT_SUBMITTED: NotificationPriority.NORMAL,
    NotificationKind.PRODUCT_FLAGGED: NotificationPriority.HIGH,
    NotificationKind.PRODUCT_APPROVED: NotificationPriority.NORMAL,
    NotificationKind.PRODUCT_REJECTED: NotificationPriority.HIGH,
    NotificationKind.PRODUCT_REOPENED: NotificationPriority.NORMAL,
}


@dataclass(frozen=True)
class NotificationEvent:
    """A notification addressed to one recipient."""

    kind: NotificationKind
    recipient_id: str
    title: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    priority: NotificationPriority = NotificationPriority.NORMAL
    created_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def build(
        cls,
        kind: NotificationKind,
        recipient_id: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> "NotificationEvent":
        return cls(
            kind=kind,
            recipient_id=recipient_id,
            title=NOTIFICATION_TITLES[kind],
            message=message,
            data=data or {},
            priority=NOTIFICATION_PRIORITIES[kind],
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and dispatch."""
        return {
            "kind": self.kind.value,
            "recipient_id": self.recipient_id,
            "title": self.title,
            "message": self.message,
            "data": self.data,
            "priority": self.priority.value,
            "created_at": self.created_at.isoformat(),
        }


class NotificationSink(ABC):
    """Consumer of workflow notifications."""

    @abstractmethod
    async def publish(self, event: NotificationEvent) -> None:
        """Hand the event over to the dispatcher."""


class InMemoryNotificationSink(NotificationSink):
    """Keeps published events in memory (development and tests)."""

    def __init__(self):
        self.events: List[NotificationEvent] = []

    async def publish(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def for_recipient(self, recipient_id: str) -> List[NotificationEvent]:
        return [e for e in self.events if e.recipient_id == recipient_id]

    def of_kind(self, kind: NotificationKind) -> List[NotificationEvent]:
        return [e for e in self.events if e.kind == kind]

    def clear(self) -> None:
        self.events.clear()


class LoggingNotificationSink(NotificationSink):
    """Writes events to the log."""

    async def publish(self, event: NotificationEvent) -> None:
        logger.info(
            f"Notification: {event.kind.value} -> {event.recipient_id}",
            extra={"notification": event.to_dict()},
        )
