"""
Regional Franchise Platform - Notification Service

Post-commit, best-effort notifications. Services call dispatch() only
after their unit of work has committed; a failing sender is logged and
never changes the outcome of the operation that triggered it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from franchise.config import settings

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    """A domain event worth telling someone about."""
    name: str
    entity_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Sender = Callable[[NotificationEvent], Awaitable[None]]


async def log_sender(event: NotificationEvent) -> None:
    """Default sender: write the event to the log."""
    logger.info(f"Notification {event.name} for {event.entity_id}: {event.payload}")


class NotificationService:
    """Dispatches events to an injectable async sender (email, webhook, ...)."""

    def __init__(self, sender: Optional[Sender] = None, enabled: Optional[bool] = None):
        self.sender = sender or log_sender
        self.enabled = settings.notifications_enabled if enabled is None else enabled

    async def dispatch(self, event: NotificationEvent) -> bool:
        """
        Send an event. Returns False if the sender failed or notifications
        are disabled.
        """
        if not self.enabled:
            return False

        try:
            await self.sender(event)
            return True
        except Exception as e:
            logger.warning(f"Notification {event.name} for {event.entity_id} failed: {e}")
            return False
