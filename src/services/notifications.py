"""
Notification dispatch
=====================

Delivery is fire-and-forget.  Services never call the dispatcher while
their transaction is open: messages are queued on a
``NotificationOutbox`` and flushed after commit, so a delivery failure
can neither roll back nor block a state change that already happened.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domain.enums import NotificationType
from src.infrastructure.models import NotificationModel

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    async def send(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None: ...


class DatabaseNotificationDispatcher:
    """Persists each notification in its own short transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def send(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        async with self.session_factory() as session:
            session.add(
                NotificationModel(
                    user_id=user_id,
                    type=type.value,
                    title=title,
                    body=body,
                    data=data,
                )
            )
            await session.commit()


@dataclass(frozen=True)
class Notification:
    user_id: int
    type: NotificationType
    title: str
    body: str
    data: Optional[dict[str, Any]] = None


@dataclass
class NotificationOutbox:
    items: list[Notification] = field(default_factory=list)

    def add(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        self.items.append(Notification(user_id, type, title, body, data))

    def clear(self) -> None:
        self.items.clear()

    async def flush(self, dispatcher: NotificationDispatcher) -> int:
        """Deliver queued messages; returns how many were delivered."""
        delivered = 0
        items, self.items = self.items, []
        for n in items:
            try:
                await dispatcher.send(n.user_id, n.type, n.title, n.body, n.data)
                delivered += 1
            except Exception:
                logger.exception(
                    "Failed to deliver %s notification to user %d",
                    n.type.value,
                    n.user_id,
                )
        return delivered
