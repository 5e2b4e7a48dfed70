"""Notification fan-out.

A notification is one append-only record per (event, recipient) pair under
``notifications/{recipient}/{id}``. Other services either stage records into
their own update set, so the notification commits atomically with the event,
or write them directly with :meth:`NotificationService.notify`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Any

from pydantic.alias_generators import to_camel

from yappin.core.errors import NotFoundError
from yappin.schemas.notification import Notification, NotificationType
from yappin.services.runtime import BaseService
from yappin.store import join

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"@(\w+)")


def extract_mentions(text: str | None) -> list[str]:
    """Return the distinct lowercase usernames mentioned in ``text``."""
    if not text:
        return []
    seen: dict[str, None] = {}
    for match in MENTION_PATTERN.finditer(text):
        seen.setdefault(match.group(1).lower(), None)
    return list(seen)


class NotificationService(BaseService):
    """Write and read per-user notification records."""

    def stage(
        self,
        updates: dict[str, Any],
        recipient: str,
        notification_type: NotificationType,
        from_uid: str,
        *,
        notification_id: str | None = None,
        **fields: Any,
    ) -> str:
        """Add one notification record to ``updates`` and return its id.

        Args:
            updates: Update set the record is staged into.
            recipient: User receiving the notification.
            notification_type: Kind of event.
            from_uid: User who caused the event.
            notification_id: Explicit key; a push key is generated when omitted.
            **fields: Type-specific fields in snake_case (stored camelCase).

        Returns:
            The key of the staged record.
        """
        notification_id = notification_id or self.store.push_key()
        extra = {to_camel(name): value for name, value in fields.items() if value is not None}
        record = Notification(
            type=notification_type,
            from_uid=from_uid,
            timestamp=self.now(),
            read=False,
            **extra,
        )
        updates[join("notifications", recipient, notification_id)] = record.to_store()
        return notification_id

    async def notify(
        self,
        recipient: str,
        notification_type: NotificationType,
        from_uid: str,
        **fields: Any,
    ) -> str:
        """Write a single notification immediately."""
        updates: dict[str, Any] = {}
        notification_id = self.stage(updates, recipient, notification_type, from_uid, **fields)
        await self.store.update(updates)
        return notification_id

    async def fan_out(
        self,
        recipients: Iterable[str],
        notification_type: NotificationType,
        from_uid: str,
        **fields: Any,
    ) -> int:
        """Write one notification per recipient (skipping the sender) in one batch."""
        updates: dict[str, Any] = {}
        for recipient in dict.fromkeys(recipients):
            if recipient == from_uid:
                continue
            self.stage(updates, recipient, notification_type, from_uid, **fields)
        if updates:
            await self.store.update(updates)
            logger.debug("Fanned out %d %s notifications", len(updates), notification_type.value)
        return len(updates)

    async def stage_mentions(
        self,
        updates: dict[str, Any],
        text: str | None,
        from_uid: str,
        **fields: Any,
    ) -> list[str]:
        """Stage a mention notification for every resolvable ``@username``.

        Returns:
            The user ids that will be notified.
        """
        notified: list[str] = []
        for username in extract_mentions(text):
            uid = await self.store.get(join("usernames", username))
            if not uid or uid == from_uid or uid in notified:
                continue
            self.stage(updates, uid, NotificationType.MENTION, from_uid, **fields)
            notified.append(uid)
        return notified

    async def list_notifications(self, limit: int = 50) -> list[Notification]:
        """Return the caller's notifications, newest first."""
        uid = self.require_identity()
        records = await self.store.get(join("notifications", uid)) or {}
        items = [
            Notification.model_validate({**record, "id": key})
            for key, record in records.items()
        ]
        items.sort(key=lambda item: item.timestamp, reverse=True)
        return items[:limit]

    async def unread_count(self) -> int:
        """Return how many of the caller's notifications are unread."""
        uid = self.require_identity()
        records = await self.store.get(join("notifications", uid)) or {}
        return sum(1 for record in records.values() if not record.get("read"))

    async def mark_read(self, notification_id: str) -> None:
        """Mark one of the caller's notifications as read."""
        uid = self.require_identity()
        path = join("notifications", uid, notification_id)
        if not await self.store.exists(path):
            raise NotFoundError("Notification not found")
        await self.store.set(f"{path}/read", True)

    async def mark_all_read(self) -> int:
        """Mark every unread notification of the caller as read in one batch."""
        uid = self.require_identity()
        records = await self.store.get(join("notifications", uid)) or {}
        updates = {
            join("notifications", uid, key, "read"): True
            for key, record in records.items()
            if not record.get("read")
        }
        if updates:
            await self.store.update(updates)
        return len(updates)
