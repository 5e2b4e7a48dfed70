"""Direct messages between mutual followers.

Both participants share one message log at ``messages/{conversationId}``.
Each participant also owns a metadata mirror at
``conversations/{uid}/{conversationId}`` carrying the preview, the time of
the last message and their own ``unreadCount``.

Opening a conversation resets ``unreadCount`` to zero with a blind write, so
a message that lands at the same moment can be dropped from the badge. The
reset also records ``lastReadTime``; :meth:`MessagingService.count_unread_since_read`
recomputes the exact count from that cursor.
"""

from __future__ import annotations

import logging
from typing import Any

from yappin.core.errors import AuthorizationError, NotFoundError, ValidationError
from yappin.schemas.common import MediaItem
from yappin.schemas.message import Conversation, Message
from yappin.schemas.notification import NotificationType
from yappin.services.content import Attachment
from yappin.services.notifications import NotificationService
from yappin.services.runtime import BaseService
from yappin.services.social import SocialService
from yappin.store import increment, join

logger = logging.getLogger(__name__)

CONVERSATION_SEPARATOR = "_"
MEDIA_PREVIEW = "📎 Media"


def get_conversation_id(a: str, b: str) -> str:
    """Return the conversation id shared by ``a`` and ``b`` in either order."""
    return CONVERSATION_SEPARATOR.join(sorted((a, b)))


class MessagingService(BaseService):
    """Conversation indexing, message append and unread bookkeeping."""

    def __init__(
        self,
        *args: Any,
        social: SocialService,
        notifications: NotificationService,
    ) -> None:
        super().__init__(*args)
        self.social = social
        self.notifications = notifications

    async def _require_mutual(self, uid: str, other_uid: str) -> None:
        if uid == other_uid:
            raise ValidationError("You cannot message yourself")
        if not await self.store.exists(join("users", other_uid)):
            raise NotFoundError("User not found")
        if not await self.social.is_mutual_follow(uid, other_uid):
            raise AuthorizationError("You can only message people you mutually follow")

    async def _require_conversation(self, uid: str, conversation_id: str) -> dict[str, Any]:
        mirror = await self.store.get(join("conversations", uid, conversation_id))
        if not mirror or get_conversation_id(uid, mirror.get("otherUserId", "")) != conversation_id:
            raise NotFoundError("Conversation not found")
        return mirror

    async def start_conversation(self, other_uid: str) -> Conversation:
        """Return the caller's view of the conversation with ``other_uid``.

        Nothing is written until the first message is sent.

        Raises:
            AuthorizationError: If the two users do not follow each other.
        """
        uid = self.require_identity()
        await self._require_mutual(uid, other_uid)
        conversation_id = get_conversation_id(uid, other_uid)
        mirror = await self.store.get(join("conversations", uid, conversation_id))
        if mirror:
            return Conversation.model_validate({**mirror, "conversationId": conversation_id})
        return Conversation(conversation_id=conversation_id, other_user_id=other_uid)

    async def send_message(
        self,
        other_uid: str,
        text: str | None = None,
        media: list[MediaItem] | None = None,
        attachments: list[Attachment] | None = None,
    ) -> Message:
        """Send a direct message to ``other_uid``.

        Attachments are uploaded first, then the message is appended, then
        both metadata mirrors and the receiver's notification are written in
        one update. Only the receiver's ``unreadCount`` is incremented.
        """
        uid = self.require_identity()
        text = (text or "").strip() or None
        media = list(media or [])
        attachments = attachments or []
        if text is None and not media and not attachments:
            raise ValidationError("Message cannot be empty")
        if text is not None and len(text) > self.settings.message_max_length:
            raise ValidationError(
                f"Message must be {self.settings.message_max_length} characters or less"
            )
        await self._require_mutual(uid, other_uid)
        sender = await self.store.get(join("users", uid)) or {}

        for kind, data in attachments:
            url = await self.collaborators.upload_binary("message-media", data)
            media.append(MediaItem(type=kind, url=url))

        conversation_id = get_conversation_id(uid, other_uid)
        message_id = self.store.push_key()
        now = self.now()
        message = Message(
            id=message_id,
            sender_id=uid,
            receiver_id=other_uid,
            text=text,
            media=media or None,
            timestamp=now,
        )
        await self.store.set(join("messages", conversation_id, message_id), message.to_store())

        preview = text or MEDIA_PREVIEW
        mine = join("conversations", uid, conversation_id)
        theirs = join("conversations", other_uid, conversation_id)
        updates: dict[str, Any] = {
            f"{mine}/lastMessage": preview,
            f"{mine}/lastMessageTime": now,
            f"{mine}/otherUserId": other_uid,
            f"{theirs}/lastMessage": preview,
            f"{theirs}/lastMessageTime": now,
            f"{theirs}/otherUserId": uid,
            f"{theirs}/unreadCount": increment(1),
        }
        self.notifications.stage(
            updates,
            other_uid,
            NotificationType.MESSAGE,
            uid,
            notification_id=message_id,
            from_username=sender.get("username"),
            message=preview,
        )
        await self.store.update(updates)
        logger.debug("Message %s appended to %s", message_id, conversation_id)
        self.collaborators.emit("message_sent", conversation_id=conversation_id)
        return message

    async def list_messages(self, conversation_id: str, limit: int | None = None) -> list[Message]:
        """Return the latest messages of a conversation, oldest first."""
        uid = self.require_identity()
        await self._require_conversation(uid, conversation_id)
        limit = limit or self.settings.message_page_size
        records = await self.store.get(join("messages", conversation_id)) or {}
        messages = [
            Message.model_validate({**record, "id": key})
            for key, record in records.items()
        ]
        messages.sort(key=lambda message: message.timestamp)
        return messages[-limit:]

    async def open_conversation(self, conversation_id: str) -> list[Message]:
        """Load the latest page of messages and mark the conversation read."""
        messages = await self.list_messages(conversation_id)
        await self.mark_conversation_read(conversation_id)
        return messages

    async def mark_conversation_read(self, conversation_id: str) -> None:
        """Reset the caller's unread count and move their read cursor to now."""
        uid = self.require_identity()
        await self._require_conversation(uid, conversation_id)
        mine = join("conversations", uid, conversation_id)
        await self.store.update({
            f"{mine}/unreadCount": 0,
            f"{mine}/lastReadTime": self.now(),
        })
        self.collaborators.emit("messages_badge", uid=uid)

    async def count_unread_since_read(self, conversation_id: str) -> int:
        """Count messages addressed to the caller newer than their read cursor."""
        uid = self.require_identity()
        mirror = await self._require_conversation(uid, conversation_id)
        cursor = mirror.get("lastReadTime") or 0
        records = await self.store.get(join("messages", conversation_id)) or {}
        return sum(
            1 for record in records.values()
            if record.get("receiverId") == uid and record.get("timestamp", 0) > cursor
        )

    async def list_conversations(self) -> list[Conversation]:
        """Return the caller's conversations, most recent activity first."""
        uid = self.require_identity()
        mirrors = await self.store.get(join("conversations", uid)) or {}
        conversations = [
            Conversation.model_validate({**mirror, "conversationId": key})
            for key, mirror in mirrors.items()
        ]
        conversations.sort(key=lambda conversation: conversation.last_message_time, reverse=True)
        return conversations

    async def total_unread(self) -> int:
        """Return the sum of the caller's unread counts (the messages badge)."""
        return sum(
            conversation.unread_count for conversation in await self.list_conversations()
        )

    async def _require_message(self, conversation_id: str, message_id: str) -> dict[str, Any]:
        record = await self.store.get(join("messages", conversation_id, message_id))
        if not record:
            raise NotFoundError("Message not found")
        return record

    async def delete_message(self, conversation_id: str, message_id: str) -> None:
        """Delete one of the caller's own messages."""
        uid = self.require_identity()
        record = await self._require_message(conversation_id, message_id)
        if record.get("senderId") != uid:
            raise AuthorizationError("You can only delete your own messages")
        await self.store.set(join("messages", conversation_id, message_id), None)
        logger.debug("Message %s deleted from %s", message_id, conversation_id)

    async def toggle_reaction(self, conversation_id: str, message_id: str, emoji: str) -> str | None:
        """Set the caller's reaction, or clear it when it is already ``emoji``.

        Returns:
            The caller's reaction after the toggle.
        """
        uid = self.require_identity()
        if not emoji:
            raise ValidationError("Reaction cannot be empty")
        record = await self._require_message(conversation_id, message_id)
        if uid not in (record.get("senderId"), record.get("receiverId")):
            raise AuthorizationError("You are not part of this conversation")
        path = join("messages", conversation_id, message_id, "reactions", uid)
        current = (record.get("reactions") or {}).get(uid)
        value = None if current == emoji else emoji
        await self.store.set(path, value)
        return value
