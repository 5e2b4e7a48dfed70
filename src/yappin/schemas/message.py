"""Direct-message Pydantic schemas."""
from __future__ import annotations

from pydantic import Field

from .common import MediaItem, StoreRecord


class Message(StoreRecord):
    """Message stored at ``messages/{conversationId}/{id}``."""

    key_fields = frozenset({"id"})

    id: str | None = None
    sender_id: str
    receiver_id: str
    text: str | None = None
    media: list[MediaItem] | None = None
    timestamp: int
    read: bool = False
    reactions: dict[str, str] | None = None


class Conversation(StoreRecord):
    """Per-participant metadata stored at ``conversations/{uid}/{conversationId}``."""

    key_fields = frozenset({"conversation_id"})

    conversation_id: str | None = None
    other_user_id: str
    last_message: str = ""
    last_message_time: int = 0
    unread_count: int = 0
    last_read_time: int | None = None


class MessageCreate(StoreRecord):
    """Schema for sending a direct message."""

    text: str | None = None
    media: list[MediaItem] | None = None


class ReactionRequest(StoreRecord):
    """Schema for toggling a reaction on a message."""

    emoji: str
