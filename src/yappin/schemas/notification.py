"""Notification Pydantic schemas."""
from __future__ import annotations

from enum import Enum

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from .common import StoreRecord


class NotificationType(str, Enum):
    """Kinds of notification written by the services."""

    FOLLOW = "follow"
    FOLLOW_REQUEST = "follow_request"
    FOLLOW_REQUEST_APPROVED = "follow_request_approved"
    LIKE = "like"
    REYAP = "reyap"
    REPLY = "reply"
    MENTION = "mention"
    MESSAGE = "message"
    JOIN_REQUEST = "join_request"
    JOIN_REQUEST_APPROVED = "join_request_approved"
    NEW_YAP = "new_yap"
    PROMOTED_TO_ADMIN = "promoted_to_admin"


class Notification(StoreRecord):
    """Notification stored at ``notifications/{recipient}/{id}``.

    Type-specific fields (``yapId``, ``groupId``, ``message`` ...) are kept
    as extra attributes.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    key_fields = frozenset({"id"})

    id: str | None = None
    type: NotificationType
    from_uid: str = Field(alias="from")
    timestamp: int
    read: bool = False
