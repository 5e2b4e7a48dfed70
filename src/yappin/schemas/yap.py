"""Yap-related Pydantic schemas."""
from __future__ import annotations

from pydantic import Field

from .common import MediaItem, StoreRecord


class Yap(StoreRecord):
    """Yap record stored at ``yaps/{id}`` (and mirrored for group yaps)."""

    id: str
    uid: str
    username: str
    display_name: str | None = None
    user_photo_url: str | None = Field(default=None, alias="userPhotoURL")
    text: str | None = None
    media: list[MediaItem] | None = None
    timestamp: int
    likes: int = 0
    reyaps: int = 0
    replies: int = 0
    reply_to: str | None = None
    group_id: str | None = None


class YapView(Yap):
    """Yap decorated with the viewer's interaction flags."""

    is_liked: bool = False
    is_reyapped: bool = False


class YapCreate(StoreRecord):
    """Schema for composing a yap or a reply."""

    text: str | None = None
    media: list[MediaItem] | None = None
    reply_to: str | None = None


class InteractionStatus(StoreRecord):
    """Whether the viewer has liked and reyapped a yap."""

    is_liked: bool = False
    is_reyapped: bool = False


class ToggleResult(StoreRecord):
    """Outcome of a like or reyap toggle."""

    active: bool
    count: int
