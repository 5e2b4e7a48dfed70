"""Group-related Pydantic schemas."""
from __future__ import annotations

from enum import Enum

from pydantic import Field

from .common import MediaItem, StoreRecord


class GroupRole(str, Enum):
    """Role of a member inside a group."""

    ADMIN = "admin"
    MEMBER = "member"


class Group(StoreRecord):
    """Group record stored at ``groups/{id}``."""

    id: str
    name: str
    description: str
    topic: str
    is_public: bool = True
    created_by: str
    created_at: int
    member_count: int = 0
    image_url: str | None = Field(default=None, alias="imageURL")
    invite_code: str | None = None
    last_activity: int | None = None


class GroupMember(StoreRecord):
    """Membership stored at ``groupMembers/{groupId}/{uid}``."""

    key_fields = frozenset({"uid"})

    uid: str | None = None
    joined_at: int
    role: GroupRole = GroupRole.MEMBER


class GroupMemberView(GroupMember):
    """Membership joined with the member's public profile fields."""

    username: str | None = None
    display_name: str | None = None
    photo_url: str | None = Field(default=None, alias="photoURL")


class GroupJoinRequest(StoreRecord):
    """Pending request stored at ``groupJoinRequests/{groupId}/{uid}``."""

    key_fields = frozenset({"uid"})

    uid: str | None = None
    username: str
    display_name: str | None = None
    photo_url: str | None = Field(default=None, alias="photoURL")
    requested_at: int
    status: str = "pending"


class GroupCreate(StoreRecord):
    """Schema for creating a group."""

    name: str
    description: str
    topic: str
    is_public: bool = True
    image_url: str | None = Field(default=None, alias="imageURL")


class GroupSettingsUpdate(StoreRecord):
    """Schema for admin edits to a group. Unset fields are left alone."""

    name: str | None = None
    description: str | None = None
    topic: str | None = None
    is_public: bool | None = None


class GroupMessage(StoreRecord):
    """Group chat message stored at ``groupMessages/{groupId}/{id}``."""

    key_fields = frozenset({"id"})

    id: str | None = None
    sender_id: str
    sender_name: str
    sender_photo: str | None = None
    text: str | None = None
    media: list[MediaItem] | None = None
    timestamp: int


class GroupContent(StoreRecord):
    """Schema for a group yap or a group chat message."""

    text: str | None = None
    media: list[MediaItem] | None = None


class JoinOutcome(StoreRecord):
    """Result of asking to join a group."""

    status: str
