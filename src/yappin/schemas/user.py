"""User-related Pydantic schemas."""
from __future__ import annotations

from enum import Enum

from pydantic import Field

from .common import StoreRecord


class Privacy(StoreRecord):
    """Per-user privacy switches."""

    require_approval: bool = False


class PublicUser(StoreRecord):
    """Profile fields visible to every signed-in user."""

    uid: str
    username: str
    lowercase_username: str
    display_name: str | None = None
    photo_url: str | None = Field(default=None, alias="photoURL")
    bio: str = ""
    created_at: int
    followers_count: int = 0
    following_count: int = 0
    privacy: Privacy = Field(default_factory=Privacy)
    never_allow_reyaps: bool = False


class User(PublicUser):
    """Full user record as stored at ``users/{uid}``."""

    email: str


class FollowState(str, Enum):
    """Relationship of a requester to a target account."""

    NONE = "none"
    PENDING = "pending"
    FOLLOWING = "following"


class FollowRequest(StoreRecord):
    """Pending follow request stored at ``followRequests/{target}/{requester}``."""

    key_fields = frozenset({"uid"})

    uid: str | None = None
    timestamp: int
    status: str = "pending"


class SignupRequest(StoreRecord):
    """Schema for creating an account from an invite code."""

    username: str
    email: str
    invite_code: str
    display_name: str | None = None
    photo_url: str | None = Field(default=None, alias="photoURL")


class SignupResponse(StoreRecord):
    """Schema returned after a successful signup."""

    access_token: str
    token_type: str = "bearer"
    user: User
    invite_codes: list[str]


class ProfileUpdate(StoreRecord):
    """Schema for editing the caller's profile. Unset fields are left alone."""

    display_name: str | None = None
    bio: str | None = None
    photo_url: str | None = Field(default=None, alias="photoURL")


class PrivacyUpdate(StoreRecord):
    """Schema for the caller's privacy and reyap switches."""

    require_approval: bool | None = None
    never_allow_reyaps: bool | None = None


class FollowStateResponse(StoreRecord):
    """Follow relationship returned by the social endpoints."""

    state: FollowState
