"""
Pydantic schemas for stored records and API request/response models.

Records are persisted with camelCase keys; Python code uses snake_case.
"""

from .common import MediaItem, StoreRecord
from .group import (
    Group,
    GroupContent,
    GroupCreate,
    GroupJoinRequest,
    GroupMember,
    GroupMemberView,
    GroupMessage,
    GroupRole,
    GroupSettingsUpdate,
    JoinOutcome,
)
from .invite import InviteCode, InviteValidation
from .message import Conversation, Message, MessageCreate, ReactionRequest
from .notification import Notification, NotificationType
from .user import (
    FollowRequest,
    FollowState,
    FollowStateResponse,
    Privacy,
    PrivacyUpdate,
    ProfileUpdate,
    PublicUser,
    SignupRequest,
    SignupResponse,
    User,
)
from .yap import InteractionStatus, ToggleResult, Yap, YapCreate, YapView

__all__ = [
    "MediaItem", "StoreRecord",
    "Group", "GroupContent", "GroupCreate", "GroupJoinRequest", "GroupMember",
    "GroupMemberView", "GroupMessage", "GroupRole", "GroupSettingsUpdate", "JoinOutcome",
    "InviteCode", "InviteValidation",
    "Conversation", "Message", "MessageCreate", "ReactionRequest",
    "Notification", "NotificationType",
    "FollowRequest", "FollowState", "FollowStateResponse", "Privacy", "PrivacyUpdate",
    "ProfileUpdate", "PublicUser", "SignupRequest", "SignupResponse", "User",
    "InteractionStatus", "ToggleResult", "Yap", "YapCreate", "YapView",
]
