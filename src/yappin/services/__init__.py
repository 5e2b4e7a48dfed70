"""Service layer for the Yappin' core."""

from .content import ContentService
from .groups import GroupService
from .identity import IdentityService
from .invites import InviteService
from .messaging import MessagingService, get_conversation_id
from .notifications import NotificationService, extract_mentions
from .runtime import Collaborators, ServiceRegistry, UIEvent
from .social import SocialService

__all__ = [
    "Collaborators",
    "ContentService",
    "GroupService",
    "IdentityService",
    "InviteService",
    "MessagingService",
    "NotificationService",
    "ServiceRegistry",
    "SocialService",
    "UIEvent",
    "extract_mentions",
    "get_conversation_id",
]
