# src/yappin/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .groups import router as groups_router
from .invites import router as invites_router
from .messages import router as messages_router
from .notifications import router as notifications_router
from .social import router as social_router
from .users import router as users_router
from .yaps import router as yaps_router

__all__ = [
    "auth_router",
    "groups_router",
    "invites_router",
    "messages_router",
    "notifications_router",
    "social_router",
    "users_router",
    "yaps_router",
]
