# src/yappin/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    groups_router,
    invites_router,
    messages_router,
    notifications_router,
    social_router,
    users_router,
    yaps_router,
)

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
