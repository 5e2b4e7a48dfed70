"""Collaborators the services need from the surrounding application.

The core never talks to authentication, blob storage or the UI directly.
Instead it is handed a :class:`Collaborators` bundle with the four
primitives it consumes, and :class:`ServiceRegistry` wires every service to
one store and one bundle.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from yappin.core.errors import NotAuthenticatedError, ValidationError
from yappin.core.settings import Settings, settings
from yappin.db.time import now_ms
from yappin.store import Store

logger = logging.getLogger(__name__)

UploadBinary = Callable[[str, bytes], Awaitable[str]]


@dataclass(frozen=True)
class UIEvent:
    """Fire-and-forget signal telling the UI which view to refresh."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)


async def reject_uploads(kind: str, data: bytes) -> str:
    """Default uploader used when no blob storage is configured."""
    raise ValidationError(f"Binary uploads are not configured ({kind})")


def ignore_ui_event(event: UIEvent) -> None:
    """Default UI notifier that drops every event."""


@dataclass
class Collaborators:
    """External primitives consumed by the services."""

    current_identity: Callable[[], str | None]
    upload_binary: UploadBinary = reject_uploads
    notify_ui: Callable[[UIEvent], None] = ignore_ui_event
    clock: Callable[[], int] = now_ms

    def require_identity(self) -> str:
        """Return the signed-in user id.

        Raises:
            NotAuthenticatedError: If nobody is signed in.
        """
        uid = self.current_identity()
        if not uid:
            raise NotAuthenticatedError("Not signed in")
        return uid

    def emit(self, kind: str, **payload: Any) -> None:
        """Send a UI event without letting the notifier fail the caller."""
        try:
            self.notify_ui(UIEvent(kind, payload))
        except Exception:
            logger.warning("UI notifier failed for %s", kind, exc_info=True)


class BaseService:
    """Common state shared by every service."""

    def __init__(
        self,
        store: Store,
        collaborators: Collaborators,
        config: Settings | None = None,
    ) -> None:
        self.store = store
        self.collaborators = collaborators
        self.settings = config or settings

    def now(self) -> int:
        return self.collaborators.clock()

    def require_identity(self) -> str:
        return self.collaborators.require_identity()


class ServiceRegistry:
    """Build every service over a single store and collaborator bundle."""

    def __init__(
        self,
        store: Store,
        collaborators: Collaborators,
        config: Settings | None = None,
    ) -> None:
        # Imported here so the service modules can import BaseService from this module.
        from yappin.services.content import ContentService
        from yappin.services.groups import GroupService
        from yappin.services.identity import IdentityService
        from yappin.services.invites import InviteService
        from yappin.services.messaging import MessagingService
        from yappin.services.notifications import NotificationService
        from yappin.services.social import SocialService

        self.store = store
        self.collaborators = collaborators
        self.settings = config or settings

        args = (store, collaborators, self.settings)
        self.notifications = NotificationService(*args)
        self.invites = InviteService(*args)
        self.identity = IdentityService(*args, invites=self.invites)
        self.social = SocialService(*args, notifications=self.notifications)
        self.content = ContentService(*args, notifications=self.notifications)
        self.groups = GroupService(*args, notifications=self.notifications)
        self.messaging = MessagingService(
            *args,
            social=self.social,
            notifications=self.notifications,
        )
