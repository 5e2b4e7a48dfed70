"""User profiles and the username index.

``usernames/{lowercase}`` maps every claimed username to its owner and
``users/{uid}/lowercaseUsername`` points back, so the two directions always
agree. Signup claims the username through a single-path transaction before
the profile is written.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from yappin.core.errors import ConflictError, NotFoundError, ValidationError
from yappin.schemas.invite import InviteCode
from yappin.schemas.user import PublicUser, User
from yappin.services.invites import InviteService
from yappin.services.runtime import BaseService
from yappin.store import join

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


class IdentityService(BaseService):
    """Signup, profile reads and profile edits."""

    def __init__(self, *args: Any, invites: InviteService) -> None:
        super().__init__(*args)
        self.invites = invites

    def validate_username(self, username: str) -> str:
        """Return the stripped username or raise ValidationError."""
        username = (username or "").strip()
        if len(username) < self.settings.username_min_length:
            raise ValidationError(
                f"Username must be at least {self.settings.username_min_length} characters"
            )
        if len(username) > self.settings.username_max_length:
            raise ValidationError(
                f"Username must be at most {self.settings.username_max_length} characters"
            )
        if not USERNAME_PATTERN.match(username):
            raise ValidationError("Username can only contain letters, numbers, and underscores")
        return username

    async def check_username_available(self, username: str) -> bool:
        return not await self.store.exists(join("usernames", username.strip().lower()))

    async def resolve_username(self, username: str) -> str | None:
        """Return the uid that owns ``username`` (any case)."""
        return await self.store.get(join("usernames", username.strip().lower()))

    async def create_user_profile(
        self,
        uid: str,
        username: str,
        email: str,
        display_name: str | None = None,
        photo_url: str | None = None,
    ) -> User:
        """Claim ``username`` for ``uid`` and write the profile record.

        Raises:
            ValidationError: If the username or display name is malformed.
            ConflictError: If the username belongs to someone else or the
                user already has a profile.
        """
        username = self.validate_username(username)
        display_name = self._clean_display_name(display_name)
        lowercase = username.lower()
        if await self.store.exists(join("users", uid)):
            raise ConflictError("Profile already exists")

        def _claim(current: Any) -> Any:
            if current is not None and current != uid:
                raise ConflictError("Username is already taken")
            return uid

        await self.store.transaction(join("usernames", lowercase), _claim)

        user = User(
            uid=uid,
            username=username,
            lowercase_username=lowercase,
            email=email,
            display_name=display_name,
            photo_url=photo_url,
            created_at=self.now(),
        )
        await self.store.update({
            join("users", uid): user.to_store(),
            join("usernames", lowercase): uid,
        })
        logger.info("Created profile for %s", uid)
        return user

    async def sign_up(
        self,
        uid: str,
        username: str,
        email: str,
        invite_code: str,
        display_name: str | None = None,
        photo_url: str | None = None,
    ) -> tuple[User, list[InviteCode]]:
        """Create an account from an invite code.

        The invite is checked, the username is checked, the invite is
        consumed, the profile is written and finally the new user receives
        their own batch of invite codes.

        Returns:
            The new user and the invite codes minted for them.
        """
        self.validate_username(username)
        invite = await self.invites.get_invite_code(invite_code)
        if invite is None:
            raise NotFoundError("Invalid invite code")
        if not await self.invites.validate_invite_code(invite_code):
            raise ConflictError("Invite code has already been used or has expired")
        if not await self.check_username_available(username):
            raise ConflictError("Username is already taken")

        await self.invites.redeem_invite_code(invite_code, uid)
        user = await self.create_user_profile(uid, username, email, display_name, photo_url)
        codes = await self.invites.create_invite_codes(uid, self.settings.invites_per_new_user)
        self.collaborators.emit("signed_up", uid=uid)
        return user, codes

    async def get_user(self, uid: str) -> User:
        """Return the full profile for ``uid``.

        Raises:
            NotFoundError: If the user does not exist.
        """
        record = await self.store.get(join("users", uid))
        if not record:
            raise NotFoundError("User not found")
        return User.model_validate(record)

    async def get_public_profile(self, uid: str) -> PublicUser:
        return PublicUser.model_validate((await self.get_user(uid)).model_dump())

    async def get_profile_by_username(self, username: str) -> PublicUser:
        uid = await self.resolve_username(username)
        if not uid:
            raise NotFoundError("User not found")
        return await self.get_public_profile(uid)

    async def search_users(self, query: str, limit: int = 20) -> list[PublicUser]:
        """Return users whose username starts with ``query`` (case-insensitive)."""
        query = (query or "").strip().lower().lstrip("@")
        if not query:
            return []
        index = await self.store.get("usernames") or {}
        matches = sorted(name for name in index if name.startswith(query))[:limit]
        results = []
        for name in matches:
            record = await self.store.get(join("users", index[name]))
            if record:
                results.append(PublicUser.model_validate(record))
        return results

    def _clean_display_name(self, display_name: str | None) -> str | None:
        if display_name is None:
            return None
        display_name = display_name.strip()
        if not display_name:
            return None
        if len(display_name) > self.settings.display_name_max_length:
            raise ValidationError(
                "Display name must be between 1 and "
                f"{self.settings.display_name_max_length} characters"
            )
        return display_name

    async def update_display_name(self, display_name: str | None) -> str | None:
        """Set the caller's display name; empty or None removes it."""
        uid = self.require_identity()
        await self.get_user(uid)
        display_name = self._clean_display_name(display_name)
        await self.store.set(join("users", uid, "displayName"), display_name)
        self.collaborators.emit("profile_updated", uid=uid)
        return display_name

    async def update_bio(self, bio: str | None) -> str:
        uid = self.require_identity()
        await self.get_user(uid)
        bio = (bio or "").strip()
        if len(bio) > self.settings.bio_max_length:
            raise ValidationError(f"Bio must be at most {self.settings.bio_max_length} characters")
        await self.store.set(join("users", uid, "bio"), bio)
        self.collaborators.emit("profile_updated", uid=uid)
        return bio

    async def update_photo_url(self, photo_url: str | None) -> str | None:
        uid = self.require_identity()
        await self.get_user(uid)
        await self.store.set(join("users", uid, "photoURL"), photo_url or None)
        self.collaborators.emit("profile_updated", uid=uid)
        return photo_url or None

    async def upload_profile_photo(self, data: bytes) -> str:
        """Upload a new avatar through the binary collaborator and store its URL."""
        self.require_identity()
        url = await self.collaborators.upload_binary("profile-photo", data)
        await self.update_photo_url(url)
        return url

    async def set_require_approval(self, enabled: bool) -> None:
        """Toggle whether new followers need the caller's approval."""
        uid = self.require_identity()
        await self.get_user(uid)
        await self.store.set(join("users", uid, "privacy", "requireApproval"), bool(enabled))
        logger.info("User %s set requireApproval=%s", uid, enabled)

    async def set_never_allow_reyaps(self, enabled: bool) -> None:
        """Toggle whether others may reyap the caller's yaps."""
        uid = self.require_identity()
        await self.get_user(uid)
        await self.store.set(join("users", uid, "neverAllowReyaps"), bool(enabled))
        logger.info("User %s set neverAllowReyaps=%s", uid, enabled)
