"""Invite codes gating signup.

Codes live at ``inviteCodes/{code}`` with a back-reference under
``users/{uid}/inviteCodes/{code}``. Redemption runs as a single-path
transaction so two signups cannot consume the same code, and a used code is
never written again.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any

from yappin.core.errors import ConflictError, NotFoundError, ValidationError
from yappin.schemas.invite import InviteCode
from yappin.services.runtime import BaseService
from yappin.store import join
from yappin.store.paths import INVALID_KEY_CHARS

logger = logging.getLogger(__name__)

# No 0/O or 1/I to keep codes readable when shared by hand.
INVITE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_GENERATION_ATTEMPTS = 10
SYSTEM_OWNER = "system"


def generate_code(length: int, alphabet: str = INVITE_ALPHABET) -> str:
    """Return a random code drawn from ``alphabet``."""
    return "".join(secrets.choice(alphabet) for _ in range(length))


def normalize_code(code: str) -> str:
    """Return the canonical (stripped, upper-case) form of an invite code."""
    normalized = (code or "").strip().upper()
    if not normalized or INVALID_KEY_CHARS.intersection(normalized):
        raise ValidationError("Invalid invite code")
    return normalized


class InviteService(BaseService):
    """Create, check and redeem invite codes."""

    async def create_invite_code(self, owner_uid: str, code: str | None = None) -> InviteCode:
        """Create an invite code owned by ``owner_uid``.

        Args:
            owner_uid: User (or ``"system"``) the code belongs to.
            code: Explicit code to register; generated when omitted.

        Returns:
            The stored invite record.

        Raises:
            ConflictError: If an explicit code already exists.
        """
        if code is not None:
            code = normalize_code(code)
            if await self.store.exists(join("inviteCodes", code)):
                raise ConflictError("Invite code already exists")
        else:
            for _ in range(MAX_GENERATION_ATTEMPTS):
                candidate = generate_code(self.settings.invite_code_length)
                if not await self.store.exists(join("inviteCodes", candidate)):
                    code = candidate
                    break
            else:
                raise ConflictError("Could not generate a unique invite code")

        invite = InviteCode(code=code, created_by=owner_uid, created_at=self.now())
        updates: dict[str, Any] = {join("inviteCodes", code): invite.to_store()}
        if owner_uid != SYSTEM_OWNER:
            updates[join("users", owner_uid, "inviteCodes", code)] = True
        await self.store.update(updates)
        logger.info("Invite code created for %s", owner_uid)
        return invite

    async def create_invite_codes(self, owner_uid: str, count: int) -> list[InviteCode]:
        return [await self.create_invite_code(owner_uid) for _ in range(count)]

    async def get_invite_code(self, code: str) -> InviteCode | None:
        record = await self.store.get(join("inviteCodes", normalize_code(code)))
        return InviteCode.model_validate(record) if record else None

    def _is_expired(self, invite: InviteCode) -> bool:
        return self.now() - invite.created_at > self.settings.invite_code_ttl_ms

    async def validate_invite_code(self, code: str) -> bool:
        """Return True when the code exists, is unused and has not expired."""
        try:
            invite = await self.get_invite_code(code)
        except ValidationError:
            return False
        return invite is not None and not invite.used and not self._is_expired(invite)

    async def redeem_invite_code(self, code: str, uid: str) -> InviteCode:
        """Mark ``code`` as used by ``uid``.

        Raises:
            NotFoundError: If the code does not exist.
            ConflictError: If the code was already used or has expired.
        """
        code = normalize_code(code)
        used_at = self.now()

        def _claim(current: Any) -> Any:
            if current is None:
                raise NotFoundError("Invalid invite code")
            invite = InviteCode.model_validate(current)
            if invite.used:
                raise ConflictError("Invite code has already been used")
            if self._is_expired(invite):
                raise ConflictError("Invite code has expired")
            current.update({"used": True, "usedBy": uid, "usedAt": used_at})
            return current

        record = await self.store.transaction(join("inviteCodes", code), _claim)
        logger.info("Invite code redeemed by %s", uid)
        return InviteCode.model_validate(record)

    async def list_invite_codes(self, uid: str | None = None) -> list[InviteCode]:
        """Return the invite codes owned by ``uid`` (default: caller), newest first."""
        uid = uid or self.require_identity()
        owned = await self.store.get(join("users", uid, "inviteCodes")) or {}
        invites = []
        for code in owned:
            invite = await self.get_invite_code(code)
            if invite is not None:
                invites.append(invite)
        invites.sort(key=lambda invite: invite.created_at, reverse=True)
        return invites
