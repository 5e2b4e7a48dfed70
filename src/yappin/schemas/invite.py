"""Invite-code Pydantic schemas."""
from __future__ import annotations

from .common import StoreRecord


class InviteCode(StoreRecord):
    """Invite stored at ``inviteCodes/{code}``. Immutable once used."""

    code: str
    created_by: str
    created_at: int
    used: bool = False
    used_by: str | None = None
    used_at: int | None = None


class InviteValidation(StoreRecord):
    """Result of checking an invite code."""

    code: str
    valid: bool
