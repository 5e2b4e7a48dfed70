"""Typed errors raised by the Yappin' services.

Every failure a caller can observe is one of the classes below. None of them
is fatal: each is raised before any write is committed, so the store is left
exactly as it was.
"""

from __future__ import annotations


class YappinError(RuntimeError):
    """Base exception for all user-facing Yappin' failures."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(YappinError):
    """Raised when input has the wrong shape or length."""


class AuthorizationError(YappinError):
    """Raised when the caller is not allowed to perform the operation."""


class NotAuthenticatedError(AuthorizationError):
    """Raised when no identity is signed in."""


class NotFoundError(YappinError):
    """Raised when a referenced entity does not exist."""


class ConflictError(YappinError):
    """Raised when the operation collides with existing state."""
