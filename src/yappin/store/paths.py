"""Path helpers for the hierarchical store.

Paths are slash-separated strings ("yaps/-Nabc/likes"). Individual segments
follow the Realtime Database key rules: non-empty and free of ``. $ # [ ] /``.
"""

from __future__ import annotations

from yappin.store.errors import InvalidPathError

INVALID_KEY_CHARS = frozenset(".$#[]/")


def validate_key(key: str) -> str:
    """Return ``key`` unchanged if it is a legal path segment.

    Raises:
        InvalidPathError: If the key is empty, not a string or contains a
            reserved character.
    """
    if not isinstance(key, str) or not key:
        raise InvalidPathError(f"Invalid path segment: {key!r}")
    if INVALID_KEY_CHARS.intersection(key) or any(ord(ch) < 32 for ch in key):
        raise InvalidPathError(f"Invalid path segment: {key!r}")
    return key


def split(path: str) -> list[str]:
    """Split ``path`` into validated segments. The root is the empty list."""
    stripped = path.strip("/")
    if not stripped:
        return []
    return [validate_key(segment) for segment in stripped.split("/")]


def join(*segments: str) -> str:
    """Join validated segments into a path."""
    return "/".join(validate_key(segment) for segment in segments)


def is_prefix(ancestor: list[str], descendant: list[str]) -> bool:
    """Return True when ``ancestor`` equals or contains ``descendant``."""
    return descendant[: len(ancestor)] == ancestor
