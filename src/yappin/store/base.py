"""Abstract contract for the hierarchical key-value store.

All services talk to persisted state exclusively through :class:`Store`.
The contract mirrors the primitives of a realtime tree database:

* ``get``/``set`` on a single path,
* ``update``: an atomic multi-path merge in which ``None`` deletes a path
  and :func:`increment` resolves against the current leaf inside the commit,
* ``transaction``: optimistic read-modify-write on one path, retried while
  the path keeps changing underneath it,
* ``push_key``: a unique, time-sortable child key.

Interior nodes exist only while they hold at least one leaf, so writing an
empty mapping is the same as deleting.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from yappin.store import paths
from yappin.store.errors import InvalidPathError, TransactionAbortedError
from yappin.store.push_id import PushIdGenerator

logger = logging.getLogger(__name__)

TransactionFn = Callable[[Any], Any]


@dataclass(frozen=True)
class Increment:
    """Sentinel resolved to ``current + delta`` when an update commits."""

    delta: int | float = 1


def increment(delta: int | float = 1) -> Increment:
    """Return an increment sentinel for use inside an update set."""
    return Increment(delta)


def normalize(value: Any) -> Any:
    """Drop ``None`` children and empty mappings; return None if nothing is left."""
    if isinstance(value, Mapping):
        cleaned = {}
        for key, child in value.items():
            paths.validate_key(key)
            child = normalize(child)
            if child is not None:
                cleaned[key] = child
        return cleaned or None
    if isinstance(value, Increment):
        raise InvalidPathError("increment() is only valid as a top-level update value")
    return value


def apply_increment(current: Any, sentinel: Increment) -> int | float:
    """Resolve an increment against the value currently stored at the path."""
    if isinstance(current, bool) or not isinstance(current, int | float):
        current = 0
    return current + sentinel.delta


def plan_update(updates: Mapping[str, Any]) -> list[tuple[list[str], Any]]:
    """Validate an update set and return ``(segments, value)`` pairs.

    Raises:
        InvalidPathError: If a path is illegal, targets the root, or one path
            is an ancestor of another in the same set.
    """
    planned: list[tuple[list[str], Any]] = []
    for raw_path, value in updates.items():
        segments = paths.split(raw_path)
        if not segments:
            raise InvalidPathError("Update paths must not target the root")
        if not isinstance(value, Increment):
            value = normalize(value)
        planned.append((segments, value))

    ordered = sorted(segments for segments, _ in planned)
    for previous, current in zip(ordered, ordered[1:], strict=False):
        if paths.is_prefix(previous, current):
            raise InvalidPathError(
                f"Overlapping update paths: {'/'.join(previous)!r} and {'/'.join(current)!r}"
            )
    return planned


class Store(ABC):
    """Asynchronous hierarchical store."""

    def __init__(
        self,
        *,
        max_retries: int = 25,
        latency: float = 0.0,
        push_ids: PushIdGenerator | None = None,
    ) -> None:
        self.max_retries = max_retries
        self.latency = latency
        self._push_ids = push_ids or PushIdGenerator()

    async def _round_trip(self) -> None:
        """Yield to the event loop the way a network request would."""
        await asyncio.sleep(self.latency)

    @abstractmethod
    async def get(self, path: str) -> Any:
        """Return a snapshot of the subtree at ``path`` or None when absent."""

    async def exists(self, path: str) -> bool:
        """Return True when anything is stored at ``path``."""
        return await self.get(path) is not None

    @abstractmethod
    async def set(self, path: str, value: Any) -> None:
        """Replace the subtree at ``path``; ``None`` deletes it."""

    @abstractmethod
    async def update(self, updates: Mapping[str, Any]) -> None:
        """Atomically apply every ``path -> value`` entry of ``updates``."""

    @abstractmethod
    async def transaction(self, path: str, fn: TransactionFn) -> Any:
        """Apply ``fn`` to the value at ``path`` with optimistic concurrency.

        ``fn`` receives a private copy of the current value (None when absent)
        and returns the new value; returning None deletes the path. Any
        exception raised by ``fn`` aborts the transaction and propagates.

        Returns:
            The committed value.

        Raises:
            TransactionAbortedError: If the path changed between read and
                commit on every one of ``max_retries`` attempts.
        """

    def push_key(self) -> str:
        """Return a new unique, time-ordered child key."""
        return self._push_ids()

    async def close(self) -> None:
        """Release backend resources."""
        return None


class CompareAndSetStore(Store):
    """Store whose transactions retry a read against a compare-and-set write."""

    @abstractmethod
    async def _compare_and_set(self, path: str, expected: Any, value: Any) -> bool:
        """Write ``value`` only if ``path`` still holds ``expected``."""

    async def transaction(self, path: str, fn: TransactionFn) -> Any:
        for attempt in range(1, self.max_retries + 1):
            snapshot = await self.get(path)
            new_value = normalize(fn(copy.deepcopy(snapshot)))
            if await self._compare_and_set(path, snapshot, new_value):
                return new_value
            logger.debug("Transaction on %s conflicted (attempt %d)", path, attempt)
        logger.warning("Transaction on %s aborted after %d attempts", path, self.max_retries)
        raise TransactionAbortedError(f"Transaction on {path!r} exceeded retry budget")
