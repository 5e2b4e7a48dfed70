"""In-process store backed by nested dictionaries.

Every primitive first yields to the event loop (sleeping ``latency`` seconds)
and then executes synchronously. Concurrent operations therefore interleave
at the same points they would against a remote database, which makes lost
updates on read-then-write counters reproducible in tests.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from yappin.store import paths
from yappin.store.base import (
    CompareAndSetStore,
    Increment,
    apply_increment,
    normalize,
    plan_update,
)


class MemoryStore(CompareAndSetStore):
    """Store implementation holding the whole tree in memory."""

    def __init__(self, initial: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._root: dict[str, Any] = normalize(copy.deepcopy(dict(initial or {}))) or {}

    def _read(self, segments: list[str]) -> Any:
        node: Any = self._root
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def _write(self, segments: list[str], value: Any) -> None:
        if not segments:
            self._root = value if isinstance(value, dict) else {}
            return
        if value is None:
            self._delete(segments)
            return
        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value

    def _delete(self, segments: list[str]) -> None:
        trail = [self._root]
        node = self._root
        for segment in segments[:-1]:
            node = node.get(segment)
            if not isinstance(node, dict):
                return
            trail.append(node)
        trail[-1].pop(segments[-1], None)
        # Prune interior nodes left empty.
        for depth in range(len(trail) - 1, 0, -1):
            if trail[depth]:
                break
            trail[depth - 1].pop(segments[depth - 1], None)

    async def get(self, path: str) -> Any:
        segments = paths.split(path)
        await self._round_trip()
        return copy.deepcopy(self._read(segments))

    async def set(self, path: str, value: Any) -> None:
        segments = paths.split(path)
        value = normalize(copy.deepcopy(value))
        await self._round_trip()
        self._write(segments, value)

    async def update(self, updates: Mapping[str, Any]) -> None:
        planned = plan_update(copy.deepcopy(dict(updates)))
        await self._round_trip()
        for segments, value in planned:
            if isinstance(value, Increment):
                value = apply_increment(self._read(segments), value)
            self._write(segments, value)

    async def _compare_and_set(self, path: str, expected: Any, value: Any) -> bool:
        segments = paths.split(path)
        await self._round_trip()
        if self._read(segments) != expected:
            return False
        self._write(segments, copy.deepcopy(value))
        return True

    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy of the entire tree without a round trip."""
        return copy.deepcopy(self._root)
