"""SQLAlchemy-backed store.

The tree is flattened into one ``store_node`` row per leaf. A subtree read is
a prefix query over the path column, and every write runs inside a single
database transaction, so a multi-path update commits all-or-nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from sqlalchemy import delete, insert, or_, select
from sqlalchemy.orm import Session, sessionmaker

from yappin.db.time import now_ms
from yappin.models import StoreNode
from yappin.store import paths
from yappin.store.base import (
    CompareAndSetStore,
    Increment,
    apply_increment,
    normalize,
    plan_update,
)

logger = logging.getLogger(__name__)


def flatten(prefix: list[str], value: Any) -> Iterator[tuple[str, Any]]:
    """Yield ``(path, leaf)`` pairs for a normalized value."""
    if isinstance(value, dict):
        for key, child in value.items():
            yield from flatten([*prefix, key], child)
    elif value is not None:
        yield "/".join(prefix), value


def _subtree_clause(path: str):
    if not path:
        return None
    return or_(StoreNode.path == path, StoreNode.path.startswith(f"{path}/", autoescape=True))


class SqlStore(CompareAndSetStore):
    """Store implementation persisting leaves through SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._session_factory = session_factory

    @staticmethod
    def _read(session: Session, path: str) -> Any:
        query = select(StoreNode.path, StoreNode.value)
        clause = _subtree_clause(path)
        if clause is not None:
            query = query.where(clause)
        rows = session.execute(query).all()
        if not rows:
            return None

        depth = len(paths.split(path))
        tree: dict[str, Any] = {}
        for row_path, value in rows:
            relative = row_path.split("/")[depth:]
            if not relative:
                return value
            node = tree
            for segment in relative[:-1]:
                node = node.setdefault(segment, {})
            node[relative[-1]] = value
        return tree

    @staticmethod
    def _write(session: Session, segments: list[str], value: Any) -> None:
        path = "/".join(segments)
        clause = _subtree_clause(path)
        if clause is not None:
            session.execute(delete(StoreNode).where(clause))
        else:
            session.execute(delete(StoreNode))
        # A leaf cannot have children: writing below one replaces it.
        ancestors = ["/".join(segments[:index]) for index in range(1, len(segments))]
        if ancestors and value is not None:
            session.execute(delete(StoreNode).where(StoreNode.path.in_(ancestors)))
        rows = [
            {"path": leaf_path, "value": leaf, "updated_at": now_ms()}
            for leaf_path, leaf in flatten(segments, value)
        ]
        if rows:
            session.execute(insert(StoreNode), rows)

    async def get(self, path: str) -> Any:
        path = "/".join(paths.split(path))
        await self._round_trip()
        with self._session_factory() as session:
            return self._read(session, path)

    async def set(self, path: str, value: Any) -> None:
        segments = paths.split(path)
        value = normalize(value)
        await self._round_trip()
        with self._session_factory() as session, session.begin():
            self._write(session, segments, value)

    async def update(self, updates: Mapping[str, Any]) -> None:
        planned = plan_update(updates)
        await self._round_trip()
        with self._session_factory() as session, session.begin():
            for segments, value in planned:
                if isinstance(value, Increment):
                    current = self._read(session, "/".join(segments))
                    value = apply_increment(current, value)
                self._write(session, segments, value)
        logger.debug("Committed update of %d paths", len(planned))

    async def _compare_and_set(self, path: str, expected: Any, value: Any) -> bool:
        segments = paths.split(path)
        await self._round_trip()
        with self._session_factory() as session, session.begin():
            if self._read(session, "/".join(segments)) != expected:
                return False
            self._write(session, segments, value)
        return True
