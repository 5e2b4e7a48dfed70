# mypy: ignore-errors
# tests/conftest.py
"""Shared fixtures for the Yappin' test suite."""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from yappin.core.settings import Settings
from yappin.db.session import Base
from yappin.services.runtime import Collaborators, ServiceRegistry, UIEvent
from yappin.store import MemoryStore
from yappin.store.sql import SqlStore

START_MS = 1_700_000_000_000


class SwitchableIdentity:
    """Current-user callable that tests can point at different users."""

    def __init__(self) -> None:
        self.uid: str | None = None

    def __call__(self) -> str | None:
        return self.uid

    def switch(self, uid: str | None) -> None:
        self.uid = uid


class FakeUploader:
    """Binary collaborator that records uploads and returns fake URLs."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, bytes]] = []

    async def __call__(self, kind: str, data: bytes) -> str:
        self.calls.append((kind, data))
        return f"https://cdn.test/{kind}/{len(self.calls)}"


@pytest.fixture()
def test_settings() -> Settings:
    """Return settings with the default limits and faithful counters."""
    return Settings(secret_key="test-secret-key", atomic_derived_counters=False)


@pytest.fixture()
def atomic_settings() -> Settings:
    """Return settings with transactional derived counters enabled."""
    return Settings(secret_key="test-secret-key", atomic_derived_counters=True)


@pytest.fixture()
def clock():
    """Deterministic millisecond clock advancing one second per call."""
    ticks = itertools.count(START_MS, 1_000)
    return lambda: next(ticks)


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def identity() -> SwitchableIdentity:
    return SwitchableIdentity()


@pytest.fixture()
def ui_events() -> list[UIEvent]:
    return []


@pytest.fixture()
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture()
def collaborators(identity, uploader, ui_events, clock) -> Collaborators:
    return Collaborators(
        current_identity=identity,
        upload_binary=uploader,
        notify_ui=ui_events.append,
        clock=clock,
    )


@pytest.fixture()
def registry(store, collaborators, test_settings) -> ServiceRegistry:
    """Services wired to the in-memory store with faithful counters."""
    return ServiceRegistry(store, collaborators, test_settings)


@pytest.fixture()
def atomic_registry(store, collaborators, atomic_settings) -> ServiceRegistry:
    """Services wired to the same store with transactional counters."""
    return ServiceRegistry(store, collaborators, atomic_settings)


@pytest.fixture()
def registry_for(store, uploader, ui_events, clock, test_settings):
    """Return a factory for registries signed in as one fixed user.

    Concurrent calls need their own identity because a task reads the
    current user only when it first runs.
    """

    def build(uid: str) -> ServiceRegistry:
        collaborators = Collaborators(
            current_identity=lambda: uid,
            upload_binary=uploader,
            notify_ui=ui_events.append,
            clock=clock,
        )
        return ServiceRegistry(store, collaborators, test_settings)

    return build


@pytest.fixture()
async def users(registry) -> dict[str, str]:
    """Create alice, bob and carol with public profiles and return their uids."""
    uids = {}
    for name in ("alice", "bob", "carol"):
        user = await registry.identity.create_user_profile(
            f"uid-{name}",
            name,
            f"{name}@example.com",
            display_name=name.title(),
        )
        uids[name] = user.uid
    return uids


@pytest.fixture()
def sql_session_factory() -> Iterator[sessionmaker]:
    """Session factory bound to a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def sql_store(sql_session_factory) -> SqlStore:
    return SqlStore(sql_session_factory)


@pytest.fixture()
def tree(store):
    """Return a synchronous reader for subtrees of the memory store."""

    def read(*segments: str) -> Any:
        node: Any = store.snapshot()
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    return read
