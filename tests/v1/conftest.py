# mypy: ignore-errors
# tests/v1/conftest.py
"""Fixtures for exercising the HTTP API against an in-memory store."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from yappin.api.v1.dependencies import get_store
from yappin.main import app
from yappin.services.invites import SYSTEM_OWNER
from yappin.services.runtime import Collaborators, ServiceRegistry
from yappin.store import MemoryStore


@pytest.fixture()
def api_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def client(api_store) -> Iterator[TestClient]:
    """Create a FastAPI test client backed by ``api_store``."""
    app.dependency_overrides[get_store] = lambda: api_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_store, None)


@pytest.fixture()
def system_invite(api_store) -> Callable[[], str]:
    """Return a factory minting system invite codes directly in the store."""

    def mint() -> str:
        registry = ServiceRegistry(api_store, Collaborators(current_identity=lambda: None))
        invite = asyncio.run(registry.invites.create_invite_code(SYSTEM_OWNER))
        return invite.code

    return mint


@pytest.fixture()
def signup(client, system_invite) -> Callable[[str], dict[str, Any]]:
    """Sign a user up through the API and return their uid and auth headers."""

    def create(username: str) -> dict[str, Any]:
        response = client.post(
            "/api/v1/auth/signup",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "inviteCode": system_invite(),
            },
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {
            "uid": body["user"]["uid"],
            "headers": {"Authorization": f"Bearer {body['accessToken']}"},
            "invite_codes": body["inviteCodes"],
        }

    return create
