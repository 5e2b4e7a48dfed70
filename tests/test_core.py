# mypy: ignore-errors
# tests/test_core.py
"""Tests for settings, tokens and the error-to-status mapping."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from yappin.api.v1.errors import status_for
from yappin.core.errors import (
    AuthorizationError,
    ConflictError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationError,
)
from yappin.core.security import create_access_token, decode_access_token
from yappin.core.settings import Settings, settings
from yappin.services.runtime import Collaborators, UIEvent
from yappin.store import MemoryStore, create_store


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("YAP_MAX_LENGTH", "100")
    monkeypatch.setenv("ATOMIC_DERIVED_COUNTERS", "true")

    config = Settings()

    assert config.yap_max_length == 100
    assert config.atomic_derived_counters is True
    assert config.invite_code_ttl_ms == 30 * 24 * 60 * 60 * 1000


def test_create_store_selects_backend() -> None:
    assert isinstance(create_store(Settings(store_backend="memory")), MemoryStore)
    with pytest.raises(ValueError):
        create_store(Settings(store_backend="carrier-pigeon"))
    with pytest.raises(ValueError):
        create_store(Settings(store_backend="firebase", firebase_database_url=None))


def test_access_token_round_trip() -> None:
    token = create_access_token("uid-alice")

    assert decode_access_token(token) == "uid-alice"


def test_expired_or_foreign_tokens_are_rejected() -> None:
    expired = jwt.encode(
        {"sub": "uid-alice", "exp": datetime.now(UTC) - timedelta(minutes=1)},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    foreign = jwt.encode({"sub": "uid-alice"}, "someone-elses-key", algorithm="HS256")
    no_subject = jwt.encode({"scope": "all"}, settings.secret_key, algorithm=settings.jwt_algorithm)

    for token in (expired, foreign, no_subject):
        with pytest.raises(NotAuthenticatedError):
            decode_access_token(token)


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (NotAuthenticatedError("x"), 401),
        (AuthorizationError("x"), 403),
        (ValidationError("x"), 422),
        (NotFoundError("x"), 404),
        (ConflictError("x"), 409),
    ],
)
def test_status_for(error, code) -> None:
    assert status_for(error) == code


def test_ui_notifier_failures_are_swallowed() -> None:
    def broken(event: UIEvent) -> None:
        raise RuntimeError("ui gone")

    collaborators = Collaborators(current_identity=lambda: None, notify_ui=broken)

    collaborators.emit("timeline_refresh", uid="u1")
    with pytest.raises(NotAuthenticatedError):
        collaborators.require_identity()


@pytest.mark.asyncio
async def test_default_uploader_rejects() -> None:
    collaborators = Collaborators(current_identity=lambda: "u1")

    with pytest.raises(ValidationError):
        await collaborators.upload_binary("yap-media", b"data")
