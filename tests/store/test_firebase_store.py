# mypy: ignore-errors
# tests/store/test_firebase_store.py
"""Tests for the Firebase adapter with the Admin SDK mocked out."""

import pytest

pytest.importorskip("firebase_admin")

from firebase_admin import db  # noqa: E402

from yappin.store import TransactionAbortedError, increment  # noqa: E402
from yappin.store.firebase import FirebaseStore, server_increment  # noqa: E402


@pytest.fixture()
def firebase_ref(mocker):
    ref = mocker.MagicMock()
    mocker.patch("yappin.store.firebase.db.reference", return_value=ref)
    return ref


@pytest.fixture()
def firebase_store(mocker):
    store = FirebaseStore("https://yappin-test.firebaseio.com")
    store._app = mocker.sentinel.app
    yield store
    store._executor.shutdown(wait=False)


def test_server_increment_placeholder() -> None:
    assert server_increment(2) == {".sv": {"increment": 2}}


@pytest.mark.asyncio
async def test_get_reads_through_a_reference(firebase_store, firebase_ref) -> None:
    firebase_ref.get.return_value = {"username": "alice"}

    assert await firebase_store.get("users/u1") == {"username": "alice"}
    db.reference.assert_called_once_with("/users/u1", app=firebase_store._app)


@pytest.mark.asyncio
async def test_set_none_deletes(firebase_store, firebase_ref) -> None:
    await firebase_store.set("likes/y1/u1", None)

    firebase_ref.delete.assert_called_once_with()
    firebase_ref.set.assert_not_called()


@pytest.mark.asyncio
async def test_update_translates_increments(firebase_store, firebase_ref) -> None:
    await firebase_store.update({
        "conversations/b/c1/unreadCount": increment(1),
        "conversations/b/c1/lastMessage": "hey",
        "following/a/b": None,
    })

    firebase_ref.update.assert_called_once_with({
        "conversations/b/c1/unreadCount": {".sv": {"increment": 1}},
        "conversations/b/c1/lastMessage": "hey",
        "following/a/b": None,
    })


@pytest.mark.asyncio
async def test_transaction_delegates_to_the_sdk(firebase_store, firebase_ref) -> None:
    firebase_ref.transaction.side_effect = lambda fn: fn(4)

    assert await firebase_store.transaction("yaps/y1/likes", lambda n: n + 1) == 5


@pytest.mark.asyncio
async def test_sdk_abort_is_translated(firebase_store, firebase_ref) -> None:
    firebase_ref.transaction.side_effect = db.TransactionAbortedError("too many retries")

    with pytest.raises(TransactionAbortedError):
        await firebase_store.transaction("yaps/y1/likes", lambda n: n)


@pytest.mark.asyncio
async def test_close_releases_the_app(mocker) -> None:
    delete_app = mocker.patch("yappin.store.firebase.firebase_admin.delete_app")
    store = FirebaseStore("https://yappin-test.firebaseio.com")
    store._app = mocker.sentinel.app

    await store.close()

    delete_app.assert_called_once_with(mocker.sentinel.app)
    assert store._app is None
