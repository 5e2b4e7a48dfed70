# mypy: ignore-errors
# tests/store/test_sql_store.py
"""Tests for the SQLAlchemy-backed store."""

import asyncio

import pytest
from sqlalchemy import func, select

from yappin.models import StoreNode
from yappin.store import InvalidPathError, increment
from yappin.store.sql import flatten


def test_flatten_yields_one_row_per_leaf() -> None:
    rows = dict(flatten(["yaps", "y1"], {"text": "hi", "media": [{"type": "image"}], "likes": 0}))

    assert rows == {
        "yaps/y1/text": "hi",
        "yaps/y1/media": [{"type": "image"}],
        "yaps/y1/likes": 0,
    }


@pytest.mark.asyncio
async def test_set_and_get_rebuild_the_subtree(sql_store) -> None:
    await sql_store.set("users/u1", {
        "username": "alice",
        "privacy": {"requireApproval": False},
        "followersCount": 0,
    })

    assert await sql_store.get("users/u1") == {
        "username": "alice",
        "privacy": {"requireApproval": False},
        "followersCount": 0,
    }
    assert await sql_store.get("users/u1/username") == "alice"
    assert await sql_store.get("users") == {"u1": await sql_store.get("users/u1")}
    assert await sql_store.get("users/u2") is None


@pytest.mark.asyncio
async def test_leaves_are_stored_as_individual_rows(sql_store, sql_session_factory) -> None:
    await sql_store.set("a", {"b": 1, "c": {"d": 2}})

    with sql_session_factory() as session:
        count = session.execute(select(func.count()).select_from(StoreNode)).scalar_one()
    assert count == 2


@pytest.mark.asyncio
async def test_set_replaces_the_previous_subtree(sql_store) -> None:
    await sql_store.set("a", {"b": 1, "c": 2})
    await sql_store.set("a", {"d": 3})

    assert await sql_store.get("a") == {"d": 3}


@pytest.mark.asyncio
async def test_writing_below_a_leaf_replaces_it(sql_store) -> None:
    await sql_store.set("a", 1)
    await sql_store.set("a/b", 2)

    assert await sql_store.get("a") == {"b": 2}


@pytest.mark.asyncio
async def test_prefix_reads_do_not_match_like_wildcards(sql_store) -> None:
    await sql_store.set("c/a_b/x", 1)
    await sql_store.set("c/aXb/x", 2)
    await sql_store.set("c/a_bc/x", 3)

    assert await sql_store.get("c/a_b") == {"x": 1}


@pytest.mark.asyncio
async def test_update_deletes_writes_and_increments_together(sql_store) -> None:
    await sql_store.set("following/a/b", True)
    await sql_store.set("conversations/b/c1/unreadCount", 2)

    await sql_store.update({
        "following/a/b": None,
        "followers/b/a": True,
        "conversations/b/c1/unreadCount": increment(1),
    })

    assert await sql_store.get("following") is None
    assert await sql_store.get("followers/b/a") is True
    assert await sql_store.get("conversations/b/c1/unreadCount") == 3


@pytest.mark.asyncio
async def test_rejected_update_writes_nothing(sql_store) -> None:
    with pytest.raises(InvalidPathError):
        await sql_store.update({"a": 1, "a/b": 2})

    assert await sql_store.get("a") is None


@pytest.mark.asyncio
async def test_concurrent_transactions_serialize(sql_store) -> None:
    await sql_store.set("groups/g1/memberCount", 1)

    await asyncio.gather(*(
        sql_store.transaction("groups/g1/memberCount", lambda count: (count or 0) + 1)
        for _ in range(4)
    ))

    assert await sql_store.get("groups/g1/memberCount") == 5


@pytest.mark.asyncio
async def test_transaction_on_subtree_compares_whole_snapshot(sql_store) -> None:
    await sql_store.set("inviteCodes/ABC", {"used": False, "createdBy": "system"})

    def claim(current):
        current.update({"used": True, "usedBy": "u1"})
        return current

    result = await sql_store.transaction("inviteCodes/ABC", claim)

    assert result == {"used": True, "usedBy": "u1", "createdBy": "system"}
    assert await sql_store.get("inviteCodes/ABC") == result
