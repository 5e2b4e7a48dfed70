# mypy: ignore-errors
# tests/scripts/test_maintenance_scripts.py
"""Tests for the maintenance tools."""

import asyncio

import pytest

from yappin.scripts.backfill_reply_links import backfill_reply_links, plan_reply_backfill
from yappin.scripts.mint_invites import mint_invites
from yappin.scripts.recount_counters import (
    CounterDrift,
    find_counter_drift,
    repair_counter_drift,
)
from yappin.store import MemoryStore


@pytest.fixture()
def legacy_store() -> MemoryStore:
    """Store holding replies written before replyTo was recorded."""
    return MemoryStore({
        "yaps": {
            "p1": {"id": "p1", "uid": "u1", "replies": 2},
            "r1": {"id": "r1", "uid": "u2"},
            "r2": {"id": "r2", "uid": "u2", "replyTo": "p1"},
            "r3": {"id": "r3", "uid": "u3", "replyTo": "elsewhere"},
        },
        "yapReplies": {
            "p1": {"r1": True, "r2": True, "r3": True, "gone": True},
        },
    })


@pytest.mark.asyncio
async def test_backfill_plans_only_missing_links(legacy_store) -> None:
    updates = await plan_reply_backfill(legacy_store)

    assert updates == {"yaps/r1/replyTo": "p1", "yaps/r3/replyTo": "p1"}


@pytest.mark.asyncio
async def test_backfill_is_idempotent(legacy_store) -> None:
    assert await backfill_reply_links(legacy_store, dry_run=True) == 2
    assert await legacy_store.get("yaps/r1/replyTo") is None

    assert await backfill_reply_links(legacy_store) == 2
    assert await legacy_store.get("yaps/r1/replyTo") == "p1"
    assert await backfill_reply_links(legacy_store) == 0


@pytest.mark.asyncio
async def test_recount_finds_and_repairs_reply_drift(registry, users, identity, store) -> None:
    identity.switch(users["alice"])
    parent = await registry.content.create_yap("Y1")
    identity.switch(users["bob"])
    await asyncio.gather(
        registry.content.create_yap("one", reply_to=parent.id),
        registry.content.create_yap("two", reply_to=parent.id),
    )

    drift = await find_counter_drift(store)
    assert drift == [CounterDrift(path=f"yaps/{parent.id}/replies", stored=1, actual=2)]

    await repair_counter_drift(store, drift)
    assert await store.get(f"yaps/{parent.id}/replies") == 2
    assert await find_counter_drift(store) == []


@pytest.mark.asyncio
async def test_recount_checks_group_and_follow_counters() -> None:
    store = MemoryStore({
        "groups": {"g1": {"memberCount": 5}},
        "groupMembers": {"g1": {"u1": {"role": "admin"}}},
        "users": {"u1": {"followersCount": 0, "followingCount": 1}},
        "followers": {"u1": {"u2": True}},
    })

    drift = {item.path: (item.stored, item.actual) for item in await find_counter_drift(store)}

    assert drift == {
        "groups/g1/memberCount": (5, 1),
        "users/u1/followersCount": (0, 1),
        "users/u1/followingCount": (1, 0),
    }


@pytest.mark.asyncio
async def test_mint_invites_creates_system_codes(mocker) -> None:
    store = MemoryStore()
    mocker.patch("yappin.scripts.mint_invites.create_store", return_value=store)

    codes = await mint_invites(2)

    assert len(codes) == 2
    for code in codes:
        assert (await store.get(f"inviteCodes/{code}"))["createdBy"] == "system"
    assert await store.get("users") is None
