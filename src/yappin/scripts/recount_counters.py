"""Report and repair derived counters that drifted from their indices.

Reply counts and approval member counts are maintained by read-then-write
and can lose updates under concurrent writers. This tool recomputes every
derived counter from the index it summarises:

* ``yaps/{id}/replies``      from ``yapReplies/{id}``
* ``yaps/{id}/likes``        from ``likes/{id}``
* ``yaps/{id}/reyaps``       from ``reyaps/{id}``
* ``groups/{id}/memberCount`` from ``groupMembers/{id}``
* ``users/{uid}/followersCount`` and ``followingCount`` from the follow indices
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Any

from yappin.core.settings import settings
from yappin.store import Store, create_store, join

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CounterDrift:
    """A stored counter that disagrees with its index."""

    path: str
    stored: int
    actual: int


def _compare(drift: list[CounterDrift], path: str, stored: Any, index: Any) -> None:
    actual = len(index or {})
    stored = stored or 0
    if stored != actual:
        drift.append(CounterDrift(path=path, stored=stored, actual=actual))


async def find_counter_drift(store: Store) -> list[CounterDrift]:
    """Return every counter whose value differs from its index cardinality."""
    (
        yaps, replies, likes, reyaps, groups, members, users, followers, following,
    ) = await asyncio.gather(
        store.get("yaps"),
        store.get("yapReplies"),
        store.get("likes"),
        store.get("reyaps"),
        store.get("groups"),
        store.get("groupMembers"),
        store.get("users"),
        store.get("followers"),
        store.get("following"),
    )
    replies, likes, reyaps = replies or {}, likes or {}, reyaps or {}
    members, followers, following = members or {}, followers or {}, following or {}

    drift: list[CounterDrift] = []
    for yap_id, yap in (yaps or {}).items():
        _compare(drift, join("yaps", yap_id, "replies"), yap.get("replies"), replies.get(yap_id))
        _compare(drift, join("yaps", yap_id, "likes"), yap.get("likes"), likes.get(yap_id))
        _compare(drift, join("yaps", yap_id, "reyaps"), yap.get("reyaps"), reyaps.get(yap_id))
    for group_id, group in (groups or {}).items():
        _compare(
            drift,
            join("groups", group_id, "memberCount"),
            group.get("memberCount"),
            members.get(group_id),
        )
    for uid, user in (users or {}).items():
        _compare(
            drift,
            join("users", uid, "followersCount"),
            user.get("followersCount"),
            followers.get(uid),
        )
        _compare(
            drift,
            join("users", uid, "followingCount"),
            user.get("followingCount"),
            following.get(uid),
        )
    return drift


async def repair_counter_drift(store: Store, drift: list[CounterDrift]) -> None:
    """Overwrite every drifted counter with its recomputed value in one batch."""
    if not drift:
        return
    await store.update({item.path: item.actual for item in drift})
    logger.info("Repaired %d drifted counters", len(drift))


def main() -> None:
    parser = argparse.ArgumentParser(description="Recount derived counters")
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Write the recomputed values instead of only reporting them.",
    )
    args = parser.parse_args()

    async def _run() -> list[CounterDrift]:
        store = create_store(settings)
        try:
            drift = await find_counter_drift(store)
            if args.apply:
                await repair_counter_drift(store, drift)
            return drift
        finally:
            await store.close()

    try:
        drift = asyncio.run(_run())
    except Exception as exc:
        print(f"[recount_counters] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    for item in drift:
        print(f"[recount_counters] {item.path}: stored={item.stored} actual={item.actual}")
    action = "repaired" if args.apply else "found"
    print(f"[recount_counters] {action} {len(drift)} drifted counters")


if __name__ == "__main__":
    main()
