"""Backfill ``replyTo`` on reply yaps from the ``yapReplies`` index.

Replies created before ``replyTo`` was stored are only reachable through
``yapReplies/{parentId}/{replyId}``. This tool writes the missing (or
mismatched) back-links in one batch. Running it twice changes nothing.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

from yappin.core.settings import settings
from yappin.store import Store, create_store, join

logger = logging.getLogger(__name__)


async def plan_reply_backfill(store: Store) -> dict[str, Any]:
    """Return the update set that fixes every missing ``replyTo`` link."""
    index, yaps = await asyncio.gather(store.get("yapReplies"), store.get("yaps"))
    yaps = yaps or {}
    updates: dict[str, Any] = {}
    for parent_id, replies in (index or {}).items():
        for reply_id in replies or {}:
            reply = yaps.get(reply_id)
            if reply is None:
                continue
            if reply.get("replyTo") != parent_id:
                updates[join("yaps", reply_id, "replyTo")] = parent_id
    return updates


async def backfill_reply_links(store: Store, dry_run: bool = False) -> int:
    """Apply the backfill and return how many yaps were (or would be) fixed."""
    updates = await plan_reply_backfill(store)
    if updates and not dry_run:
        await store.update(updates)
        logger.info("Backfilled replyTo on %d yaps", len(updates))
    return len(updates)


def main() -> None:
    parser = argparse.ArgumentParser(description="Backfill replyTo links on reply yaps")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many yaps need fixing without writing.",
    )
    args = parser.parse_args()

    async def _run() -> int:
        store = create_store(settings)
        try:
            return await backfill_reply_links(store, dry_run=args.dry_run)
        finally:
            await store.close()

    try:
        fixed = asyncio.run(_run())
    except Exception as exc:
        print(f"[backfill_reply_links] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    verb = "would fix" if args.dry_run else "fixed"
    print(f"[backfill_reply_links] {verb} {fixed} yaps")


if __name__ == "__main__":
    main()
