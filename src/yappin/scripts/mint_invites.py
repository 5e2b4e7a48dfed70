"""Mint invite codes that are not owned by any user.

The first accounts on a fresh deployment need codes before anyone can
invite them; these are created with ``createdBy = "system"``.
"""
from __future__ import annotations

import argparse
import asyncio
import sys

from yappin.core.settings import settings
from yappin.services.invites import SYSTEM_OWNER
from yappin.services.runtime import Collaborators, ServiceRegistry
from yappin.store import create_store


async def mint_invites(count: int) -> list[str]:
    store = create_store(settings)
    try:
        registry = ServiceRegistry(store, Collaborators(current_identity=lambda: None))
        invites = await registry.invites.create_invite_codes(SYSTEM_OWNER, count)
        return [invite.code for invite in invites]
    finally:
        await store.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Mint system-owned invite codes")
    parser.add_argument("--count", type=int, default=1, help="Number of codes to create.")
    args = parser.parse_args()
    if args.count < 1:
        parser.error("--count must be at least 1")

    try:
        codes = asyncio.run(mint_invites(args.count))
    except Exception as exc:
        print(f"[mint_invites] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    for code in codes:
        print(code)


if __name__ == "__main__":
    main()
