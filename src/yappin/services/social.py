"""Follow graph.

Edges are stored twice, ``following/{a}/{b}`` and ``followers/{b}/{a}``,
and both halves are always written or removed in the same update. Accounts
with ``privacy.requireApproval`` receive a pending request at
``followRequests/{target}/{requester}`` instead of an edge.

Per (requester, target) pair the relationship moves through
``none -> pending -> following`` or ``none -> following`` and always returns
to ``none`` before it can start again.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from yappin.core.errors import NotFoundError, ValidationError
from yappin.schemas.notification import NotificationType
from yappin.schemas.user import FollowRequest, FollowState, PublicUser
from yappin.services.notifications import NotificationService
from yappin.services.runtime import BaseService
from yappin.store import join

logger = logging.getLogger(__name__)

ConfirmGate = Callable[[str], bool | Awaitable[bool]]


def _edge_updates(follower: str, followee: str, value: Any) -> dict[str, Any]:
    return {
        join("following", follower, followee): value,
        join("followers", followee, follower): value,
    }


class SocialService(BaseService):
    """Follow, unfollow and follow-request workflows."""

    def __init__(self, *args: Any, notifications: NotificationService) -> None:
        super().__init__(*args)
        self.notifications = notifications

    async def _require_user(self, uid: str) -> dict[str, Any]:
        record = await self.store.get(join("users", uid))
        if not record:
            raise NotFoundError("User not found")
        return record

    async def _adjust_counter(self, uid: str, field: str, delta: int) -> None:
        await self.store.transaction(
            join("users", uid, field),
            lambda count: max(0, (count or 0) + delta),
        )

    async def _adjust_follow_counts(self, follower: str, followee: str, delta: int) -> None:
        await self._adjust_counter(follower, "followingCount", delta)
        await self._adjust_counter(followee, "followersCount", delta)

    async def toggle_follow(self, target_uid: str) -> FollowState:
        """Follow, unfollow or cancel a pending request for ``target_uid``.

        Returns:
            The relationship after the toggle.

        Raises:
            ValidationError: If the caller targets themselves.
            NotFoundError: If either profile is missing when a new edge or
                request has to be created.
        """
        uid = self.require_identity()
        if uid == target_uid:
            raise ValidationError("You cannot follow yourself")

        following, pending = await asyncio.gather(
            self.store.get(join("following", uid, target_uid)),
            self.store.get(join("followRequests", target_uid, uid)),
        )

        if following:
            await self.store.update(_edge_updates(uid, target_uid, None))
            await self._adjust_follow_counts(uid, target_uid, -1)
            logger.info("User %s unfollowed %s", uid, target_uid)
            self.collaborators.emit("timeline_refresh", uid=uid)
            return FollowState.NONE

        if pending:
            await self.store.set(join("followRequests", target_uid, uid), None)
            logger.info("User %s cancelled follow request to %s", uid, target_uid)
            return FollowState.NONE

        requester, target = await asyncio.gather(
            self._require_user(uid),
            self._require_user(target_uid),
        )
        updates: dict[str, Any] = {}
        if target.get("privacy", {}).get("requireApproval"):
            request = FollowRequest(timestamp=self.now())
            updates[join("followRequests", target_uid, uid)] = request.to_store()
            self.notifications.stage(
                updates,
                target_uid,
                NotificationType.FOLLOW_REQUEST,
                uid,
                from_username=requester.get("username"),
            )
            await self.store.update(updates)
            logger.info("User %s requested to follow %s", uid, target_uid)
            return FollowState.PENDING

        updates.update(_edge_updates(uid, target_uid, True))
        self.notifications.stage(
            updates,
            target_uid,
            NotificationType.FOLLOW,
            uid,
            from_username=requester.get("username"),
        )
        await self.store.update(updates)
        await self._adjust_follow_counts(uid, target_uid, 1)
        logger.info("User %s followed %s", uid, target_uid)
        self.collaborators.emit("timeline_refresh", uid=uid)
        return FollowState.FOLLOWING

    async def approve_follow_request(self, requester_uid: str) -> None:
        """Accept a pending request and create a follow edge in both directions.

        The four counters are adjusted by separate transactions afterwards,
        and only for edges that did not exist before.
        """
        uid = self.require_identity()
        request = await self.store.get(join("followRequests", uid, requester_uid))
        if not request:
            raise NotFoundError("Follow request not found")

        requester_follows, caller_follows = await asyncio.gather(
            self.store.get(join("following", requester_uid, uid)),
            self.store.get(join("following", uid, requester_uid)),
        )
        caller = await self._require_user(uid)

        updates: dict[str, Any] = {join("followRequests", uid, requester_uid): None}
        updates.update(_edge_updates(requester_uid, uid, True))
        updates.update(_edge_updates(uid, requester_uid, True))
        self.notifications.stage(
            updates,
            requester_uid,
            NotificationType.FOLLOW_REQUEST_APPROVED,
            uid,
            from_username=caller.get("username"),
        )
        await self.store.update(updates)

        if not requester_follows:
            await self._adjust_follow_counts(requester_uid, uid, 1)
        if not caller_follows:
            await self._adjust_follow_counts(uid, requester_uid, 1)
        logger.info("User %s approved follow request from %s", uid, requester_uid)
        self.collaborators.emit("follow_requests_changed", uid=uid)

    async def reject_follow_request(self, requester_uid: str) -> None:
        """Discard a pending request without creating any edge."""
        uid = self.require_identity()
        path = join("followRequests", uid, requester_uid)
        if not await self.store.exists(path):
            raise NotFoundError("Follow request not found")
        await self.store.set(path, None)
        logger.info("User %s rejected follow request from %s", uid, requester_uid)
        self.collaborators.emit("follow_requests_changed", uid=uid)

    async def remove_follower(self, follower_uid: str, confirm: ConfirmGate) -> bool:
        """Remove ``follower_uid`` from the caller's followers.

        Args:
            follower_uid: The follower to remove.
            confirm: Gate asked before anything changes; it receives the
                follower id and may be sync or async.

        Returns:
            False if the gate declined, True once the edge is removed.
        """
        uid = self.require_identity()
        if not await self.store.exists(join("followers", uid, follower_uid)):
            raise NotFoundError("Not a follower")

        approved = confirm(follower_uid)
        if inspect.isawaitable(approved):
            approved = await approved
        if not approved:
            return False

        await self.store.update(_edge_updates(follower_uid, uid, None))
        await self._adjust_follow_counts(follower_uid, uid, -1)
        logger.info("User %s removed follower %s", uid, follower_uid)
        return True

    async def is_following(self, follower: str, followee: str) -> bool:
        return bool(await self.store.get(join("following", follower, followee)))

    async def is_mutual_follow(self, a: str, b: str) -> bool:
        """Return True when both directions of the follow edge exist."""
        forward, backward = await asyncio.gather(
            self.is_following(a, b),
            self.is_following(b, a),
        )
        return forward and backward

    async def get_follow_state(self, target_uid: str) -> FollowState:
        """Return the caller's relationship to ``target_uid``."""
        uid = self.require_identity()
        following, pending = await asyncio.gather(
            self.store.get(join("following", uid, target_uid)),
            self.store.get(join("followRequests", target_uid, uid)),
        )
        if following:
            return FollowState.FOLLOWING
        if pending:
            return FollowState.PENDING
        return FollowState.NONE

    async def list_following(self, uid: str) -> list[str]:
        return sorted(await self.store.get(join("following", uid)) or {})

    async def list_followers(self, uid: str) -> list[str]:
        return sorted(await self.store.get(join("followers", uid)) or {})

    async def list_follow_requests(self) -> list[FollowRequest]:
        """Return the caller's pending requests, newest first."""
        uid = self.require_identity()
        records = await self.store.get(join("followRequests", uid)) or {}
        requests = [
            FollowRequest.model_validate({**record, "uid": requester})
            for requester, record in records.items()
        ]
        requests.sort(key=lambda request: request.timestamp, reverse=True)
        return requests

    async def suggest_users(self, limit: int = 10) -> list[PublicUser]:
        """Return accounts the caller does not follow yet, most followed first."""
        uid = self.require_identity()
        users, following = await asyncio.gather(
            self.store.get("users"),
            self.store.get(join("following", uid)),
        )
        following = following or {}
        candidates = [
            PublicUser.model_validate(record)
            for other, record in (users or {}).items()
            if other != uid and other not in following
        ]
        candidates.sort(key=lambda user: user.followers_count, reverse=True)
        return candidates[:limit]
