# mypy: ignore-errors
# tests/services/test_social.py
"""Tests for the follow graph and follow requests."""

import pytest

from yappin.core.errors import NotFoundError, ValidationError
from yappin.schemas.user import FollowState


def notification_types(tree, uid):
    return sorted(record["type"] for record in (tree("notifications", uid) or {}).values())


@pytest.fixture()
async def private_bob(registry, users, identity):
    identity.switch(users["bob"])
    await registry.identity.set_require_approval(True)
    return users["bob"]


@pytest.mark.asyncio
async def test_following_a_public_account_writes_both_halves(
    registry, users, identity, tree, ui_events
) -> None:
    alice, bob = users["alice"], users["bob"]
    identity.switch(alice)

    assert await registry.social.toggle_follow(bob) == FollowState.FOLLOWING

    assert tree("following", alice, bob) is True
    assert tree("followers", bob, alice) is True
    assert tree("users", alice, "followingCount") == 1
    assert tree("users", bob, "followersCount") == 1
    assert notification_types(tree, bob) == ["follow"]
    assert ui_events[-1].kind == "timeline_refresh"


@pytest.mark.asyncio
async def test_toggling_twice_restores_the_graph(registry, users, identity, tree) -> None:
    identity.switch(users["alice"])

    await registry.social.toggle_follow(users["bob"])
    assert await registry.social.toggle_follow(users["bob"]) == FollowState.NONE

    assert tree("following") is None
    assert tree("followers") is None
    assert tree("users", users["alice"], "followingCount") == 0
    assert tree("users", users["bob"], "followersCount") == 0


@pytest.mark.asyncio
async def test_cannot_follow_yourself(registry, users, identity) -> None:
    identity.switch(users["alice"])

    with pytest.raises(ValidationError):
        await registry.social.toggle_follow(users["alice"])


@pytest.mark.asyncio
async def test_following_a_missing_user(registry, users, identity, tree) -> None:
    identity.switch(users["alice"])

    with pytest.raises(NotFoundError):
        await registry.social.toggle_follow("uid-ghost")
    assert tree("following") is None


@pytest.mark.asyncio
async def test_private_account_approval_creates_mutual_edges(
    registry, users, identity, tree, private_bob
) -> None:
    alice, bob = users["alice"], private_bob

    identity.switch(alice)
    assert await registry.social.toggle_follow(bob) == FollowState.PENDING
    assert tree("followRequests", bob, alice)["status"] == "pending"
    assert tree("following") is None
    assert notification_types(tree, bob) == ["follow_request"]
    assert await registry.social.get_follow_state(bob) == FollowState.PENDING

    identity.switch(bob)
    requests = await registry.social.list_follow_requests()
    assert [request.uid for request in requests] == [alice]
    await registry.social.approve_follow_request(alice)

    assert tree("following", alice, bob) is True
    assert tree("following", bob, alice) is True
    assert tree("followers", bob, alice) is True
    assert tree("followers", alice, bob) is True
    assert tree("followRequests") is None
    assert notification_types(tree, alice) == ["follow_request_approved"]
    for uid in (alice, bob):
        assert tree("users", uid, "followersCount") == 1
        assert tree("users", uid, "followingCount") == 1
    assert await registry.social.is_mutual_follow(alice, bob)


@pytest.mark.asyncio
async def test_approval_counts_only_new_edges(registry, users, identity, tree, private_bob) -> None:
    alice, bob = users["alice"], private_bob

    identity.switch(bob)
    await registry.social.toggle_follow(alice)
    identity.switch(alice)
    await registry.social.toggle_follow(bob)
    identity.switch(bob)
    await registry.social.approve_follow_request(alice)

    assert tree("users", bob, "followingCount") == 1
    assert tree("users", bob, "followersCount") == 1
    assert tree("users", alice, "followingCount") == 1
    assert tree("users", alice, "followersCount") == 1


@pytest.mark.asyncio
async def test_cancelling_a_pending_request(registry, users, identity, tree, private_bob) -> None:
    identity.switch(users["alice"])

    await registry.social.toggle_follow(private_bob)
    assert await registry.social.toggle_follow(private_bob) == FollowState.NONE

    assert tree("followRequests") is None
    assert await registry.social.get_follow_state(private_bob) == FollowState.NONE


@pytest.mark.asyncio
async def test_rejecting_a_request(registry, users, identity, tree, private_bob) -> None:
    identity.switch(users["alice"])
    await registry.social.toggle_follow(private_bob)

    identity.switch(private_bob)
    await registry.social.reject_follow_request(users["alice"])

    assert tree("followRequests") is None
    assert tree("following") is None
    with pytest.raises(NotFoundError):
        await registry.social.reject_follow_request(users["alice"])
    with pytest.raises(NotFoundError):
        await registry.social.approve_follow_request(users["alice"])


@pytest.mark.asyncio
async def test_remove_follower_asks_for_confirmation(registry, users, identity, tree) -> None:
    alice, bob = users["alice"], users["bob"]
    identity.switch(alice)
    await registry.social.toggle_follow(bob)

    identity.switch(bob)
    asked = []

    def decline(uid):
        asked.append(uid)
        return False

    assert await registry.social.remove_follower(alice, decline) is False
    assert asked == [alice]
    assert tree("followers", bob, alice) is True

    async def accept(uid):
        return True

    assert await registry.social.remove_follower(alice, accept) is True
    assert tree("following") is None
    assert tree("followers") is None
    assert tree("users", bob, "followersCount") == 0
    assert tree("users", alice, "followingCount") == 0

    with pytest.raises(NotFoundError):
        await registry.social.remove_follower(alice, accept)


@pytest.mark.asyncio
async def test_follow_listings_and_suggestions(registry, users, identity) -> None:
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    identity.switch(bob)
    await registry.social.toggle_follow(carol)
    identity.switch(alice)
    await registry.social.toggle_follow(bob)

    assert await registry.social.list_following(alice) == [bob]
    assert await registry.social.list_followers(bob) == [alice]
    assert not await registry.social.is_mutual_follow(alice, bob)

    suggestions = await registry.social.suggest_users()
    assert [user.uid for user in suggestions] == [carol]
