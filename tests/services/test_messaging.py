# mypy: ignore-errors
# tests/services/test_messaging.py
"""Tests for direct messages and unread bookkeeping."""

import pytest

from yappin.core.errors import AuthorizationError, NotFoundError, ValidationError
from yappin.services.messaging import MEDIA_PREVIEW, get_conversation_id


@pytest.fixture()
async def mutuals(registry, users, identity):
    """Make alice and bob follow each other and return their uids."""
    alice, bob = users["alice"], users["bob"]
    identity.switch(alice)
    await registry.social.toggle_follow(bob)
    identity.switch(bob)
    await registry.social.toggle_follow(alice)
    identity.switch(alice)
    return alice, bob


def test_conversation_id_is_order_independent() -> None:
    assert get_conversation_id("uid-b", "uid-a") == get_conversation_id("uid-a", "uid-b")
    assert get_conversation_id("uid-b", "uid-a") == "uid-a_uid-b"


@pytest.mark.asyncio
async def test_messaging_requires_a_mutual_follow(registry, users, identity) -> None:
    alice, bob = users["alice"], users["bob"]
    identity.switch(alice)
    await registry.social.toggle_follow(bob)

    with pytest.raises(AuthorizationError, match="mutually follow"):
        await registry.messaging.start_conversation(bob)
    with pytest.raises(AuthorizationError):
        await registry.messaging.send_message(bob, "hi")
    with pytest.raises(ValidationError, match="yourself"):
        await registry.messaging.start_conversation(alice)
    with pytest.raises(NotFoundError):
        await registry.messaging.start_conversation("uid-ghost")


@pytest.mark.asyncio
async def test_starting_a_conversation_writes_nothing(registry, store, mutuals) -> None:
    alice, bob = mutuals
    before = store.snapshot()

    conversation = await registry.messaging.start_conversation(bob)

    assert conversation.conversation_id == get_conversation_id(alice, bob)
    assert conversation.other_user_id == bob
    assert conversation.unread_count == 0
    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_send_updates_both_mirrors_and_notifies(registry, tree, mutuals) -> None:
    alice, bob = mutuals
    conversation_id = get_conversation_id(alice, bob)

    message = await registry.messaging.send_message(bob, "  hey  ")

    assert tree("messages", conversation_id, message.id)["text"] == "hey"
    mine = tree("conversations", alice, conversation_id)
    theirs = tree("conversations", bob, conversation_id)
    assert mine["lastMessage"] == theirs["lastMessage"] == "hey"
    assert mine["otherUserId"] == bob
    assert theirs["otherUserId"] == alice
    assert "unreadCount" not in mine
    assert theirs["unreadCount"] == 1

    notification = tree("notifications", bob, message.id)
    assert notification["type"] == "message"
    assert notification["from"] == alice
    assert notification["message"] == "hey"


@pytest.mark.asyncio
async def test_unread_count_and_read_cursor(registry, identity, tree, mutuals) -> None:
    alice, bob = mutuals
    conversation_id = get_conversation_id(alice, bob)
    await registry.messaging.send_message(bob, "one")
    await registry.messaging.send_message(bob, "two")

    identity.switch(bob)
    assert await registry.messaging.total_unread() == 2
    messages = await registry.messaging.open_conversation(conversation_id)
    assert [message.text for message in messages] == ["one", "two"]
    assert await registry.messaging.total_unread() == 0
    assert tree("conversations", bob, conversation_id, "lastReadTime") is not None

    identity.switch(alice)
    await registry.messaging.send_message(bob, "three")

    identity.switch(bob)
    assert await registry.messaging.count_unread_since_read(conversation_id) == 1
    assert await registry.messaging.total_unread() == 1
    await registry.messaging.mark_conversation_read(conversation_id)
    assert await registry.messaging.count_unread_since_read(conversation_id) == 0


@pytest.mark.asyncio
async def test_media_only_message_uses_placeholder_preview(
    registry, uploader, tree, mutuals
) -> None:
    alice, bob = mutuals

    message = await registry.messaging.send_message(bob, attachments=[("image", b"png")])

    assert uploader.calls == [("message-media", b"png")]
    assert message.media[0].url == "https://cdn.test/message-media/1"
    conversation_id = get_conversation_id(alice, bob)
    assert tree("conversations", bob, conversation_id, "lastMessage") == MEDIA_PREVIEW


@pytest.mark.asyncio
async def test_message_validation(registry, mutuals) -> None:
    _, bob = mutuals

    with pytest.raises(ValidationError):
        await registry.messaging.send_message(bob, "   ")
    with pytest.raises(ValidationError):
        await registry.messaging.send_message(bob, "x" * 2001)


@pytest.mark.asyncio
async def test_conversation_list_is_most_recent_first(registry, users, identity, mutuals) -> None:
    alice, bob = mutuals
    carol = users["carol"]
    identity.switch(carol)
    await registry.social.toggle_follow(alice)
    identity.switch(alice)
    await registry.social.toggle_follow(carol)

    await registry.messaging.send_message(bob, "to bob")
    await registry.messaging.send_message(carol, "to carol")

    conversations = await registry.messaging.list_conversations()
    assert [item.other_user_id for item in conversations] == [carol, bob]


@pytest.mark.asyncio
async def test_only_participants_can_read(registry, users, identity, mutuals) -> None:
    alice, bob = mutuals
    conversation_id = get_conversation_id(alice, bob)
    await registry.messaging.send_message(bob, "private")

    identity.switch(users["carol"])
    with pytest.raises(NotFoundError, match="Conversation not found"):
        await registry.messaging.list_messages(conversation_id)


@pytest.mark.asyncio
async def test_delete_and_react(registry, identity, tree, mutuals) -> None:
    alice, bob = mutuals
    conversation_id = get_conversation_id(alice, bob)
    message = await registry.messaging.send_message(bob, "oops")

    identity.switch(bob)
    with pytest.raises(AuthorizationError):
        await registry.messaging.delete_message(conversation_id, message.id)

    assert await registry.messaging.toggle_reaction(conversation_id, message.id, "🔥") == "🔥"
    assert tree("messages", conversation_id, message.id, "reactions") == {bob: "🔥"}
    assert await registry.messaging.toggle_reaction(conversation_id, message.id, "🔥") is None
    assert tree("messages", conversation_id, message.id, "reactions") is None

    identity.switch(alice)
    await registry.messaging.delete_message(conversation_id, message.id)
    assert tree("messages") is None
    with pytest.raises(NotFoundError):
        await registry.messaging.delete_message(conversation_id, message.id)
