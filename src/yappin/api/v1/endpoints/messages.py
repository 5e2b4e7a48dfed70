# src/yappin/api/v1/endpoints/messages.py
"""Direct-message endpoints for the Yappin' API."""

from __future__ import annotations

from fastapi import APIRouter, status

from yappin.api.v1.dependencies import ServicesDep
from yappin.schemas.message import Conversation, Message, MessageCreate, ReactionRequest

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/conversations", response_model=list[Conversation])
async def list_conversations(services: ServicesDep) -> list[Conversation]:
    return await services.messaging.list_conversations()


@router.get("/unread")
async def total_unread(services: ServicesDep) -> dict[str, int]:
    """Sum of unread counts across the caller's conversations."""
    return {"unread": await services.messaging.total_unread()}


@router.post("/with/{other_uid}", response_model=Conversation)
async def start_conversation(other_uid: str, services: ServicesDep) -> Conversation:
    """Open a conversation with a mutual follower."""
    return await services.messaging.start_conversation(other_uid)


@router.post("/with/{other_uid}/send", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(other_uid: str, payload: MessageCreate, services: ServicesDep) -> Message:
    return await services.messaging.send_message(other_uid, payload.text, payload.media)


@router.get("/conversations/{conversation_id}", response_model=list[Message])
async def open_conversation(conversation_id: str, services: ServicesDep) -> list[Message]:
    """Return the latest messages and mark the conversation read."""
    return await services.messaging.open_conversation(conversation_id)


@router.post("/conversations/{conversation_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(conversation_id: str, services: ServicesDep) -> None:
    await services.messaging.mark_conversation_read(conversation_id)


@router.get("/conversations/{conversation_id}/unread")
async def unread_since_read(conversation_id: str, services: ServicesDep) -> dict[str, int]:
    return {"unread": await services.messaging.count_unread_since_read(conversation_id)}


@router.delete(
    "/conversations/{conversation_id}/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_message(conversation_id: str, message_id: str, services: ServicesDep) -> None:
    await services.messaging.delete_message(conversation_id, message_id)


@router.post("/conversations/{conversation_id}/{message_id}/reactions")
async def toggle_reaction(
    conversation_id: str,
    message_id: str,
    payload: ReactionRequest,
    services: ServicesDep,
) -> dict[str, str | None]:
    reaction = await services.messaging.toggle_reaction(conversation_id, message_id, payload.emoji)
    return {"reaction": reaction}
