# src/yappin/api/v1/endpoints/groups.py
"""Group endpoints for the Yappin' API."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from yappin.api.v1.dependencies import ServicesDep
from yappin.schemas.group import (
    Group,
    GroupContent,
    GroupCreate,
    GroupJoinRequest,
    GroupMemberView,
    GroupMessage,
    GroupSettingsUpdate,
    JoinOutcome,
)
from yappin.schemas.yap import Yap

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("/", response_model=list[Group])
async def list_groups(services: ServicesDep, q: str | None = Query(None)) -> list[Group]:
    """List public groups, optionally filtered by a search term."""
    if q:
        return await services.groups.search_groups(q)
    return await services.groups.list_public_groups()


@router.get("/mine", response_model=list[Group])
async def list_my_groups(services: ServicesDep) -> list[Group]:
    return await services.groups.list_my_groups()


@router.post("/", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(payload: GroupCreate, services: ServicesDep) -> Group:
    """Create a new group with the caller as admin."""
    return await services.groups.create_group(
        payload.name,
        payload.description,
        payload.topic,
        is_public=payload.is_public,
        image_url=payload.image_url,
    )


@router.post("/join/{code}", response_model=Group)
async def join_by_invite_code(code: str, services: ServicesDep) -> Group:
    return await services.groups.join_group_by_invite_code(code)


@router.get("/{group_id}", response_model=Group)
async def get_group(group_id: str, services: ServicesDep) -> Group:
    return await services.groups.get_group(group_id)


@router.patch("/{group_id}", response_model=Group)
async def update_group(group_id: str, payload: GroupSettingsUpdate, services: ServicesDep) -> Group:
    changes = payload.model_dump(exclude_unset=True)
    return await services.groups.update_group_settings(group_id, **changes)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: str, services: ServicesDep) -> None:
    await services.groups.delete_group(group_id)


@router.post("/{group_id}/join", response_model=JoinOutcome)
async def join_group(group_id: str, services: ServicesDep) -> JoinOutcome:
    """Join a public group or request to join a private one."""
    return await services.groups.request_join_group(group_id)


@router.post("/{group_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_group(group_id: str, services: ServicesDep) -> None:
    await services.groups.leave_group(group_id)


@router.get("/{group_id}/members", response_model=list[GroupMemberView])
async def list_members(group_id: str, services: ServicesDep) -> list[GroupMemberView]:
    return await services.groups.list_group_members(group_id)


@router.post("/{group_id}/members/{member_uid}/promote", status_code=status.HTTP_204_NO_CONTENT)
async def promote_member(group_id: str, member_uid: str, services: ServicesDep) -> None:
    await services.groups.promote_member(group_id, member_uid)


@router.post("/{group_id}/members/{member_uid}/demote", status_code=status.HTTP_204_NO_CONTENT)
async def demote_member(group_id: str, member_uid: str, services: ServicesDep) -> None:
    await services.groups.demote_member(group_id, member_uid)


@router.delete("/{group_id}/members/{member_uid}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(group_id: str, member_uid: str, services: ServicesDep) -> None:
    await services.groups.remove_member(group_id, member_uid)


@router.get("/{group_id}/requests", response_model=list[GroupJoinRequest])
async def list_join_requests(group_id: str, services: ServicesDep) -> list[GroupJoinRequest]:
    return await services.groups.list_join_requests(group_id)


@router.post("/{group_id}/requests/{requester_uid}/approve", status_code=status.HTTP_204_NO_CONTENT)
async def approve_join_request(group_id: str, requester_uid: str, services: ServicesDep) -> None:
    await services.groups.approve_join_request(group_id, requester_uid)


@router.post("/{group_id}/requests/{requester_uid}/reject", status_code=status.HTTP_204_NO_CONTENT)
async def reject_join_request(group_id: str, requester_uid: str, services: ServicesDep) -> None:
    await services.groups.reject_join_request(group_id, requester_uid)


@router.get("/{group_id}/yaps", response_model=list[Yap])
async def list_group_yaps(group_id: str, services: ServicesDep) -> list[Yap]:
    return await services.groups.list_group_yaps(group_id)


@router.post("/{group_id}/yaps", response_model=Yap, status_code=status.HTTP_201_CREATED)
async def post_group_yap(group_id: str, payload: GroupContent, services: ServicesDep) -> Yap:
    return await services.groups.post_group_yap(group_id, payload.text, payload.media)


@router.get("/{group_id}/messages", response_model=list[GroupMessage])
async def list_group_messages(group_id: str, services: ServicesDep) -> list[GroupMessage]:
    return await services.groups.list_group_messages(group_id)


@router.post(
    "/{group_id}/messages",
    response_model=GroupMessage,
    status_code=status.HTTP_201_CREATED,
)
async def send_group_message(
    group_id: str,
    payload: GroupContent,
    services: ServicesDep,
) -> GroupMessage:
    return await services.groups.send_group_message(group_id, payload.text, payload.media)
