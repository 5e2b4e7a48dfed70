# src/yappin/api/v1/endpoints/social.py
"""Follow-graph endpoints for the Yappin' API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from yappin.api.v1.dependencies import ServicesDep
from yappin.schemas.user import FollowRequest, FollowStateResponse, PublicUser

router = APIRouter(prefix="/social", tags=["social"])


@router.post("/follow/{target_uid}", response_model=FollowStateResponse)
async def toggle_follow(target_uid: str, services: ServicesDep) -> FollowStateResponse:
    """Follow, unfollow or cancel a pending request."""
    state = await services.social.toggle_follow(target_uid)
    return FollowStateResponse(state=state)


@router.get("/follow/{target_uid}", response_model=FollowStateResponse)
async def get_follow_state(target_uid: str, services: ServicesDep) -> FollowStateResponse:
    return FollowStateResponse(state=await services.social.get_follow_state(target_uid))


@router.get("/mutual/{other_uid}")
async def is_mutual(other_uid: str, services: ServicesDep) -> dict[str, bool]:
    uid = services.collaborators.require_identity()
    return {"mutual": await services.social.is_mutual_follow(uid, other_uid)}


@router.get("/requests", response_model=list[FollowRequest])
async def list_follow_requests(services: ServicesDep) -> list[FollowRequest]:
    return await services.social.list_follow_requests()


@router.post("/requests/{requester_uid}/approve", status_code=status.HTTP_204_NO_CONTENT)
async def approve_follow_request(requester_uid: str, services: ServicesDep) -> None:
    await services.social.approve_follow_request(requester_uid)


@router.post("/requests/{requester_uid}/reject", status_code=status.HTTP_204_NO_CONTENT)
async def reject_follow_request(requester_uid: str, services: ServicesDep) -> None:
    await services.social.reject_follow_request(requester_uid)


@router.delete("/followers/{follower_uid}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_follower(
    follower_uid: str,
    services: ServicesDep,
    confirm: bool = Query(False),
) -> None:
    """Remove a follower. The client must pass ``confirm=true``."""
    removed = await services.social.remove_follower(follower_uid, confirm=lambda _uid: confirm)
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Confirmation required",
        )


@router.get("/suggestions", response_model=list[PublicUser])
async def suggest_users(services: ServicesDep, limit: int = Query(10, ge=1, le=50)) -> list[PublicUser]:
    return await services.social.suggest_users(limit)
