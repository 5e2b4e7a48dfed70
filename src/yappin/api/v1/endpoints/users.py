# src/yappin/api/v1/endpoints/users.py
"""User profile endpoints for the Yappin' API."""

from __future__ import annotations

from fastapi import APIRouter, Query

from yappin.api.v1.dependencies import CurrentUidDep, ServicesDep
from yappin.schemas.user import PrivacyUpdate, ProfileUpdate, PublicUser, User
from yappin.schemas.yap import YapView

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=User)
async def get_me(uid: CurrentUidDep, services: ServicesDep) -> User:
    """Return the caller's full profile."""
    return await services.identity.get_user(uid)


@router.patch("/me", response_model=User)
async def update_me(payload: ProfileUpdate, uid: CurrentUidDep, services: ServicesDep) -> User:
    """Update the fields present in the request body."""
    provided = payload.model_fields_set
    if "display_name" in provided:
        await services.identity.update_display_name(payload.display_name)
    if "bio" in provided:
        await services.identity.update_bio(payload.bio)
    if "photo_url" in provided:
        await services.identity.update_photo_url(payload.photo_url)
    return await services.identity.get_user(uid)


@router.patch("/me/privacy", response_model=User)
async def update_privacy(payload: PrivacyUpdate, uid: CurrentUidDep, services: ServicesDep) -> User:
    """Toggle follow approval and reyap permission."""
    if payload.require_approval is not None:
        await services.identity.set_require_approval(payload.require_approval)
    if payload.never_allow_reyaps is not None:
        await services.identity.set_never_allow_reyaps(payload.never_allow_reyaps)
    return await services.identity.get_user(uid)


@router.get("/search", response_model=list[PublicUser])
async def search_users(
    services: ServicesDep,
    q: str = Query(..., min_length=1),
) -> list[PublicUser]:
    return await services.identity.search_users(q)


@router.get("/by-username/{username}", response_model=PublicUser)
async def get_by_username(username: str, services: ServicesDep) -> PublicUser:
    return await services.identity.get_profile_by_username(username)


@router.get("/{uid}", response_model=PublicUser)
async def get_user(uid: str, services: ServicesDep) -> PublicUser:
    return await services.identity.get_public_profile(uid)


@router.get("/{uid}/yaps", response_model=list[YapView])
async def list_user_yaps(uid: str, services: ServicesDep) -> list[YapView]:
    """List a user's top-level yaps, newest first."""
    return await services.content.list_user_yaps(uid)


@router.get("/{uid}/followers", response_model=list[str])
async def list_followers(uid: str, services: ServicesDep) -> list[str]:
    return await services.social.list_followers(uid)


@router.get("/{uid}/following", response_model=list[str])
async def list_following(uid: str, services: ServicesDep) -> list[str]:
    return await services.social.list_following(uid)
