# src/yappin/api/v1/endpoints/invites.py
"""Invite-code endpoints for the Yappin' API."""

from __future__ import annotations

from fastapi import APIRouter, status

from yappin.api.v1.dependencies import AnonymousServicesDep, CurrentUidDep, ServicesDep
from yappin.schemas.invite import InviteCode, InviteValidation

router = APIRouter(prefix="/invites", tags=["invites"])


@router.get("/", response_model=list[InviteCode])
async def list_my_invites(services: ServicesDep) -> list[InviteCode]:
    return await services.invites.list_invite_codes()


@router.post("/", response_model=InviteCode, status_code=status.HTTP_201_CREATED)
async def create_invite(uid: CurrentUidDep, services: ServicesDep) -> InviteCode:
    return await services.invites.create_invite_code(uid)


@router.get("/{code}/validate", response_model=InviteValidation)
async def validate_invite(code: str, services: AnonymousServicesDep) -> InviteValidation:
    """Check an invite code before signing up."""
    return InviteValidation(code=code, valid=await services.invites.validate_invite_code(code))
