# src/yappin/api/v1/endpoints/auth.py
"""Signup endpoint for the Yappin' API."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from yappin.api.v1.dependencies import AnonymousServicesDep
from yappin.core.security import create_access_token
from yappin.schemas.user import SignupRequest, SignupResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupRequest, services: AnonymousServicesDep) -> SignupResponse:
    """Create an account from an invite code and return an access token."""
    uid = uuid.uuid4().hex
    user, codes = await services.identity.sign_up(
        uid,
        payload.username,
        payload.email,
        payload.invite_code,
        display_name=payload.display_name,
        photo_url=payload.photo_url,
    )
    return SignupResponse(
        access_token=create_access_token(uid),
        user=user,
        invite_codes=[invite.code for invite in codes],
    )
