# src/yappin/api/v1/endpoints/yaps.py
"""Yap endpoints for the Yappin' API."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from yappin.api.v1.dependencies import ServicesDep
from yappin.schemas.yap import InteractionStatus, ToggleResult, Yap, YapCreate, YapView

router = APIRouter(prefix="/yaps", tags=["yaps"])


@router.post("/", response_model=Yap, status_code=status.HTTP_201_CREATED)
async def create_yap(payload: YapCreate, services: ServicesDep) -> Yap:
    """Post a yap, or a reply when ``replyTo`` is set."""
    return await services.content.create_yap(
        text=payload.text,
        media=payload.media,
        reply_to=payload.reply_to,
    )


@router.get("/timeline", response_model=list[YapView])
async def timeline(services: ServicesDep, limit: int = Query(50, ge=1, le=200)) -> list[YapView]:
    """Top-level yaps from the caller and everyone they follow."""
    return await services.content.load_timeline(limit)


@router.get("/{yap_id}", response_model=Yap)
async def get_yap(yap_id: str, services: ServicesDep) -> Yap:
    return await services.content.get_yap(yap_id)


@router.delete("/{yap_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_yap(yap_id: str, services: ServicesDep) -> None:
    await services.content.delete_yap(yap_id)


@router.get("/{yap_id}/replies", response_model=list[YapView])
async def get_replies(yap_id: str, services: ServicesDep) -> list[YapView]:
    return await services.content.get_replies(yap_id)


@router.get("/{yap_id}/status", response_model=InteractionStatus)
async def get_status(yap_id: str, services: ServicesDep) -> InteractionStatus:
    return await services.content.get_interaction_status(yap_id)


@router.post("/{yap_id}/like", response_model=ToggleResult)
async def toggle_like(yap_id: str, services: ServicesDep) -> ToggleResult:
    return await services.content.toggle_like(yap_id)


@router.post("/{yap_id}/reyap", response_model=ToggleResult)
async def toggle_reyap(yap_id: str, services: ServicesDep) -> ToggleResult:
    return await services.content.toggle_reyap(yap_id)
