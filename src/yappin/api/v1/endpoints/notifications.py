# src/yappin/api/v1/endpoints/notifications.py
"""Notification endpoints for the Yappin' API."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from yappin.api.v1.dependencies import ServicesDep
from yappin.schemas.notification import Notification

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[Notification])
async def list_notifications(
    services: ServicesDep,
    limit: int = Query(50, ge=1, le=200),
) -> list[Notification]:
    return await services.notifications.list_notifications(limit)


@router.get("/unread")
async def unread_count(services: ServicesDep) -> dict[str, int]:
    return {"unread": await services.notifications.unread_count()}


@router.post("/read-all")
async def mark_all_read(services: ServicesDep) -> dict[str, int]:
    return {"updated": await services.notifications.mark_all_read()}


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(notification_id: str, services: ServicesDep) -> None:
    await services.notifications.mark_read(notification_id)
