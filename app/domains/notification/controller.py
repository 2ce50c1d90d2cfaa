"""Notification API controller."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Path, Query

from app.core.dependencies import get_persistence, get_token_claims
from app.core.security import TokenClaims
from app.domains.notification.service import NotificationService
from app.persistence.base import PersistenceAdapter
from app.persistence.records import NotificationRecord
from app.schemas.base import MessageResponse
from app.schemas.notification import (
    BulkDeleteRequest,
    DeletedCountResponse,
    NotificationCreate,
    NotificationCreated,
    UnreadCountResponse,
    UpdatedCountResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/notifications",
    tags=["notifications"],
    dependencies=[Depends(get_token_claims)],
)


def get_notification_service(
    persistence: PersistenceAdapter = Depends(get_persistence),
) -> NotificationService:
    return NotificationService(persistence)


@router.get("", response_model=List[NotificationRecord])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    claims: TokenClaims = Depends(get_token_claims),
    service: NotificationService = Depends(get_notification_service),
):
    """List the current user's notifications, newest first."""
    return await service.list_notifications(claims.id, unread_only, limit, offset)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    claims: TokenClaims = Depends(get_token_claims),
    service: NotificationService = Depends(get_notification_service),
):
    return UnreadCountResponse(count=await service.unread_count(claims.id))


@router.post("", response_model=NotificationCreated, status_code=201)
async def create_notification(
    payload: NotificationCreate,
    claims: TokenClaims = Depends(get_token_claims),
    service: NotificationService = Depends(get_notification_service),
):
    """Create a notification for the current user."""
    notification_id = await service.create(claims.id, payload.message, payload.type, payload.category)
    return NotificationCreated(id=notification_id)


@router.patch("/read-all", response_model=UpdatedCountResponse)
async def mark_all_read(
    claims: TokenClaims = Depends(get_token_claims),
    service: NotificationService = Depends(get_notification_service),
):
    updated = await service.mark_all_read(claims.id)
    return UpdatedCountResponse(message="All notifications marked as read", updated=updated)


@router.patch("/{notification_id}/read", response_model=MessageResponse)
async def mark_read(
    notification_id: int = Path(..., ge=1),
    claims: TokenClaims = Depends(get_token_claims),
    service: NotificationService = Depends(get_notification_service),
):
    await service.mark_read(claims.id, notification_id)
    return MessageResponse(message="Notification marked as read")


@router.post("/bulk-delete", response_model=DeletedCountResponse)
async def bulk_delete(
    payload: BulkDeleteRequest,
    claims: TokenClaims = Depends(get_token_claims),
    service: NotificationService = Depends(get_notification_service),
):
    """Delete several of the current user's notifications by id."""
    deleted = await service.delete_many(claims.id, payload.ids)
    return DeletedCountResponse(message="Notifications deleted", deleted=deleted)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: int = Path(..., ge=1),
    claims: TokenClaims = Depends(get_token_claims),
    service: NotificationService = Depends(get_notification_service),
):
    await service.delete(claims.id, notification_id)
    return MessageResponse(message="Notification deleted")


@router.delete("", response_model=DeletedCountResponse)
async def delete_all_notifications(
    claims: TokenClaims = Depends(get_token_claims),
    service: NotificationService = Depends(get_notification_service),
):
    deleted = await service.delete_all(claims.id)
    return DeletedCountResponse(message="All notifications deleted", deleted=deleted)
