"""
Notifications router
Project: AutoService CRM

A user's own notifications.
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import CurrentUser, Pagination
from autocrm.schemas.common import ApiResponse, Page
from autocrm.schemas.notification import MarkAllReadResult, NotificationRead
from autocrm.services.notification_service import NotificationService, notification_service

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
)


def get_notification_service() -> NotificationService:
    return notification_service


@router.get(
    "",
    summary="List own notifications",
    response_model=ApiResponse[Page[NotificationRead]],
)
async def list_notifications(
    current_user: CurrentUser,
    pagination: Pagination,
    unread_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    notifications, total = await service.get_for_user(
        db,
        current_user,
        page=pagination.page,
        limit=pagination.limit,
        unread_only=unread_only,
    )
    items = [NotificationRead.model_validate(n) for n in notifications]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.patch(
    "/read-all",
    summary="Mark all notifications as read",
    response_model=ApiResponse[MarkAllReadResult],
)
async def mark_all_notifications_read(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    updated = await service.mark_all_read(db, current_user)
    await db.commit()
    return ApiResponse(data=MarkAllReadResult(updated=updated))


@router.patch(
    "/{notification_id}/read",
    summary="Mark notification as read",
    response_model=ApiResponse[NotificationRead],
)
async def mark_notification_read(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    notification = await service.mark_read(db, current_user, notification_id)
    await db.commit()
    return ApiResponse(data=NotificationRead.model_validate(notification))


__all__ = ["router"]
