"""
Notification inbox, reminder acknowledgement and the reminder sweep trigger
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.core import get_db
from ..dependencies import (
    get_current_active_user,
    require_admin,
    get_notification_service,
    get_reminder_service,
)
from ..schemas.auth import TokenPayload
from ..schemas.enums import ReminderType
from ..schemas.notifications import (
    NotificationAction,
    NotificationRead,
    ReminderRead,
    SweepResult,
    UnreadCountResponse,
)
from ..services.notification_service import NotificationService
from ..services.reminder_service import ReminderService

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])
reminders_router = APIRouter(prefix="/v1/reminders", tags=["reminders"])
cron_router = APIRouter(prefix="/v1/cron", tags=["reminders"])


@router.get("/")
async def list_notifications(
    count_only: bool = Query(False, alias="countOnly", description="Only return the unread count"),
    overdue_only: bool = Query(False, alias="overdueOnly", description="Only overdue, unacknowledged reminders"),
    reminder_type: Optional[ReminderType] = Query(None, alias="type", description="Filter by reminder type"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Number of items per page"),
    db: AsyncSession = Depends(get_db),
    current_user: TokenPayload = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
):
    """The caller's notifications"""
    if count_only:
        return UnreadCountResponse(count=await service.get_unread_count(db, current_user.user_id))
    if overdue_only:
        overdue = await service.list_overdue_notifications(db, current_user.user_id)
        return [NotificationRead.model_validate(n) for n in overdue]
    return await service.list_notifications(
        db, current_user.user_id, page=page, limit=limit, reminder_type=reminder_type
    )


@router.post("/")
async def bulk_update_notifications(
    body: NotificationAction,
    db: AsyncSession = Depends(get_db),
    current_user: TokenPayload = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark all read or delete all read notifications"""
    if body.action == "markAllRead":
        updated = await service.mark_all_read(db, current_user.user_id)
        return {"action": body.action, "count": updated}
    deleted = await service.delete_all_read(db, current_user.user_id)
    return {"action": body.action, "count": deleted}


@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: TokenPayload = Depends(get_current_active_user),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark one notification read"""
    return await service.mark_notification_read(db, current_user.user_id, notification_id)


@reminders_router.post("/{reminder_id}/acknowledge", response_model=ReminderRead)
async def acknowledge_reminder(
    reminder_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: TokenPayload = Depends(get_current_active_user),
    reminders: ReminderService = Depends(get_reminder_service),
):
    """Dismiss one of the caller's reminders"""
    return await reminders.acknowledge_reminder(db, reminder_id, current_user)


@cron_router.post("/reminders", response_model=SweepResult)
async def run_reminder_sweep(
    force: bool = Query(False, description="Run even if a sweep ran recently"),
    current_user: TokenPayload = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    """Trigger the reminder sweep"""
    return await service.run_reminder_sweep(force=force)
