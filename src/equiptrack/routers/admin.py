"""
Admin read APIs: activity logs, item history and inventory check schedules
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.core import get_db
from ..dependencies import require_admin, get_reminder_service, get_post_commit_runner, get_session_factory
from ..schemas.activity import ActivityLogListResponse, ItemHistoryResponse
from ..schemas.auth import TokenPayload
from ..schemas.enums import ActivityType
from ..schemas.notifications import InventoryCheckCreate, InventoryCheckRead
from ..services import audit_service
from ..services.inventory_checks import create_inventory_check
from ..services.post_commit import PostCommitRunner
from ..services.reminder_service import ReminderService

router = APIRouter(tags=["admin"])


@router.get("/v1/admin/activity-logs", response_model=ActivityLogListResponse)
async def list_activity_logs(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Number of items per page"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    activity_type: Optional[ActivityType] = Query(None, alias="type"),
    user_id: Optional[str] = Query(None, alias="userId"),
    item_serial: Optional[str] = Query(None, alias="itemSerial"),
    db: AsyncSession = Depends(get_db),
    current_user: TokenPayload = Depends(require_admin),
):
    """Filtered activity log"""
    return await audit_service.list_activity_logs(
        db,
        page=page,
        limit=limit,
        start_date=start_date,
        end_date=end_date,
        activity_type=activity_type,
        user_id=user_id,
        item_serial=item_serial,
    )


@router.get("/v1/items/{serial_number}/history", response_model=ItemHistoryResponse)
async def get_item_history(
    serial_number: str,
    db: AsyncSession = Depends(get_db),
    current_user: TokenPayload = Depends(require_admin),
):
    """Usage periods and activity of one item"""
    return await audit_service.get_item_history(db, serial_number)


@router.post("/v1/inventory-checks", response_model=InventoryCheckRead, status_code=201)
async def create_check(
    data: InventoryCheckCreate,
    db: AsyncSession = Depends(get_db),
    current_user: TokenPayload = Depends(require_admin),
    reminders: ReminderService = Depends(get_reminder_service),
    runner: PostCommitRunner = Depends(get_post_commit_runner),
    session_factory=Depends(get_session_factory),
):
    """Create a recurring inventory check schedule"""
    return await create_inventory_check(
        db, data, current_user, session_factory, reminders=reminders, runner=runner
    )
