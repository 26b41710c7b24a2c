"""
Audit logging for request records and tracked entities.

Status logs and activity logs are append-only. The ``add_*`` helpers only
stage rows on the caller's session so they commit (or roll back) together
with the change they describe.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, func, or_, and_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.activity_log import ActivityLog
from ..models.items import Item, ItemHistory
from ..schemas.activity import (
    ActivityTarget,
    ActivityLogRead,
    ActivityLogListResponse,
    ItemHistoryRead,
    ItemHistoryResponse,
    ItemRead,
)
from ..schemas.enums import ActivityType
from ..utils.errors import NotFoundError

logger = logging.getLogger(__name__)


async def add_status_log(
    db: AsyncSession,
    log_model,
    record_field: str,
    record_id: str,
    status: str,
    actor_id: str,
    notes: Optional[str],
    created_at: datetime,
):
    """
    Stage one status-log row and flush it.

    The flush pins insertion order: the status log is written before the
    activity log of the same transition.
    """
    entry = log_model(
        status=status,
        notes=notes,
        user_id=actor_id,
        created_at=created_at,
        **{record_field: record_id},
    )
    db.add(entry)
    await db.flush()
    return entry


async def add_activity(
    db: AsyncSession,
    activity_type: ActivityType,
    action: str,
    actor_id: Optional[str],
    target: Optional[ActivityTarget] = None,
    item_serial: Optional[str] = None,
    affected_user_id: Optional[str] = None,
    details: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> ActivityLog:
    """Stage one activity-log row and flush it."""
    entry = ActivityLog(
        type=ActivityType(activity_type).value,
        action=action,
        details=details,
        user_id=actor_id,
        target_type=target.kind.value if target else None,
        target_id=target.id if target else None,
        item_serial=item_serial,
        affected_user_id=affected_user_id,
    )
    if created_at is not None:
        entry.created_at = created_at
    db.add(entry)
    await db.flush()
    return entry


async def list_activity_logs(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    activity_type: Optional[ActivityType] = None,
    user_id: Optional[str] = None,
    item_serial: Optional[str] = None,
) -> ActivityLogListResponse:
    """
    Filtered, paginated activity log listing (newest first).

    ``user_id`` matches both the acting and the affected user; ``end_date``
    is inclusive of the whole day.
    """
    conditions = []
    if start_date:
        conditions.append(ActivityLog.created_at >= start_date)
    if end_date:
        day_end = end_date.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
        conditions.append(ActivityLog.created_at < day_end)
    if activity_type:
        conditions.append(ActivityLog.type == ActivityType(activity_type).value)
    if user_id:
        conditions.append(or_(ActivityLog.user_id == user_id, ActivityLog.affected_user_id == user_id))
    if item_serial:
        conditions.append(ActivityLog.item_serial == item_serial)

    query = select(ActivityLog)
    count_query = select(func.count(ActivityLog.id))
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * limit
    result = await db.execute(
        query.order_by(desc(ActivityLog.created_at)).offset(offset).limit(limit)
    )
    logs = result.scalars().all()

    return ActivityLogListResponse(
        items=[ActivityLogRead.model_validate(log) for log in logs],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if limit else 0,
    )


async def get_item_history(db: AsyncSession, serial_number: str) -> ItemHistoryResponse:
    """Item with its usage periods and the activity logs that mention it."""
    item = (
        await db.execute(select(Item).where(Item.serial_number == serial_number))
    ).scalar_one_or_none()
    if item is None:
        raise NotFoundError(f"Item {serial_number} not found")

    history = (
        await db.execute(
            select(ItemHistory)
            .where(ItemHistory.item_serial == serial_number)
            .order_by(desc(ItemHistory.start_date))
        )
    ).scalars().all()

    logs = (
        await db.execute(
            select(ActivityLog)
            .where(ActivityLog.item_serial == serial_number)
            .order_by(desc(ActivityLog.created_at))
        )
    ).scalars().all()

    return ItemHistoryResponse(
        item=ItemRead.model_validate(item),
        history=[ItemHistoryRead.model_validate(row) for row in history],
        activity_logs=[ActivityLogRead.model_validate(log) for log in logs],
    )
