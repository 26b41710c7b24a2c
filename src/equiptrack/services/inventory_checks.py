"""
Recurring inventory checks and their SCHEDULE reminders.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.types import as_utc, utcnow
from ..models.reminders import InventoryCheck
from ..schemas.activity import ActivityTarget
from ..schemas.auth import TokenPayload
from ..schemas.enums import ActivityType, ReminderType
from ..schemas.notifications import InventoryCheckCreate
from ..utils.errors import DependencyUnavailableError
from . import audit_service
from .post_commit import PostCommitRunner, post_commit_runner
from .reminder_service import ReminderService, reminder_service

logger = logging.getLogger(__name__)


async def create_inventory_check(
    db: AsyncSession,
    data: InventoryCheckCreate,
    actor: TokenPayload,
    session_factory,
    reminders: ReminderService = reminder_service,
    runner: PostCommitRunner = post_commit_runner,
) -> InventoryCheck:
    """Persist a check schedule; its reminder is scheduled after commit."""
    now = utcnow()
    try:
        check = InventoryCheck(
            name=data.name,
            description=data.description,
            frequency_days=data.frequency_days,
            next_date=as_utc(data.next_date),
            user_id=actor.user_id,
            created_at=now,
        )
        db.add(check)
        await db.flush()
        await audit_service.add_activity(
            db,
            ActivityType.INVENTORY_CHECK_CREATED,
            f"Created inventory check schedule {data.name}",
            actor_id=actor.user_id,
            target=ActivityTarget.inventory_check(check.id),
            details=f"Every {data.frequency_days} days, next on {as_utc(data.next_date):%Y-%m-%d}",
            created_at=now,
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise DependencyUnavailableError("Inventory check store unavailable") from e

    check_id = check.id
    logger.info(f"Inventory check {check_id} created by {actor.user_id}")

    async def schedule():
        async with session_factory() as session:
            return await reminders.schedule_reminder(session, ReminderType.SCHEDULE, check_id)

    runner.submit(f"schedule reminder for inventory check {check_id}", schedule)
    return check
