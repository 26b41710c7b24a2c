"""
Reminder scheduling.

A reminder is derived from a source record (rental, calibration,
maintenance job or inventory check). Scheduling is an upsert keyed by
(type, source_id): re-scheduling the same record updates its active
reminder instead of inserting a second one.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings as default_settings
from ..database.types import as_utc, utcnow
from ..models.calibration import Calibration
from ..models.maintenance import Maintenance
from ..models.notifications import Notification
from ..models.reminders import Reminder, InventoryCheck
from ..models.rentals import Rental
from ..schemas.auth import TokenPayload
from ..schemas.enums import ReminderType, ReminderStatus, ACTIVE_REMINDER_STATUSES
from ..utils.errors import NotFoundError, AuthorizationError, DependencyUnavailableError

logger = logging.getLogger(__name__)

_ACTIVE = [s.value for s in ACTIVE_REMINDER_STATUSES]

SOURCE_MODELS = {
    ReminderType.RENTAL: Rental,
    ReminderType.CALIBRATION: Calibration,
    ReminderType.MAINTENANCE: Maintenance,
    ReminderType.SCHEDULE: InventoryCheck,
}

SOURCE_FIELDS = {
    ReminderType.RENTAL: "rental_id",
    ReminderType.CALIBRATION: "calibration_id",
    ReminderType.MAINTENANCE: "maintenance_id",
    ReminderType.SCHEDULE: "schedule_id",
}


def compute_reminder_date(due_date: datetime, lead_days: int, now: datetime) -> datetime:
    """
    When a reminder for ``due_date`` should fire.

    ``lead_days`` before the due date, but never in the past and never
    after the due date itself.
    """
    due_date = as_utc(due_date)
    fire_at = max(due_date - timedelta(days=lead_days), as_utc(now))
    return min(fire_at, due_date)


@dataclass
class ReminderPlan:
    """What the active reminder of one source record should look like."""
    type: ReminderType
    source_id: str
    user_id: str
    title: str
    message: str
    due_date: datetime
    reminder_date: datetime
    item_serial: Optional[str] = None

    def column_values(self) -> dict:
        values = {
            "type": self.type.value,
            "source_id": self.source_id,
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "due_date": self.due_date,
            "reminder_date": self.reminder_date,
            "item_serial": self.item_serial,
        }
        values[SOURCE_FIELDS[self.type]] = self.source_id
        return values


class ReminderService:
    """Creates, updates and acknowledges reminders."""

    def __init__(self, settings=None):
        self.settings = settings or default_settings

    def plan_reminder(self, reminder_type: ReminderType, source, now: datetime) -> Optional[ReminderPlan]:
        """
        Derive the reminder for ``source``.

        Returns None when the record has no date to remind about (a rental
        without an agreed return date, a calibration not yet certified).
        """
        reminder_type = ReminderType(reminder_type)
        item = getattr(source, "item", None)
        item_label = f"{item.name} ({item.serial_number})" if item is not None else None

        if reminder_type == ReminderType.RENTAL:
            due = source.end_date
            lead = self.settings.rental_reminder_lead_days
            title = "Rental return due"
            message = f"Rental of {item_label} is due for return on {{due}}."
        elif reminder_type == ReminderType.CALIBRATION:
            due = source.valid_until
            lead = self.settings.calibration_reminder_lead_days
            title = "Calibration expiring"
            message = f"Calibration of {item_label} is valid until {{due}}. Schedule a re-calibration."
        elif reminder_type == ReminderType.MAINTENANCE:
            start = source.start_date or now
            due = as_utc(start) + timedelta(days=self.settings.maintenance_followup_days)
            lead = self.settings.maintenance_reminder_lead_days
            title = "Maintenance follow-up due"
            message = f"Maintenance follow-up for {item_label} is due on {{due}}."
        else:
            due = source.next_date
            lead = self.settings.schedule_reminder_lead_days
            title = f"Inventory check: {source.name}"
            message = f"Inventory check '{source.name}' is scheduled for {{due}}."

        if due is None:
            return None

        due = as_utc(due)
        return ReminderPlan(
            type=reminder_type,
            source_id=source.id,
            user_id=source.user_id,
            title=title,
            message=message.replace("{due}", due.strftime("%Y-%m-%d")),
            due_date=due,
            reminder_date=compute_reminder_date(due, lead, now),
            item_serial=getattr(source, "item_serial", None),
        )

    async def _load_source(self, db: AsyncSession, reminder_type: ReminderType, record_id: str):
        model = SOURCE_MODELS[reminder_type]
        result = await db.execute(select(model).where(model.id == record_id))
        source = result.scalar_one_or_none()
        if source is None:
            raise NotFoundError(f"{reminder_type.value.title()} {record_id} not found")
        return source

    async def _find_active(self, db: AsyncSession, reminder_type: ReminderType, source_id: str) -> Optional[Reminder]:
        result = await db.execute(
            select(Reminder)
            .where(
                Reminder.type == reminder_type.value,
                Reminder.source_id == source_id,
                Reminder.status.in_(_ACTIVE),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _upsert(self, db: AsyncSession, plan: ReminderPlan) -> Reminder:
        reminder = await self._find_active(db, plan.type, plan.source_id)
        if reminder is None:
            reminder = Reminder(status=ReminderStatus.PENDING.value, **plan.column_values())
            db.add(reminder)
            await db.flush()
            logger.info(f"Reminder created: type={plan.type.value}, source={plan.source_id}, fires={plan.reminder_date}")
            return reminder

        if as_utc(reminder.due_date) != plan.due_date:
            # A moved due date is a new obligation; let it fire again.
            reminder.status = ReminderStatus.PENDING.value
            reminder.email_sent = False
            reminder.email_sent_at = None
        for key, value in plan.column_values().items():
            setattr(reminder, key, value)
        await db.flush()
        logger.info(f"Reminder updated: id={reminder.id}, source={plan.source_id}, fires={plan.reminder_date}")
        return reminder

    async def schedule_reminder(
        self,
        db: AsyncSession,
        reminder_type: ReminderType,
        record_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[Reminder]:
        """
        Create or update the active reminder of a source record and commit.

        Idempotent: calling it twice for the same record leaves exactly one
        active reminder.
        """
        reminder_type = ReminderType(reminder_type)
        now = now or utcnow()

        try:
            source = await self._load_source(db, reminder_type, record_id)
            plan = self.plan_reminder(reminder_type, source, now)
            if plan is None:
                logger.info(f"No reminder date for {reminder_type.value} {record_id}; nothing scheduled")
                return None
            try:
                reminder = await self._upsert(db, plan)
                await db.commit()
            except IntegrityError:
                # A concurrent scheduler inserted first; update its row.
                await db.rollback()
                reminder = await self._upsert(db, plan)
                await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Reminder store error for {reminder_type.value} {record_id}: {e}")
            raise DependencyUnavailableError("Reminder store unavailable") from e

        return reminder

    async def acknowledge_for_source(
        self,
        db: AsyncSession,
        reminder_type: ReminderType,
        source_id: str,
        now: Optional[datetime] = None,
    ) -> int:
        """Acknowledge every active reminder of a record that reached a terminal state."""
        reminder_type = ReminderType(reminder_type)
        now = now or utcnow()
        try:
            result = await db.execute(
                update(Reminder)
                .where(
                    Reminder.type == reminder_type.value,
                    Reminder.source_id == source_id,
                    Reminder.status.in_(_ACTIVE),
                )
                .values(status=ReminderStatus.ACKNOWLEDGED.value, acknowledged_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise DependencyUnavailableError("Reminder store unavailable") from e

        if result.rowcount:
            logger.info(f"Acknowledged {result.rowcount} reminder(s) for {reminder_type.value} {source_id}")
        return result.rowcount or 0

    async def acknowledge_reminder(
        self,
        db: AsyncSession,
        reminder_id: str,
        actor: TokenPayload,
        now: Optional[datetime] = None,
    ) -> Reminder:
        """
        Owner dismisses a reminder; its unread notifications are marked read.

        Acknowledging twice is a no-op.
        """
        now = now or utcnow()
        reminder = await db.get(Reminder, reminder_id)
        if reminder is None:
            raise NotFoundError(f"Reminder {reminder_id} not found")
        if reminder.user_id != actor.user_id:
            raise AuthorizationError()

        if reminder.status == ReminderStatus.ACKNOWLEDGED.value:
            return reminder

        try:
            reminder.status = ReminderStatus.ACKNOWLEDGED.value
            reminder.acknowledged_at = now
            await db.execute(
                update(Notification)
                .where(Notification.reminder_id == reminder_id, Notification.is_read.is_(False))
                .values(is_read=True, read_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise DependencyUnavailableError("Reminder store unavailable") from e

        logger.info(f"Reminder {reminder_id} acknowledged by {actor.user_id}")
        return reminder


reminder_service = ReminderService()
