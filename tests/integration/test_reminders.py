"""
Integration tests for reminder scheduling and acknowledgement.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from equiptrack.database.types import utcnow
from equiptrack.models import ActivityLog, Notification, Reminder
from equiptrack.schemas.enums import ActivityType, ReminderStatus, ReminderType, RequestKind
from equiptrack.schemas.notifications import InventoryCheckCreate
from equiptrack.services.inventory_checks import create_inventory_check
from equiptrack.utils.errors import AuthorizationError, NotFoundError


async def pending_rental(db, transitions, actor, item, start_offset=0, end_offset=7):
    now = utcnow()
    return await transitions.create_request(
        db, RequestKind.RENTAL, item.serial_number, actor,
        {"start_date": now + timedelta(days=start_offset), "end_date": now + timedelta(days=end_offset)},
    )


class TestScheduleReminder:
    """Test cases for ReminderService.schedule_reminder."""

    async def test_schedule_is_idempotent(self, db, transitions, reminders, fetch, user, item):
        rental = await pending_rental(db, transitions, user, item)

        first = await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id)
        second = await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id)

        assert first.id == second.id
        stored = await fetch(select(Reminder).where(Reminder.source_id == rental.id))
        assert len(stored) == 1
        assert stored[0].status == ReminderStatus.PENDING.value
        assert stored[0].rental_id == rental.id
        assert stored[0].item_serial == item.serial_number
        assert stored[0].user_id == user.user_id
        assert stored[0].title == "Rental return due"

    async def test_reminder_fires_lead_days_before_due(self, db, transitions, reminders, user, item):
        rental = await pending_rental(db, transitions, user, item, end_offset=10)

        reminder = await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id)

        assert reminder.due_date == rental.end_date
        assert reminder.reminder_date == rental.end_date - timedelta(days=3)

    async def test_past_due_fires_on_due_date(self, db, transitions, reminders, user, item):
        rental = await pending_rental(db, transitions, user, item, start_offset=-10, end_offset=-1)

        reminder = await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id)

        assert reminder.reminder_date == reminder.due_date

    async def test_moved_due_date_fires_again(self, db, transitions, reminders, runner, admin, item):
        rental = await pending_rental(db, transitions, admin, item)
        await runner.drain()

        reminder = (await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id))
        assert reminder.status == ReminderStatus.SENT.value

        await transitions.update_request_details(
            db, RequestKind.RENTAL, rental.id, admin, {"end_date": rental.end_date + timedelta(days=3)},
        )
        await runner.drain()

        moved = await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id)
        assert moved.id == reminder.id
        assert moved.status == ReminderStatus.PENDING.value
        assert moved.email_sent is False

    async def test_unknown_source(self, db, reminders):
        with pytest.raises(NotFoundError):
            await reminders.schedule_reminder(db, ReminderType.RENTAL, "missing")

    async def test_acknowledge_for_source(self, db, transitions, reminders, fetch, user, item):
        rental = await pending_rental(db, transitions, user, item)
        await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id)

        assert await reminders.acknowledge_for_source(db, ReminderType.RENTAL, rental.id) == 1
        assert await reminders.acknowledge_for_source(db, ReminderType.RENTAL, rental.id) == 0

        stored = await fetch(select(Reminder).where(Reminder.source_id == rental.id))
        assert stored[0].status == ReminderStatus.ACKNOWLEDGED.value

        # A new obligation for the same record starts a fresh reminder.
        fresh = await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id)
        assert fresh.id != stored[0].id
        assert fresh.status == ReminderStatus.PENDING.value


class TestAcknowledgeReminder:
    """Test cases for ReminderService.acknowledge_reminder."""

    async def test_owner_acknowledges_and_reads_notifications(
        self, db, transitions, reminders, notifications, fetch, user, item,
    ):
        rental = await pending_rental(db, transitions, user, item, start_offset=-5, end_offset=-1)
        reminder = await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id)
        await notifications.run_reminder_sweep(force=True)

        acknowledged = await reminders.acknowledge_reminder(db, reminder.id, user)
        again = await reminders.acknowledge_reminder(db, reminder.id, user)

        assert acknowledged.status == ReminderStatus.ACKNOWLEDGED.value
        assert again.acknowledged_at == acknowledged.acknowledged_at
        stored = await fetch(select(Notification).where(Notification.reminder_id == reminder.id))
        assert len(stored) == 1
        assert stored[0].is_read is True

    async def test_stranger_cannot_acknowledge(self, db, transitions, reminders, user, other, item):
        rental = await pending_rental(db, transitions, user, item)
        reminder = await reminders.schedule_reminder(db, ReminderType.RENTAL, rental.id)

        with pytest.raises(AuthorizationError):
            await reminders.acknowledge_reminder(db, reminder.id, other)

    async def test_unknown_reminder(self, db, reminders, user):
        with pytest.raises(NotFoundError):
            await reminders.acknowledge_reminder(db, "missing", user)


class TestInventoryChecks:
    """Test cases for inventory check schedules."""

    async def test_check_gets_schedule_reminder(self, db, session_factory, reminders, runner, fetch, admin):
        next_date = utcnow() + timedelta(days=14)
        check = await create_inventory_check(
            db,
            InventoryCheckCreate(name="Quarterly count", frequency_days=90, next_date=next_date),
            admin,
            session_factory,
            reminders=reminders,
            runner=runner,
        )
        await runner.drain()

        stored = await fetch(select(Reminder).where(Reminder.source_id == check.id))
        assert len(stored) == 1
        assert stored[0].type == ReminderType.SCHEDULE.value
        assert stored[0].schedule_id == check.id
        assert stored[0].title == "Inventory check: Quarterly count"
        assert stored[0].due_date == next_date
        assert stored[0].reminder_date == next_date - timedelta(days=1)

        activity = await fetch(select(ActivityLog).where(ActivityLog.target_id == check.id))
        assert activity[0].type == ActivityType.INVENTORY_CHECK_CREATED.value
        assert activity[0].action == "Created inventory check schedule Quarterly count"
