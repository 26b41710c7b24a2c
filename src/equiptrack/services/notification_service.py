"""
Notification dispatch for reminders.

Two paths turn reminders into notifications:

- the instant path, run after a request is approved, schedules the
  record's reminder and surfaces it at once with ``should_play_sound`` set;
- the periodic sweep, which materializes every active reminder whose
  ``reminder_date`` has passed.

Both honor the same rule: a reminder has at most one unread notification.
The read side (listing, unread counts, marking read) lives here too.
"""

import logging
import math
import time
from typing import Dict, Any, List, Optional

from sqlalchemy import select, update, delete, func, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings as default_settings
from ..database.core import AsyncSessionLocal
from ..database.types import utcnow
from ..models.notifications import Notification
from ..models.reminders import Reminder
from ..models.users import User
from ..schemas.enums import ReminderType, ReminderStatus, ACTIVE_REMINDER_STATUSES
from ..schemas.notifications import SweepResult, NotificationListResponse, NotificationRead
from ..utils.errors import AuthorizationError, DependencyUnavailableError
from .reminder_service import ReminderService, reminder_service as default_reminder_service

logger = logging.getLogger(__name__)

_ACTIVE = [s.value for s in ACTIVE_REMINDER_STATUSES]


class NotificationService:
    """
    Materializes reminders as notifications and serves the user's inbox.

    Sweeps run in their own sessions, one per reminder, so a failure on one
    reminder neither blocks nor rolls back the others.
    """

    def __init__(
        self,
        session_factory=None,
        reminders: Optional[ReminderService] = None,
        settings=None,
        clock=utcnow,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.reminders = reminders or default_reminder_service
        self.settings = settings or default_settings
        self.clock = clock
        self._last_sweep_started: Optional[float] = None

        logger.info(
            f"Notification service initialized: "
            f"email_enabled={self.settings.reminder_email_enabled}, "
            f"email_from={self.settings.notification_email_from}"
        )

    async def _unread_exists(self, db: AsyncSession, reminder_id: str) -> bool:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.reminder_id == reminder_id,
                Notification.is_read.is_(False),
            )
        )
        return (result.scalar() or 0) > 0

    async def _materialize(
        self,
        db: AsyncSession,
        reminder: Reminder,
        should_play_sound: bool,
    ) -> Optional[Notification]:
        """
        Create the reminder's notification unless an unread one exists, then
        mark the reminder SENT. Commits.
        """
        now = self.clock()
        first_firing = reminder.status == ReminderStatus.PENDING.value
        notification = None

        try:
            if not await self._unread_exists(db, reminder.id):
                notification = Notification(
                    user_id=reminder.user_id,
                    reminder_id=reminder.id,
                    title=reminder.title,
                    message=reminder.message,
                    is_read=False,
                    should_play_sound=should_play_sound,
                    created_at=now,
                )
                db.add(notification)
            if first_firing:
                reminder.status = ReminderStatus.SENT.value
            await db.commit()
        except IntegrityError:
            # Another dispatcher won the race for the unread slot.
            await db.rollback()
            logger.info(f"Unread notification already exists for reminder {reminder.id}")
            return None
        except SQLAlchemyError as e:
            await db.rollback()
            raise DependencyUnavailableError("Notification store unavailable") from e

        if notification is not None:
            logger.info(f"Notification {notification.id} created for reminder {reminder.id} (user={reminder.user_id})")

        if first_firing and self.settings.reminder_email_enabled and not reminder.email_sent:
            await self._email_reminder(db, reminder)

        return notification

    async def create_instant_notification_for_reminder(
        self,
        record_id: str,
        reminder_type: ReminderType,
    ) -> Optional[Notification]:
        """
        Schedule the record's reminder and surface it immediately.

        Runs after the approving transaction committed, in its own session.
        """
        async with self.session_factory() as db:
            reminder = await self.reminders.schedule_reminder(db, reminder_type, record_id, now=self.clock())
            if reminder is None:
                return None
            return await self._materialize(db, reminder, should_play_sound=True)

    def _throttled(self, force: bool) -> bool:
        if force or self._last_sweep_started is None:
            return False
        elapsed = time.monotonic() - self._last_sweep_started
        return elapsed < self.settings.reminder_sweep_min_interval_seconds

    async def run_reminder_sweep(self, force: bool = False) -> SweepResult:
        """
        Materialize notifications for every active reminder that is due.

        A second call within the minimum interval is skipped unless
        ``force`` is set. Running the sweep twice never leaves two unread
        notifications for one reminder.
        """
        if self._throttled(force):
            logger.info("Reminder sweep skipped: ran recently")
            return SweepResult(skipped=True)
        self._last_sweep_started = time.monotonic()

        now = self.clock()
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(Reminder.id)
                    .where(Reminder.status.in_(_ACTIVE), Reminder.reminder_date <= now)
                    .order_by(Reminder.reminder_date)
                )
                due_ids = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Reminder sweep could not load due reminders: {e}")
            raise DependencyUnavailableError("Reminder store unavailable") from e

        outcome = SweepResult(processed=len(due_ids))
        for reminder_id in due_ids:
            try:
                async with self.session_factory() as db:
                    reminder = await db.get(Reminder, reminder_id)
                    if reminder is None or reminder.status not in _ACTIVE:
                        continue
                    notification = await self._materialize(
                        db,
                        reminder,
                        should_play_sound=reminder.status == ReminderStatus.PENDING.value,
                    )
                    if notification is not None:
                        outcome.created += 1
            except Exception as e:
                outcome.failed += 1
                logger.error(f"Reminder sweep failed for reminder {reminder_id}: {e}", exc_info=True)

        logger.info(
            f"Reminder sweep finished: processed={outcome.processed}, "
            f"created={outcome.created}, failed={outcome.failed}"
        )
        return outcome

    async def list_overdue_notifications(self, db: AsyncSession, user_id: str) -> List[Notification]:
        """Notifications whose reminder is past due and not yet acknowledged."""
        now = self.clock()
        result = await db.execute(
            select(Notification)
            .join(Reminder, Notification.reminder_id == Reminder.id)
            .where(
                Notification.user_id == user_id,
                Reminder.due_date < now,
                Reminder.status != ReminderStatus.ACKNOWLEDGED.value,
            )
            .order_by(Reminder.due_date, desc(Notification.created_at))
        )
        return list(result.scalars().all())

    async def get_unread_count(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar() or 0

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        reminder_type: Optional[ReminderType] = None,
    ) -> NotificationListResponse:
        query = select(Notification).where(Notification.user_id == user_id)
        count_query = select(func.count(Notification.id)).where(Notification.user_id == user_id)
        if reminder_type:
            query = query.join(Reminder, Notification.reminder_id == Reminder.id).where(
                Reminder.type == ReminderType(reminder_type).value
            )
            count_query = count_query.join(Reminder, Notification.reminder_id == Reminder.id).where(
                Reminder.type == ReminderType(reminder_type).value
            )

        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(
            query.order_by(desc(Notification.created_at)).offset((page - 1) * limit).limit(limit)
        )
        return NotificationListResponse(
            items=[NotificationRead.model_validate(n) for n in result.scalars().all()],
            total=total,
            page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
        )

    async def mark_notification_read(self, db: AsyncSession, user_id: str, notification_id: str) -> Notification:
        """
        Mark one of the caller's notifications read.

        Unknown ids and other users' notifications fail the same way.
        """
        notification = await db.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise AuthorizationError()
        if notification.is_read:
            return notification

        try:
            notification.is_read = True
            notification.read_at = self.clock()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise DependencyUnavailableError("Notification store unavailable") from e
        return notification

    async def mark_all_read(self, db: AsyncSession, user_id: str) -> int:
        try:
            result = await db.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True, read_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise DependencyUnavailableError("Notification store unavailable") from e
        return result.rowcount or 0

    async def delete_all_read(self, db: AsyncSession, user_id: str) -> int:
        try:
            result = await db.execute(
                delete(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(True))
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise DependencyUnavailableError("Notification store unavailable") from e
        return result.rowcount or 0

    async def _email_reminder(self, db: AsyncSession, reminder: Reminder):
        """Send the reminder e-mail and stamp the reminder; failures are only logged."""
        recipient = await db.get(User, reminder.user_id)
        if recipient is None or not recipient.email:
            logger.warning(f"Reminder {reminder.id} has no recipient e-mail")
            return

        email_result = await self._send_email(
            to_email=recipient.email,
            subject=f"Reminder: {reminder.title}",
            body=reminder.message,
        )
        if email_result["status"] != "sent":
            return

        try:
            reminder.email_sent = True
            reminder.email_sent_at = self.clock()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Could not record e-mail delivery for reminder {reminder.id}: {e}")

    async def _send_email(self, to_email: str, subject: str, body: str) -> Dict[str, Any]:
        """
        Deliver an e-mail.

        No mail transport is wired in; delivery is simulated and logged.
        """
        try:
            logger.info(f"Sending email to {to_email}: {subject}")
            logger.info(f"Email simulation: {len(body)} chars from {self.settings.notification_email_from} to {to_email}")
            return {
                "status": "sent",
                "to": to_email,
                "sent_at": utcnow().isoformat(),
            }
        except Exception as e:
            logger.error(f"Email send failed to {to_email}: {e}", exc_info=True)
            return {
                "status": "failed",
                "to": to_email,
                "error": str(e),
                "sent_at": utcnow().isoformat(),
            }


# Singleton instance for application-wide use
notification_service = NotificationService()
