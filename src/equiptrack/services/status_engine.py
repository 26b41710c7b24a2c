"""
Status transition engine for rentals, calibrations and maintenance jobs.

All three request kinds share one lifecycle::

    PENDING  -> APPROVED | REJECTED | CANCELLED
    APPROVED -> COMPLETED | CANCELLED

Every accepted transition updates the record, the item status, the
record's status log, the activity log and the item history in a single
transaction. Reminder and notification work runs after the commit through
the post-commit runner and can never undo a committed transition.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Type

from pydantic import BaseModel
from sqlalchemy import select, update, func, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from ..config import settings as default_settings
from ..database.core import AsyncSessionLocal
from ..database.types import as_utc, utcnow
from ..models.calibration import (
    Calibration,
    CalibrationStatusLog,
    CalibrationCertificate,
    GasCalibrationEntry,
    TestResultEntry,
)
from ..models.items import Item, ItemHistory
from ..models.maintenance import Maintenance, MaintenanceStatusLog, ServiceReport, TechnicalReport
from ..models.rentals import Rental, RentalStatusLog
from ..models.users import User, Customer
from ..schemas.activity import ActivityTarget
from ..schemas.auth import TokenPayload
from ..schemas.enums import (
    ActivityType,
    HistoryAction,
    ItemStatus,
    ReminderType,
    RequestKind,
    RequestStatus,
    UserRole,
    TERMINAL_REQUEST_STATUSES,
)
from ..schemas.requests import (
    CompletionDetails,
    RentalCreate,
    RentalUpdate,
    CalibrationCreate,
    CalibrationUpdate,
    MaintenanceCreate,
    MaintenanceUpdate,
)
from ..utils.errors import (
    DomainError,
    NotFoundError,
    AuthorizationError,
    IllegalTransitionError,
    ItemNotAvailableError,
    InvalidRequestError,
    DependencyUnavailableError,
)
from . import audit_service
from .notification_service import NotificationService, notification_service as default_notification_service
from .post_commit import PostCommitRunner, post_commit_runner as default_runner
from .reminder_service import ReminderService, reminder_service as default_reminder_service

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
        RequestStatus.CANCELLED,
    }),
    RequestStatus.APPROVED: frozenset({
        RequestStatus.COMPLETED,
        RequestStatus.CANCELLED,
    }),
}


def is_transition_allowed(current: RequestStatus, target: RequestStatus) -> bool:
    """True when ``current -> target`` is an edge of the lifecycle."""
    return RequestStatus(target) in ALLOWED_TRANSITIONS.get(RequestStatus(current), frozenset())


def derive_item_status(busy_status: ItemStatus, current: RequestStatus, target: RequestStatus) -> Optional[ItemStatus]:
    """
    Item status implied by a transition, or None to leave it untouched.

    Approval occupies the item; completing or cancelling an approved record
    releases it. A PENDING record never occupied the item, so rejecting or
    cancelling it changes nothing.

    Rejecting or cancelling a PENDING record deliberately never writes
    AVAILABLE, even though a blanket reset would usually be harmless: the
    item may already be held by a different, approved request.
    """
    if target == RequestStatus.APPROVED:
        return busy_status
    if current == RequestStatus.APPROVED and target in (RequestStatus.COMPLETED, RequestStatus.CANCELLED):
        return ItemStatus.AVAILABLE
    return None


CompletionHook = Callable[[AsyncSession, Any, Item, datetime, Optional[CompletionDetails], Any], Awaitable[None]]


async def _complete_rental(db, rental: Rental, item: Item, now: datetime, completion, settings):
    if rental.return_date is None:
        rental.return_date = now
    if completion and completion.return_condition:
        rental.return_condition = completion.return_condition


async def _complete_calibration(db, calibration: Calibration, item: Item, now: datetime, completion, settings):
    if completion and completion.calibration_date:
        calibration.calibration_date = as_utc(completion.calibration_date)
    elif calibration.calibration_date is None:
        calibration.calibration_date = now

    if completion and completion.valid_until:
        calibration.valid_until = as_utc(completion.valid_until)
    elif calibration.valid_until is None:
        calibration.valid_until = as_utc(calibration.calibration_date) + timedelta(
            days=settings.calibration_validity_days
        )

    if completion and completion.certificate:
        data = completion.certificate
        certificate = calibration.certificate
        if certificate is None:
            certificate = CalibrationCertificate()
            calibration.certificate = certificate
        certificate.certificate_number = data.certificate_number
        certificate.instrument_name = data.instrument_name or item.name
        certificate.approved_by = data.approved_by
        certificate.manufacturer = item.name
        certificate.model_number = item.part_number
        certificate.configuration = item.sensor
        certificate.gas_entries = [GasCalibrationEntry(**g.model_dump()) for g in data.gas_entries]
        certificate.test_entries = [TestResultEntry(**t.model_dump()) for t in data.test_entries]

    item.last_verified_at = now


async def _complete_maintenance(db, job: Maintenance, item: Item, now: datetime, completion, settings):
    if job.end_date is None:
        job.end_date = now
    if completion and completion.service_report:
        if job.service_report is None:
            job.service_report = ServiceReport(**completion.service_report.model_dump())
        else:
            for key, value in completion.service_report.model_dump().items():
                setattr(job.service_report, key, value)
    if completion and completion.technical_report:
        if job.technical_report is None:
            job.technical_report = TechnicalReport(**completion.technical_report.model_dump())
        else:
            for key, value in completion.technical_report.model_dump().items():
                setattr(job.technical_report, key, value)


@dataclass(frozen=True)
class RequestKindSpec:
    """Everything the engine needs to know about one request kind."""
    kind: RequestKind
    label: str
    model: Type
    status_log_model: Type
    status_log_field: str
    busy_status: ItemStatus
    history_action: HistoryAction
    reminder_type: ReminderType
    activity_created: ActivityType
    activity_updated: ActivityType
    target: Callable[[str], ActivityTarget]
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    reminder_fields: FrozenSet[str]
    on_complete: CompletionHook
    owner_may_complete: bool = False
    auto_approve_by_default: bool = False


KIND_SPECS: Dict[RequestKind, RequestKindSpec] = {
    RequestKind.RENTAL: RequestKindSpec(
        kind=RequestKind.RENTAL,
        label="rental",
        model=Rental,
        status_log_model=RentalStatusLog,
        status_log_field="rental_id",
        busy_status=ItemStatus.RENTED,
        history_action=HistoryAction.RENTED,
        reminder_type=ReminderType.RENTAL,
        activity_created=ActivityType.RENTAL_CREATED,
        activity_updated=ActivityType.RENTAL_UPDATED,
        target=ActivityTarget.rental,
        create_schema=RentalCreate,
        update_schema=RentalUpdate,
        reminder_fields=frozenset({"end_date"}),
        on_complete=_complete_rental,
        auto_approve_by_default=True,
    ),
    RequestKind.CALIBRATION: RequestKindSpec(
        kind=RequestKind.CALIBRATION,
        label="calibration",
        model=Calibration,
        status_log_model=CalibrationStatusLog,
        status_log_field="calibration_id",
        busy_status=ItemStatus.IN_CALIBRATION,
        history_action=HistoryAction.CALIBRATED,
        reminder_type=ReminderType.CALIBRATION,
        activity_created=ActivityType.CALIBRATION_CREATED,
        activity_updated=ActivityType.CALIBRATION_UPDATED,
        target=ActivityTarget.calibration,
        create_schema=CalibrationCreate,
        update_schema=CalibrationUpdate,
        reminder_fields=frozenset({"valid_until"}),
        on_complete=_complete_calibration,
    ),
    RequestKind.MAINTENANCE: RequestKindSpec(
        kind=RequestKind.MAINTENANCE,
        label="maintenance",
        model=Maintenance,
        status_log_model=MaintenanceStatusLog,
        status_log_field="maintenance_id",
        busy_status=ItemStatus.IN_MAINTENANCE,
        history_action=HistoryAction.MAINTAINED,
        reminder_type=ReminderType.MAINTENANCE,
        activity_created=ActivityType.MAINTENANCE_CREATED,
        activity_updated=ActivityType.MAINTENANCE_UPDATED,
        target=ActivityTarget.maintenance,
        create_schema=MaintenanceCreate,
        update_schema=MaintenanceUpdate,
        reminder_fields=frozenset({"start_date"}),
        on_complete=_complete_maintenance,
        owner_may_complete=True,
    ),
}


def authorize_transition(spec: RequestKindSpec, record, user: User, current: RequestStatus, target: RequestStatus):
    """
    Raise AuthorizationError unless ``user`` may move ``record`` to ``target``.

    Admins may perform any transition. Owners may cancel their own pending
    requests and complete their own approved maintenance jobs.
    """
    if user.role == UserRole.ADMIN.value:
        return
    if record.user_id != user.id:
        raise AuthorizationError()
    if current == RequestStatus.PENDING and target == RequestStatus.CANCELLED:
        return
    if spec.owner_may_complete and current == RequestStatus.APPROVED and target == RequestStatus.COMPLETED:
        return
    raise AuthorizationError()


class StatusTransitionEngine:
    """
    Applies status transitions, creates request records and edits their
    details.

    Each public method runs one transaction on the caller's session and
    re-reads the record after commit.
    """

    def __init__(
        self,
        session_factory=None,
        notifications: Optional[NotificationService] = None,
        reminders: Optional[ReminderService] = None,
        runner: Optional[PostCommitRunner] = None,
        settings=None,
        clock=utcnow,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.notifications = notifications or default_notification_service
        self.reminders = reminders or default_reminder_service
        self.runner = runner or default_runner
        self.settings = settings or default_settings
        self.clock = clock

    async def _require_actor(self, db: AsyncSession, actor: TokenPayload) -> User:
        user = await db.get(User, actor.user_id)
        if user is None or not user.is_active:
            raise AuthorizationError()
        return user

    async def _load_record(self, db: AsyncSession, spec: RequestKindSpec, record_id: str, for_update: bool = False):
        query = select(spec.model).where(spec.model.id == record_id).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update(of=spec.model)
        record = (await db.execute(query)).scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"{spec.label.capitalize()} {record_id} not found")
        return record

    async def _load_item(self, db: AsyncSession, serial_number: str, for_update: bool = False) -> Item:
        query = select(Item).where(Item.serial_number == serial_number).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()
        item = (await db.execute(query)).scalar_one_or_none()
        if item is None:
            raise NotFoundError(f"Item {serial_number} not found")
        return item

    async def _open_history(self, db: AsyncSession, spec: RequestKindSpec, record, now: datetime):
        db.add(ItemHistory(
            item_serial=record.item_serial,
            action=spec.history_action.value,
            related_id=record.id,
            details=f"{spec.label.capitalize()} {record.id} approved",
            start_date=now,
        ))

    async def _close_history(self, db: AsyncSession, spec: RequestKindSpec, record, now: datetime):
        await db.execute(
            update(ItemHistory)
            .where(
                ItemHistory.item_serial == record.item_serial,
                ItemHistory.action == spec.history_action.value,
                ItemHistory.related_id == record.id,
                ItemHistory.end_date.is_(None),
            )
            .values(end_date=now)
            .execution_options(synchronize_session=False)
        )

    async def get_request(self, db: AsyncSession, kind: RequestKind, record_id: str, actor: TokenPayload):
        """Fetch one record; non-admins only see their own."""
        spec = KIND_SPECS[RequestKind(kind)]
        record = await self._load_record(db, spec, record_id)
        if not actor.is_admin and record.user_id != actor.user_id:
            raise AuthorizationError()
        return record

    async def list_requests(
        self,
        db: AsyncSession,
        kind: RequestKind,
        actor: TokenPayload,
        status: Optional[RequestStatus] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        spec = KIND_SPECS[RequestKind(kind)]
        conditions = []
        if not actor.is_admin:
            conditions.append(spec.model.user_id == actor.user_id)
        if status:
            conditions.append(spec.model.status == RequestStatus(status).value)

        total = (await db.execute(select(func.count(spec.model.id)).where(*conditions))).scalar() or 0
        result = await db.execute(
            select(spec.model)
            .where(*conditions)
            .order_by(desc(spec.model.created_at))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return {
            "items": list(result.scalars().all()),
            "total": total,
            "page": page,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }

    async def create_request(
        self,
        db: AsyncSession,
        kind: RequestKind,
        item_serial: str,
        actor: TokenPayload,
        details: Any = None,
    ):
        """
        Create a request record against an AVAILABLE item.

        Admins may create it already APPROVED (the default for rentals);
        users always create PENDING requests.
        """
        spec = KIND_SPECS[RequestKind(kind)]
        if isinstance(details, BaseModel):
            payload = details.model_dump(exclude_unset=True)
        else:
            payload = dict(details or {})
        payload["item_serial"] = item_serial
        data = spec.create_schema.model_validate(payload)
        now = self.clock()

        try:
            user = await self._require_actor(db, actor)
            is_admin = user.role == UserRole.ADMIN.value
            if data.auto_approve and not is_admin:
                raise AuthorizationError()
            auto_approve = is_admin and (
                data.auto_approve if data.auto_approve is not None else spec.auto_approve_by_default
            )

            item = await self._load_item(db, item_serial, for_update=True)
            if item.status != ItemStatus.AVAILABLE.value:
                raise ItemNotAvailableError(f"Item {item_serial} is {item.status}")
            if data.customer_id and await db.get(Customer, data.customer_id) is None:
                raise NotFoundError(f"Customer {data.customer_id} not found")

            status = RequestStatus.APPROVED if auto_approve else RequestStatus.PENDING
            fields = data.model_dump(exclude={"item_serial", "auto_approve"}, exclude_none=True)
            record = spec.model(
                item_serial=item_serial,
                user_id=user.id,
                status=status.value,
                created_at=now,
                updated_at=now,
                **fields,
            )
            db.add(record)
            await db.flush()

            if auto_approve:
                item.status = spec.busy_status.value
                await self._open_history(db, spec, record, now)
                note = f"{spec.label.capitalize()} created and approved by admin"
            else:
                note = f"{spec.label.capitalize()} request submitted"

            await audit_service.add_status_log(
                db, spec.status_log_model, spec.status_log_field, record.id,
                status.value, user.id, note, now,
            )
            action = f"Created new {spec.label} for {item.name}"
            if data.customer_id:
                action += " for customer"
            await audit_service.add_activity(
                db,
                spec.activity_created,
                action,
                actor_id=user.id,
                target=spec.target(record.id),
                item_serial=item_serial,
                affected_user_id=user.id,
                details=data.notes,
                created_at=now,
            )
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.info(f"Open {spec.label} already exists for item {item_serial}: {e.orig}")
            raise ItemNotAvailableError(f"Item {item_serial} already has an open {spec.label}") from e
        except DomainError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to create {spec.label} for item {item_serial}: {e}")
            raise DependencyUnavailableError("Request store unavailable") from e

        record_id = record.id
        logger.info(f"{spec.label.capitalize()} {record_id} created for item {item_serial} as {status.value}")
        if auto_approve:
            self._after_commit(spec, record_id, RequestStatus.PENDING, RequestStatus.APPROVED)
        return await self._load_record(db, spec, record_id)

    async def transition_status(
        self,
        db: AsyncSession,
        kind: RequestKind,
        record_id: str,
        target_status: RequestStatus,
        actor: TokenPayload,
        notes: Optional[str] = None,
        completion: Optional[CompletionDetails] = None,
    ):
        """
        Move a record to ``target_status``.

        Raises NotFoundError, AuthorizationError, IllegalTransitionError or
        ItemNotAvailableError without changing anything. Strangers get
        AuthorizationError before legality is checked; owners learn that an
        edge does not exist before being told they may not take it. Of two concurrent
        transitions out of the same status exactly one succeeds; the other
        sees IllegalTransitionError.
        """
        spec = KIND_SPECS[RequestKind(kind)]
        target = RequestStatus(target_status)
        now = self.clock()

        try:
            user = await self._require_actor(db, actor)
            record = await self._load_record(db, spec, record_id, for_update=True)
            current = RequestStatus(record.status)

            if user.role != UserRole.ADMIN.value and record.user_id != user.id:
                raise AuthorizationError()
            if not is_transition_allowed(current, target):
                raise IllegalTransitionError(
                    f"Cannot change {spec.label} status from {current.value} to {target.value}"
                )
            authorize_transition(spec, record, user, current, target)

            item = await self._load_item(db, record.item_serial, for_update=True)
            if target == RequestStatus.APPROVED and item.status != ItemStatus.AVAILABLE.value:
                raise ItemNotAvailableError(f"Item {item.serial_number} is {item.status}")

            # Compare-and-set; a concurrent transition that committed first
            # leaves zero matching rows.
            result = await db.execute(
                update(spec.model)
                .where(spec.model.id == record_id, spec.model.status == current.value)
                .values(status=target.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise IllegalTransitionError(
                    f"{spec.label.capitalize()} {record_id} is no longer {current.value}"
                )
            set_committed_value(record, "status", target.value)
            set_committed_value(record, "updated_at", now)

            new_item_status = derive_item_status(spec.busy_status, current, target)
            if new_item_status is not None:
                item.status = new_item_status.value

            if target == RequestStatus.APPROVED:
                await self._open_history(db, spec, record, now)
            elif target == RequestStatus.COMPLETED:
                await spec.on_complete(db, record, item, now, completion, self.settings)
                await self._close_history(db, spec, record, now)
            elif current == RequestStatus.APPROVED and target == RequestStatus.CANCELLED:
                await self._close_history(db, spec, record, now)

            await audit_service.add_status_log(
                db, spec.status_log_model, spec.status_log_field, record_id,
                target.value, user.id, notes or f"Status changed to {target.value}", now,
            )
            await audit_service.add_activity(
                db,
                spec.activity_updated,
                f"Updated {spec.label} status to {target.value}",
                actor_id=user.id,
                target=spec.target(record_id),
                item_serial=record.item_serial,
                affected_user_id=record.user_id,
                details=notes,
                created_at=now,
            )
            await db.commit()
        except DomainError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Status change of {spec.label} {record_id} to {target.value} failed: {e}")
            raise DependencyUnavailableError("Request store unavailable") from e

        logger.info(f"{spec.label.capitalize()} {record_id}: {current.value} -> {target.value} by {user.id}")
        self._after_commit(spec, record_id, current, target)
        return await self._load_record(db, spec, record_id)

    async def update_request_details(
        self,
        db: AsyncSession,
        kind: RequestKind,
        record_id: str,
        actor: TokenPayload,
        changes: Any,
    ):
        """Admin edit of an open record's descriptive fields; status is untouched."""
        spec = KIND_SPECS[RequestKind(kind)]
        if isinstance(changes, BaseModel):
            payload = changes.model_dump(exclude_unset=True)
        else:
            payload = dict(changes or {})
        data = {
            key: as_utc(value) if isinstance(value, datetime) else value
            for key, value in spec.update_schema.model_validate(payload)
            .model_dump(exclude_unset=True, exclude_none=True).items()
        }
        now = self.clock()

        try:
            user = await self._require_actor(db, actor)
            if user.role != UserRole.ADMIN.value:
                raise AuthorizationError()
            record = await self._load_record(db, spec, record_id, for_update=True)
            if RequestStatus(record.status) in TERMINAL_REQUEST_STATUSES:
                raise IllegalTransitionError(f"Cannot modify a {record.status} {spec.label}")

            changed = sorted(key for key, value in data.items() if getattr(record, key) != value)
            for key in changed:
                setattr(record, key, data[key])

            start = getattr(record, "start_date", None)
            end = getattr(record, "end_date", None)
            if start and end and as_utc(end) < as_utc(start):
                raise InvalidRequestError("end_date cannot be before start_date")

            if changed:
                record.updated_at = now
                item_name = record.item.name if record.item is not None else record.item_serial
                await audit_service.add_activity(
                    db,
                    spec.activity_updated,
                    f"Updated {spec.label} details for {item_name}",
                    actor_id=user.id,
                    target=spec.target(record_id),
                    item_serial=record.item_serial,
                    affected_user_id=record.user_id,
                    details=f"Changed: {', '.join(changed)}",
                    created_at=now,
                )
            await db.commit()
        except DomainError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            raise DependencyUnavailableError("Request store unavailable") from e

        if record.status == RequestStatus.APPROVED.value and spec.reminder_fields.intersection(changed):
            self.runner.submit(
                f"reschedule {spec.label} {record_id} reminder",
                lambda: self._reschedule(spec, record_id),
            )
        return await self._load_record(db, spec, record_id)

    def _after_commit(self, spec: RequestKindSpec, record_id: str, current: RequestStatus, target: RequestStatus):
        if target == RequestStatus.APPROVED:
            self.runner.submit(
                f"instant notification for {spec.label} {record_id}",
                lambda: self.notifications.create_instant_notification_for_reminder(record_id, spec.reminder_type),
            )
        elif target == RequestStatus.COMPLETED and spec.kind == RequestKind.CALIBRATION:
            # The certificate's expiry becomes the next reminder.
            self.runner.submit(
                f"reschedule calibration {record_id} reminder",
                lambda: self._reschedule(spec, record_id),
            )
        else:
            self.runner.submit(
                f"acknowledge reminders of {spec.label} {record_id}",
                lambda: self._acknowledge(spec, record_id),
            )

    async def _reschedule(self, spec: RequestKindSpec, record_id: str):
        async with self.session_factory() as db:
            return await self.reminders.schedule_reminder(db, spec.reminder_type, record_id, now=self.clock())

    async def _acknowledge(self, spec: RequestKindSpec, record_id: str):
        async with self.session_factory() as db:
            return await self.reminders.acknowledge_for_source(db, spec.reminder_type, record_id, now=self.clock())


status_engine = StatusTransitionEngine()
