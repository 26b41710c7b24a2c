"""
SQLAlchemy models for Reminders and recurring inventory checks
"""

from sqlalchemy import (
    Column, String, ForeignKey, Text, Boolean, Integer, Index, CheckConstraint, text
)
from sqlalchemy.orm import relationship

from ..database.core import Base
from ..database.types import UTCDateTime, generate_id, utcnow
from ..schemas.enums import ReminderStatus


class Reminder(Base):
    """
    A future obligation to notify a user.

    ``source_id`` is the id of the originating record. At most one active
    (PENDING/SENT) reminder may exist per (type, source_id); the scheduler
    updates that row instead of inserting another.
    """
    __tablename__ = 'reminders'

    id = Column(String(36), primary_key=True, default=generate_id)
    type = Column(String(20), nullable=False, doc="CALIBRATION, RENTAL, SCHEDULE or MAINTENANCE")
    status = Column(String(20), nullable=False, default=ReminderStatus.PENDING.value)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    due_date = Column(UTCDateTime, nullable=False, doc="When the underlying event is due")
    reminder_date = Column(UTCDateTime, nullable=False, doc="When the reminder fires")

    source_id = Column(String(36), nullable=False)
    item_serial = Column(String(100), ForeignKey('items.serial_number', ondelete='CASCADE'), nullable=True)
    rental_id = Column(String(36), ForeignKey('rentals.id', ondelete='CASCADE'), nullable=True)
    calibration_id = Column(String(36), ForeignKey('calibrations.id', ondelete='CASCADE'), nullable=True)
    maintenance_id = Column(String(36), ForeignKey('maintenance.id', ondelete='CASCADE'), nullable=True)
    schedule_id = Column(String(36), ForeignKey('inventory_checks.id', ondelete='CASCADE'), nullable=True)

    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    email_sent = Column(Boolean, nullable=False, default=False)
    email_sent_at = Column(UTCDateTime, nullable=True)
    acknowledged_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", lazy="selectin")

    __table_args__ = (
        CheckConstraint('reminder_date <= due_date', name='chk_reminders_fire_before_due'),
        Index(
            'uq_reminders_active_source', 'type', 'source_id',
            unique=True,
            postgresql_where=text("status IN ('PENDING', 'SENT')"),
            sqlite_where=text("status IN ('PENDING', 'SENT')"),
        ),
        Index('idx_reminders_due', 'status', 'reminder_date'),
    )

    def __repr__(self):
        return f"<Reminder(id={self.id}, type='{self.type}', source={self.source_id}, status='{self.status}')>"


class InventoryCheck(Base):
    """Recurring inventory check; ``next_date`` drives a SCHEDULE reminder."""
    __tablename__ = 'inventory_checks'

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    frequency_days = Column(Integer, nullable=False, default=30)
    next_date = Column(UTCDateTime, nullable=False)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<InventoryCheck(id={self.id}, name='{self.name}', next={self.next_date})>"
