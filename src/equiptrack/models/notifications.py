"""
SQLAlchemy model for Notifications
"""

from sqlalchemy import Column, String, ForeignKey, Text, Boolean, Index, text
from sqlalchemy.orm import relationship

from ..database.core import Base
from ..database.types import UTCDateTime, generate_id, utcnow


class Notification(Base):
    """
    User-facing message, usually materialized from a Reminder.

    A reminder has at most one unread notification at any time; the
    partial unique index turns a lost race between two sweeps into an
    IntegrityError instead of a duplicate.
    """
    __tablename__ = 'notifications'

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    reminder_id = Column(String(36), ForeignKey('reminders.id', ondelete='CASCADE'), nullable=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(UTCDateTime, nullable=True)
    should_play_sound = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    reminder = relationship("Reminder", lazy="selectin")

    __table_args__ = (
        Index(
            'uq_notifications_unread_reminder', 'reminder_id',
            unique=True,
            postgresql_where=text("is_read = false"),
            sqlite_where=text("is_read = 0"),
        ),
        Index('idx_notifications_user_read', 'user_id', 'is_read'),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, user={self.user_id}, read={self.is_read})>"
