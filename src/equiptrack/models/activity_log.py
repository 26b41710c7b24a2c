"""
SQLAlchemy model for ActivityLog

Cross-entity audit trail. Every create/update of a tracked entity and
every status transition appends one row; rows are never updated.
"""

from sqlalchemy import Column, String, ForeignKey, Text, Index
from sqlalchemy.orm import relationship

from ..database.core import Base
from ..database.types import UTCDateTime, generate_id, utcnow


class ActivityLog(Base):
    """
    ActivityLog model for audit tracking.

    The entity the row is about is stored as a tagged reference
    (``target_type``, ``target_id``): exactly one kind or none. The item
    and the affected user are kept as context columns so history and
    per-user queries stay cheap.
    """
    __tablename__ = 'activity_logs'

    id = Column(String(36), primary_key=True, default=generate_id)

    type = Column(
        String(40),
        nullable=False,
        index=True,
        doc="Activity kind (e.g., RENTAL_CREATED, CALIBRATION_UPDATED)"
    )
    action = Column(Text, nullable=False, doc="Human-readable action text")
    details = Column(Text, nullable=True)

    user_id = Column(
        String(36),
        ForeignKey('users.id', ondelete='SET NULL'),
        nullable=True,
        index=True,
        doc="User who performed the action"
    )

    target_type = Column(String(20), nullable=True, doc="ITEM, RENTAL, CALIBRATION, ...")
    target_id = Column(String(100), nullable=True)

    item_serial = Column(String(100), nullable=True, index=True)
    affected_user_id = Column(String(36), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)

    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        Index('idx_activity_logs_target', 'target_type', 'target_id'),
        Index('idx_activity_logs_user_type', 'user_id', 'type'),
    )

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, type='{self.type}', target={self.target_type}:{self.target_id})>"
