"""
SQLAlchemy models for Items and their usage history
"""

from sqlalchemy import Column, String, ForeignKey, Text, Index
from sqlalchemy.orm import relationship

from ..database.core import Base
from ..database.types import UTCDateTime, generate_id, utcnow
from ..schemas.enums import ItemStatus


class Item(Base):
    """
    SQLAlchemy model for Items table

    A physical instrument identified by its serial number. ``status`` is
    only changed by the status transition engine.
    """
    __tablename__ = 'items'

    serial_number = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False, doc="Instrument name / manufacturer")
    part_number = Column(String(100), nullable=False)
    sensor = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    customer_id = Column(
        String(36),
        ForeignKey('customers.id', ondelete='SET NULL'),
        nullable=True
    )
    status = Column(
        String(20),
        nullable=False,
        default=ItemStatus.AVAILABLE.value,
        doc="AVAILABLE, IN_CALIBRATION, RENTED or IN_MAINTENANCE"
    )
    last_verified_at = Column(UTCDateTime, nullable=True, doc="Last completed calibration")
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer")

    def __repr__(self):
        return f"<Item(serial={self.serial_number}, status='{self.status}')>"


class ItemHistory(Base):
    """
    Usage periods of an item.

    One row is opened when a request is approved and closed (``end_date``)
    when that request completes or is cancelled.
    """
    __tablename__ = 'item_history'

    id = Column(String(36), primary_key=True, default=generate_id)
    item_serial = Column(
        String(100),
        ForeignKey('items.serial_number', ondelete='CASCADE'),
        nullable=False
    )
    action = Column(String(20), nullable=False, doc="RENTED, CALIBRATED or MAINTAINED")
    details = Column(Text, nullable=True)
    related_id = Column(String(36), nullable=True, doc="Request record that opened the row")
    start_date = Column(UTCDateTime, nullable=False, default=utcnow)
    end_date = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('idx_item_history_open', 'item_serial', 'action', 'related_id'),
    )

    def __repr__(self):
        return f"<ItemHistory(item={self.item_serial}, action='{self.action}', related={self.related_id})>"
