"""
SQLAlchemy models for Rentals
"""

from sqlalchemy import Column, String, ForeignKey, Text, Index, text
from sqlalchemy.orm import relationship

from ..database.core import Base
from ..database.types import UTCDateTime, generate_id, utcnow
from ..schemas.enums import RequestStatus


class Rental(Base):
    """
    SQLAlchemy model for Rentals table

    A request to rent out one item. At most one open (PENDING/APPROVED)
    rental may exist per item.
    """
    __tablename__ = 'rentals'

    id = Column(String(36), primary_key=True, default=generate_id)
    item_serial = Column(
        String(100),
        ForeignKey('items.serial_number'),
        nullable=False,
        index=True
    )
    user_id = Column(
        String(36),
        ForeignKey('users.id'),
        nullable=False,
        doc="Requesting / responsible user"
    )
    customer_id = Column(String(36), ForeignKey('customers.id', ondelete='SET NULL'), nullable=True)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value)

    start_date = Column(UTCDateTime, nullable=False)
    end_date = Column(UTCDateTime, nullable=True, doc="Agreed return date, drives the reminder")
    return_date = Column(UTCDateTime, nullable=True, doc="Actual return, stamped on completion")

    po_number = Column(String(100), nullable=True)
    do_number = Column(String(100), nullable=True)
    renter_name = Column(String(255), nullable=True)
    renter_phone = Column(String(50), nullable=True)
    renter_address = Column(Text, nullable=True)
    initial_condition = Column(Text, nullable=True)
    return_condition = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    item = relationship("Item", lazy="selectin")
    user = relationship("User", lazy="selectin")
    customer = relationship("Customer", lazy="selectin")
    status_logs = relationship(
        "RentalStatusLog",
        lazy="selectin",
        order_by="RentalStatusLog.created_at",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index(
            'uq_rentals_open_item', 'item_serial',
            unique=True,
            postgresql_where=text("status IN ('PENDING', 'APPROVED')"),
            sqlite_where=text("status IN ('PENDING', 'APPROVED')"),
        ),
    )

    def __repr__(self):
        return f"<Rental(id={self.id}, item={self.item_serial}, status='{self.status}')>"


class RentalStatusLog(Base):
    """Append-only record of every rental status change."""
    __tablename__ = 'rental_status_logs'

    id = Column(String(36), primary_key=True, default=generate_id)
    rental_id = Column(String(36), ForeignKey('rentals.id', ondelete='CASCADE'), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False, doc="Acting user")
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<RentalStatusLog(rental={self.rental_id}, status='{self.status}')>"
