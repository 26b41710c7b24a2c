"""
SQLAlchemy models for Users and Customers
"""

from sqlalchemy import Column, String, Boolean, Text

from ..database.core import Base
from ..database.types import UTCDateTime, generate_id, utcnow
from ..schemas.enums import UserRole


class User(Base):
    """
    SQLAlchemy model for Users table

    Users own requests, reminders and notifications. The role decides
    which status transitions they may perform.
    """
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False, doc="Display name")
    email = Column(
        String(255),
        nullable=False,
        unique=True,
        doc="User's email address, also the reminder e-mail recipient"
    )
    role = Column(
        String(10),
        nullable=False,
        default=UserRole.USER.value,
        doc="ADMIN or USER"
    )
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"


class Customer(Base):
    """Customer an item, rental, calibration or maintenance can be linked to."""
    __tablename__ = 'customers'

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    contact_name = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    contact_email = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"
