"""
SQLAlchemy models for Maintenance jobs and their reports
"""

from sqlalchemy import Column, String, ForeignKey, Text, Index, text
from sqlalchemy.orm import relationship

from ..database.core import Base
from ..database.types import UTCDateTime, generate_id, utcnow
from ..schemas.enums import RequestStatus


class Maintenance(Base):
    """
    SQLAlchemy model for Maintenance table

    A repair/service job for one item. Completion may attach a service
    report and a technical report.
    """
    __tablename__ = 'maintenance'

    id = Column(String(36), primary_key=True, default=generate_id)
    item_serial = Column(String(100), ForeignKey('items.serial_number'), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    customer_id = Column(String(36), ForeignKey('customers.id', ondelete='SET NULL'), nullable=True)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value)

    start_date = Column(UTCDateTime, nullable=False, default=utcnow)
    end_date = Column(UTCDateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    item = relationship("Item", lazy="selectin")
    user = relationship("User", lazy="selectin")
    customer = relationship("Customer", lazy="selectin")
    service_report = relationship(
        "ServiceReport",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    technical_report = relationship(
        "TechnicalReport",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    status_logs = relationship(
        "MaintenanceStatusLog",
        lazy="selectin",
        order_by="MaintenanceStatusLog.created_at",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index(
            'uq_maintenance_open_item', 'item_serial',
            unique=True,
            postgresql_where=text("status IN ('PENDING', 'APPROVED')"),
            sqlite_where=text("status IN ('PENDING', 'APPROVED')"),
        ),
    )

    def __repr__(self):
        return f"<Maintenance(id={self.id}, item={self.item_serial}, status='{self.status}')>"


class MaintenanceStatusLog(Base):
    """Append-only record of every maintenance status change."""
    __tablename__ = 'maintenance_status_logs'

    id = Column(String(36), primary_key=True, default=generate_id)
    maintenance_id = Column(
        String(36),
        ForeignKey('maintenance.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    status = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class ServiceReport(Base):
    """Customer-facing service report filled in when maintenance completes."""
    __tablename__ = 'service_reports'

    id = Column(String(36), primary_key=True, default=generate_id)
    maintenance_id = Column(
        String(36),
        ForeignKey('maintenance.id', ondelete='CASCADE'),
        unique=True,
        nullable=False
    )
    report_number = Column(String(100), nullable=True)
    reason_for_return = Column(Text, nullable=True)
    findings = Column(Text, nullable=True)
    action_taken = Column(Text, nullable=True)
    parts_used = Column(Text, nullable=True)
    technician_name = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class TechnicalReport(Base):
    """Internal technical report filled in when maintenance completes."""
    __tablename__ = 'technical_reports'

    id = Column(String(36), primary_key=True, default=generate_id)
    maintenance_id = Column(
        String(36),
        ForeignKey('maintenance.id', ondelete='CASCADE'),
        unique=True,
        nullable=False
    )
    csr_number = Column(String(100), nullable=True)
    problem_description = Column(Text, nullable=True)
    root_cause = Column(Text, nullable=True)
    corrective_action = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    prepared_by = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
