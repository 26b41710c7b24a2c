"""
SQLAlchemy models for Calibrations and their certificates
"""

from sqlalchemy import Column, String, ForeignKey, Text, Index, text
from sqlalchemy.orm import relationship

from ..database.core import Base
from ..database.types import UTCDateTime, generate_id, utcnow
from ..schemas.enums import RequestStatus


class Calibration(Base):
    """
    SQLAlchemy model for Calibrations table

    A calibration job for one item. Completion produces a certificate and a
    ``valid_until`` date that drives the re-calibration reminder.
    """
    __tablename__ = 'calibrations'

    id = Column(String(36), primary_key=True, default=generate_id)
    item_serial = Column(String(100), ForeignKey('items.serial_number'), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    customer_id = Column(String(36), ForeignKey('customers.id', ondelete='SET NULL'), nullable=True)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value)

    calibration_date = Column(UTCDateTime, nullable=True)
    valid_until = Column(UTCDateTime, nullable=True, doc="Certificate expiry")
    fax = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    item = relationship("Item", lazy="selectin")
    user = relationship("User", lazy="selectin")
    customer = relationship("Customer", lazy="selectin")
    certificate = relationship(
        "CalibrationCertificate",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
        back_populates="calibration",
    )
    status_logs = relationship(
        "CalibrationStatusLog",
        lazy="selectin",
        order_by="CalibrationStatusLog.created_at",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index(
            'uq_calibrations_open_item', 'item_serial',
            unique=True,
            postgresql_where=text("status IN ('PENDING', 'APPROVED')"),
            sqlite_where=text("status IN ('PENDING', 'APPROVED')"),
        ),
    )

    def __repr__(self):
        return f"<Calibration(id={self.id}, item={self.item_serial}, status='{self.status}')>"


class CalibrationStatusLog(Base):
    """Append-only record of every calibration status change."""
    __tablename__ = 'calibration_status_logs'

    id = Column(String(36), primary_key=True, default=generate_id)
    calibration_id = Column(
        String(36),
        ForeignKey('calibrations.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    status = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class CalibrationCertificate(Base):
    """
    Certificate issued when a calibration completes.

    Holds the data the external PDF renderer prints; owned one-to-one by
    the calibration and deleted with it.
    """
    __tablename__ = "calibration_certificates"

    id = Column(String(36), primary_key=True, default=generate_id)
    calibration_id = Column(
        String(36),
        ForeignKey('calibrations.id', ondelete='CASCADE'),
        unique=True,
        nullable=False
    )
    certificate_number = Column(String(100), nullable=True)
    manufacturer = Column(String(255), nullable=True)
    instrument_name = Column(String(255), nullable=True)
    model_number = Column(String(100), nullable=True)
    configuration = Column(String(255), nullable=True)
    approved_by = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    calibration = relationship("Calibration", back_populates="certificate")
    gas_entries = relationship(
        "GasCalibrationEntry",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    test_entries = relationship(
        "TestResultEntry",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<CalibrationCertificate(calibration={self.calibration_id}, number={self.certificate_number})>"


class GasCalibrationEntry(Base):
    __tablename__ = "gas_calibration_entries"

    id = Column(String(36), primary_key=True, default=generate_id)
    certificate_id = Column(
        String(36),
        ForeignKey('calibration_certificates.id', ondelete='CASCADE'),
        nullable=False
    )
    gas_type = Column(String(100), nullable=False)
    gas_concentration = Column(String(100), nullable=False)
    gas_balance = Column(String(100), nullable=True)
    gas_batch_number = Column(String(100), nullable=True)


class TestResultEntry(Base):
    __tablename__ = "test_result_entries"

    id = Column(String(36), primary_key=True, default=generate_id)
    certificate_id = Column(
        String(36),
        ForeignKey('calibration_certificates.id', ondelete='CASCADE'),
        nullable=False
    )
    test_sensor = Column(String(100), nullable=False)
    test_span = Column(String(100), nullable=True)
    test_result = Column(String(20), nullable=False, doc="Pass or Fail")
