"""
SQLAlchemy models for the EquipTrack backend
"""

from .users import User, Customer
from .items import Item, ItemHistory
from .rentals import Rental, RentalStatusLog
from .calibration import (
    Calibration,
    CalibrationStatusLog,
    CalibrationCertificate,
    GasCalibrationEntry,
    TestResultEntry,
)
from .maintenance import Maintenance, MaintenanceStatusLog, ServiceReport, TechnicalReport
from .activity_log import ActivityLog
from .reminders import Reminder, InventoryCheck
from .notifications import Notification

__all__ = [
    "User",
    "Customer",
    "Item",
    "ItemHistory",
    "Rental",
    "RentalStatusLog",
    "Calibration",
    "CalibrationStatusLog",
    "CalibrationCertificate",
    "GasCalibrationEntry",
    "TestResultEntry",
    "Maintenance",
    "MaintenanceStatusLog",
    "ServiceReport",
    "TechnicalReport",
    "ActivityLog",
    "Reminder",
    "InventoryCheck",
    "Notification",
]
