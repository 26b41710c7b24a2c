"""
Closed enumerations shared by models, schemas and services
"""

from enum import Enum


class UserRole(str, Enum):
    """Caller roles"""
    ADMIN = "ADMIN"
    USER = "USER"


class ItemStatus(str, Enum):
    """Physical item availability"""
    AVAILABLE = "AVAILABLE"
    IN_CALIBRATION = "IN_CALIBRATION"
    RENTED = "RENTED"
    IN_MAINTENANCE = "IN_MAINTENANCE"


class RequestStatus(str, Enum):
    """Lifecycle shared by rentals, calibrations and maintenance"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_REQUEST_STATUSES = (
    RequestStatus.COMPLETED,
    RequestStatus.REJECTED,
    RequestStatus.CANCELLED,
)


class RequestKind(str, Enum):
    """The three request record kinds"""
    RENTAL = "RENTAL"
    CALIBRATION = "CALIBRATION"
    MAINTENANCE = "MAINTENANCE"


class HistoryAction(str, Enum):
    """ItemHistory actions, one per request kind"""
    RENTED = "RENTED"
    CALIBRATED = "CALIBRATED"
    MAINTAINED = "MAINTAINED"


class ReminderType(str, Enum):
    CALIBRATION = "CALIBRATION"
    RENTAL = "RENTAL"
    SCHEDULE = "SCHEDULE"
    MAINTENANCE = "MAINTENANCE"


class ReminderStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    ACKNOWLEDGED = "ACKNOWLEDGED"


ACTIVE_REMINDER_STATUSES = (ReminderStatus.PENDING, ReminderStatus.SENT)


class ActivityType(str, Enum):
    """Activity log kinds"""
    RENTAL_CREATED = "RENTAL_CREATED"
    RENTAL_UPDATED = "RENTAL_UPDATED"
    CALIBRATION_CREATED = "CALIBRATION_CREATED"
    CALIBRATION_UPDATED = "CALIBRATION_UPDATED"
    MAINTENANCE_CREATED = "MAINTENANCE_CREATED"
    MAINTENANCE_UPDATED = "MAINTENANCE_UPDATED"
    INVENTORY_CHECK_CREATED = "INVENTORY_CHECK_CREATED"


class ActivityTargetKind(str, Enum):
    """Entity an activity log row is about"""
    ITEM = "ITEM"
    RENTAL = "RENTAL"
    CALIBRATION = "CALIBRATION"
    MAINTENANCE = "MAINTENANCE"
    USER = "USER"
    CUSTOMER = "CUSTOMER"
    INVENTORY_CHECK = "INVENTORY_CHECK"
