"""
Pydantic schemas for activity logs and item history
"""

from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field

from .enums import ActivityTargetKind, ActivityType


class ActivityTarget(BaseModel):
    """
    The single entity an activity log row is about.

    A row carries one target or none; use the constructors rather than
    building the model by hand.
    """
    model_config = ConfigDict(frozen=True)

    kind: ActivityTargetKind
    id: str = Field(..., min_length=1)

    @classmethod
    def item(cls, serial_number: str) -> "ActivityTarget":
        return cls(kind=ActivityTargetKind.ITEM, id=serial_number)

    @classmethod
    def rental(cls, rental_id: str) -> "ActivityTarget":
        return cls(kind=ActivityTargetKind.RENTAL, id=rental_id)

    @classmethod
    def calibration(cls, calibration_id: str) -> "ActivityTarget":
        return cls(kind=ActivityTargetKind.CALIBRATION, id=calibration_id)

    @classmethod
    def maintenance(cls, maintenance_id: str) -> "ActivityTarget":
        return cls(kind=ActivityTargetKind.MAINTENANCE, id=maintenance_id)

    @classmethod
    def user(cls, user_id: str) -> "ActivityTarget":
        return cls(kind=ActivityTargetKind.USER, id=user_id)

    @classmethod
    def customer(cls, customer_id: str) -> "ActivityTarget":
        return cls(kind=ActivityTargetKind.CUSTOMER, id=customer_id)

    @classmethod
    def inventory_check(cls, check_id: str) -> "ActivityTarget":
        return cls(kind=ActivityTargetKind.INVENTORY_CHECK, id=check_id)


class ActivityLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: ActivityType
    action: str
    details: Optional[str] = None
    user_id: Optional[str] = None
    target_type: Optional[ActivityTargetKind] = None
    target_id: Optional[str] = None
    item_serial: Optional[str] = None
    affected_user_id: Optional[str] = None
    created_at: datetime


class ActivityLogListResponse(BaseModel):
    items: List[ActivityLogRead]
    total: int
    page: int
    limit: int
    total_pages: int


class ItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    serial_number: str
    name: str
    part_number: str
    sensor: Optional[str] = None
    description: Optional[str] = None
    customer_id: Optional[str] = None
    status: str
    last_verified_at: Optional[datetime] = None


class ItemHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    item_serial: str
    action: str
    details: Optional[str] = None
    related_id: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None


class ItemHistoryResponse(BaseModel):
    item: ItemRead
    history: List[ItemHistoryRead]
    activity_logs: List[ActivityLogRead]
