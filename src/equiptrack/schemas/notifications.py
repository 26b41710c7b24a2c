"""
Pydantic schemas for reminders, notifications and the reminder sweep
"""

from datetime import datetime
from typing import Optional, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from .enums import ReminderType, ReminderStatus


class ReminderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: ReminderType
    status: ReminderStatus
    title: str
    message: str
    due_date: datetime
    reminder_date: datetime
    source_id: str
    item_serial: Optional[str] = None
    user_id: str
    email_sent: bool = False
    email_sent_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    message: str
    is_read: bool
    read_at: Optional[datetime] = None
    should_play_sound: bool
    reminder_id: Optional[str] = None
    reminder: Optional[ReminderRead] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: List[NotificationRead]
    total: int
    page: int
    total_pages: int


class UnreadCountResponse(BaseModel):
    count: int


class NotificationAction(BaseModel):
    """Bulk read-state actions"""
    action: Literal["markAllRead", "deleteAllRead"]


class SweepResult(BaseModel):
    """Outcome of one reminder sweep"""
    created: int = Field(0, description="Notifications materialized")
    processed: int = Field(0, description="Due reminders examined")
    failed: int = Field(0, description="Reminders whose dispatch raised")
    skipped: bool = Field(False, description="Throttled because a sweep ran recently")


class InventoryCheckCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    frequency_days: int = Field(30, ge=1)
    next_date: datetime


class InventoryCheckRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    frequency_days: int
    next_date: datetime
    user_id: str
    created_at: datetime
