import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator

from ..config import settings
from .common import as_utc, blank_to_none


class GigStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


class RecurrenceFrequency(str, Enum):
    weekly = "weekly"
    monthly = "monthly"


class RecurrenceRule(BaseModel):
    class Config:
        use_enum_values = True

    frequency: RecurrenceFrequency
    count: int = Field(ge=1)

    @field_validator('count')
    @classmethod
    def count_within_limit(cls, v):
        if v > settings.max_recurrence_count:
            raise ValueError(f"count must be at most {settings.max_recurrence_count}")
        return v


class GigCreate(BaseModel):
    class Config:
        use_enum_values = True

    name: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    customer_id: uuid.UUID
    venue_id: uuid.UUID
    gig_type_id: Optional[uuid.UUID] = None
    status: GigStatus = "pending"
    notes: Optional[str] = None
    recurrence: Optional[RecurrenceRule] = None

    @field_validator('notes', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)

    @field_validator('start_time', 'end_time')
    @classmethod
    def to_utc(cls, v):
        return as_utc(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class GigUpdate(BaseModel):
    class Config:
        use_enum_values = True

    name: Optional[str] = Field(default=None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    customer_id: Optional[uuid.UUID] = None
    venue_id: Optional[uuid.UUID] = None
    gig_type_id: Optional[uuid.UUID] = None
    status: Optional[GigStatus] = None
    notes: Optional[str] = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def to_utc(cls, v):
        return as_utc(v)


class GigResponse(BaseModel):
    id: uuid.UUID
    name: str
    start_time: datetime
    end_time: datetime
    customer_id: uuid.UUID
    venue_id: uuid.UUID
    gig_type_id: Optional[uuid.UUID] = None
    status: GigStatus
    notes: Optional[str] = None
    recurrence_group_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AssignPersonnelRequest(BaseModel):
    personnel_ids: List[uuid.UUID]


class AssignedPersonnelResponse(BaseModel):
    personnel_id: uuid.UUID
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role_notes: Optional[str] = None


class CalendarEvent(BaseModel):
    id: uuid.UUID
    title: str
    start: datetime
    end: datetime
    status: GigStatus
    customer_id: uuid.UUID
    venue_id: uuid.UUID
    recurrence_group_id: Optional[uuid.UUID] = None


class CalendarMove(BaseModel):
    """New range after a drag/drop move or resize."""
    start: datetime
    end: datetime

    @field_validator('start', 'end')
    @classmethod
    def to_utc(cls, v):
        return as_utc(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self
