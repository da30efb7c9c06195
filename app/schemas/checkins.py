import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from .common import as_utc, blank_to_none


class CheckInRequest(BaseModel):
    check_in_time: Optional[datetime] = None
    check_in_location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('check_in_location', 'notes', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)

    @field_validator('check_in_time')
    @classmethod
    def to_utc(cls, v):
        return as_utc(v)


class CheckOutRequest(BaseModel):
    check_out_time: Optional[datetime] = None
    check_out_location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('check_out_location', 'notes', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)

    @field_validator('check_out_time')
    @classmethod
    def to_utc(cls, v):
        return as_utc(v)


class CheckInResponse(BaseModel):
    id: uuid.UUID
    gig_id: uuid.UUID
    personnel_id: uuid.UUID
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    check_in_location: Optional[str] = None
    check_out_location: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True
