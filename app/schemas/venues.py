import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import blank_to_none


class VenueBase(BaseModel):
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    occupancy: Optional[int] = Field(default=None, ge=0)
    venue_type_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None

    @field_validator('address1','address2','city','state','zip','phone','website','notes', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)


class VenueCreate(VenueBase):
    name: str = Field(min_length=1)


class VenueUpdate(VenueBase):
    name: Optional[str] = Field(default=None, min_length=1)


class VenueResponse(VenueBase):
    id: uuid.UUID
    name: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
