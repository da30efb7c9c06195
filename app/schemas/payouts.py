import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import blank_to_none


class PayoutCreate(BaseModel):
    personnel_id: uuid.UUID
    amount: Decimal = Field(ge=0)
    payment_method_id: Optional[uuid.UUID] = None
    date_paid: Optional[date] = None
    notes: Optional[str] = None

    @field_validator('notes', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)


class PayoutUpdate(BaseModel):
    amount: Optional[Decimal] = Field(default=None, ge=0)
    payment_method_id: Optional[uuid.UUID] = None
    date_paid: Optional[date] = None
    notes: Optional[str] = None


class PayoutResponse(BaseModel):
    id: uuid.UUID
    gig_id: uuid.UUID
    personnel_id: uuid.UUID
    payment_method_id: Optional[uuid.UUID] = None
    amount: Decimal
    date_paid: Optional[date] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
