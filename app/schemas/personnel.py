import re
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List

from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import blank_to_none
from .auth import UserResponse
from .payouts import PayoutResponse


SSN_PATTERN = re.compile(r"^\d{3}-?\d{2}-?\d{4}$")


def check_ssn(v):
    v = blank_to_none(v)
    if v is not None and not SSN_PATTERN.match(v):
        raise ValueError("SSN must be 9 digits, optionally formatted 123-45-6789")
    return v


class PersonnelBase(BaseModel):
    middle_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    dob: Optional[date] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    personnel_type_id: Optional[uuid.UUID] = None

    @field_validator('middle_name','email','phone','address1','address2','city','state','zip', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)


class PersonnelCreate(PersonnelBase):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    ssn: Optional[str] = None
    is_active: bool = True

    @field_validator('ssn', mode='before')
    @classmethod
    def ssn_format(cls, v):
        return check_ssn(v)


class PersonnelUpdate(PersonnelBase):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    ssn: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('ssn', mode='before')
    @classmethod
    def ssn_format(cls, v):
        return check_ssn(v)


class PersonnelResponse(PersonnelBase):
    id: uuid.UUID
    first_name: str
    last_name: str
    full_name: str
    is_active: bool
    has_ssn: bool
    ssn_masked: Optional[str] = None
    user_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class SsnResponse(BaseModel):
    personnel_id: uuid.UUID
    ssn: Optional[str] = None


class CreateLoginRequest(BaseModel):
    password: Optional[str] = Field(default=None, min_length=6)


class CreateLoginResponse(BaseModel):
    user: UserResponse
    generated_password: Optional[str] = None


class PersonnelStats(BaseModel):
    total_gigs: int
    gigs_this_month: int
    total_earnings: Decimal
    documents_uploaded: int


class MyPayoutsResponse(BaseModel):
    payouts: List[PayoutResponse]
    total_earnings: Decimal
    this_month_earnings: Decimal
