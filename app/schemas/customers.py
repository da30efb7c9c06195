import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from .common import blank_to_none


PHONE_PATTERN = re.compile(r"^\(\d{3}\) \d{3}-\d{4}$")


class CustomerType(str, Enum):
    business = "business"
    person = "person"


def check_phone(v: Optional[str]) -> Optional[str]:
    if v is not None and not PHONE_PATTERN.match(v):
        raise ValueError("Phone must be in the format (555) 555-5555")
    return v


def check_customer_names(customer_type: str, business_name, first_name, last_name) -> None:
    """A customer's type decides which name fields are required."""
    if customer_type == CustomerType.business and not business_name:
        raise ValueError("Business name is required for business customers")
    if customer_type == CustomerType.person and not (first_name and last_name):
        raise ValueError("First name and last name are required for person customers")


class CustomerBase(BaseModel):
    class Config:
        use_enum_values = True

    business_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    primary_email: Optional[EmailStr] = None
    primary_phone: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    notes: Optional[str] = None
    square_customer_id: Optional[str] = None

    @field_validator('business_name','first_name','last_name','primary_email','primary_phone','address1','address2','city','state','zip','notes','square_customer_id', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)

    @field_validator('primary_phone')
    @classmethod
    def phone_format(cls, v):
        return check_phone(v)


class CustomerCreate(CustomerBase):
    customer_type: CustomerType

    @model_validator(mode="after")
    def names_for_type(self):
        check_customer_names(self.customer_type, self.business_name, self.first_name, self.last_name)
        return self


class CustomerUpdate(CustomerBase):
    customer_type: Optional[CustomerType] = None


class CustomerResponse(BaseModel):
    id: uuid.UUID
    customer_type: CustomerType
    business_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: str
    primary_email: Optional[str] = None
    primary_phone: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    notes: Optional[str] = None
    square_customer_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
