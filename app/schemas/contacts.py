import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import blank_to_none


class ContactBase(BaseModel):
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    title: Optional[str] = None

    @field_validator('last_name','email','phone','title', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)


class ContactCreate(ContactBase):
    first_name: str = Field(min_length=1)


class ContactUpdate(ContactBase):
    first_name: Optional[str] = Field(default=None, min_length=1)


class ContactResponse(ContactBase):
    id: uuid.UUID
    first_name: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContactAssociation(BaseModel):
    """Either an existing contact_id, or contact fields to find-or-create."""
    contact_id: Optional[uuid.UUID] = None
    contact_role_id: Optional[uuid.UUID] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    title: Optional[str] = None

    @field_validator('first_name','last_name','email','phone','title', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)


class LinkedContactResponse(ContactResponse):
    contact_role_id: Optional[uuid.UUID] = None


class AssociationResult(BaseModel):
    contact: LinkedContactResponse
    is_existing: bool
