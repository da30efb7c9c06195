import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator

from .common import as_utc, blank_to_none


class InvoiceStatus(str, Enum):
    draft = "draft"
    sent = "sent"
    paid = "paid"
    overdue = "overdue"
    cancelled = "cancelled"


class InvoiceItemIn(BaseModel):
    description: str = Field(min_length=1)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    rate: Decimal = Field(ge=0)


class InvoiceItemResponse(BaseModel):
    id: uuid.UUID
    description: str
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    sort_order: int

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    class Config:
        use_enum_values = True

    customer_id: uuid.UUID
    gig_id: Optional[uuid.UUID] = None
    invoice_number: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    status: InvoiceStatus = "draft"
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    payment_method_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    items: List[InvoiceItemIn] = []

    @field_validator('invoice_number', 'notes', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)


class InvoiceUpdate(BaseModel):
    gig_id: Optional[uuid.UUID] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    tax: Optional[Decimal] = Field(default=None, ge=0)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    payment_method_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    items: Optional[List[InvoiceItemIn]] = None


class InvoiceStatusUpdate(BaseModel):
    class Config:
        use_enum_values = True

    status: InvoiceStatus
    paid_date: Optional[date] = None


class InvoiceResponse(BaseModel):
    id: uuid.UUID
    invoice_number: str
    customer_id: uuid.UUID
    gig_id: Optional[uuid.UUID] = None
    amount: Decimal
    tax: Decimal
    total: Decimal
    status: InvoiceStatus
    issue_date: date
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    payment_method_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    items: List[InvoiceItemResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GigInvoiceCreate(BaseModel):
    external_invoice_id: Optional[str] = None
    external_invoice_url: Optional[str] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[str] = "sent"
    issue_date: Optional[date] = None
    due_date: Optional[date] = None

    @field_validator('external_invoice_id', 'external_invoice_url', 'status', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return blank_to_none(v)


class GigInvoiceResponse(BaseModel):
    id: uuid.UUID
    gig_id: uuid.UUID
    external_invoice_id: str
    external_invoice_url: Optional[str] = None
    amount: Optional[Decimal] = None
    status: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    square_invoice_uuid: Optional[uuid.UUID] = None
    amount_paid: Decimal = Decimal("0")

    class Config:
        from_attributes = True


class SquareLinkRequest(BaseModel):
    square_invoice_id: Optional[str] = None


class GigInvoicePaymentCreate(BaseModel):
    payment_amount: Decimal = Field(gt=0)
    payment_method_id: Optional[uuid.UUID] = None
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator('payment_date')
    @classmethod
    def to_utc(cls, v):
        return as_utc(v)


class GigInvoicePaymentResponse(BaseModel):
    id: uuid.UUID
    gig_invoice_id: uuid.UUID
    payment_amount: Decimal
    payment_method_id: Optional[uuid.UUID] = None
    payment_date: datetime
    origin: str
    notes: Optional[str] = None
    square_payment_id: Optional[str] = None

    class Config:
        from_attributes = True
