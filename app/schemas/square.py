import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SquareEnvironment(str, Enum):
    sandbox = "sandbox"
    production = "production"


class SquareConfigCreate(BaseModel):
    class Config:
        use_enum_values = True

    access_token: str = Field(min_length=1)
    environment: SquareEnvironment = "sandbox"


class SquareConfigUpdate(BaseModel):
    class Config:
        use_enum_values = True

    access_token: Optional[str] = Field(default=None, min_length=1)
    environment: Optional[SquareEnvironment] = None
    is_active: Optional[bool] = None


class SquareConfigResponse(BaseModel):
    id: uuid.UUID
    access_token_masked: Optional[str] = None
    environment: SquareEnvironment
    is_active: bool
    last_tested: Optional[datetime] = None
    test_result: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SquareTestRequest(BaseModel):
    class Config:
        use_enum_values = True

    access_token: Optional[str] = None
    environment: Optional[SquareEnvironment] = None


class SquareTestResult(BaseModel):
    success: bool
    message: str


class SquareSyncResult(BaseModel):
    customers: int
    invoices: int
    payments: int
    linked_customers: int
    imported_payments: int


class SquareMirrorResponse(BaseModel):
    id: uuid.UUID
    external_id: str
    full_data: dict
    fetched_at: datetime
