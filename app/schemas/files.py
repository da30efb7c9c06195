import uuid
from datetime import datetime
from pydantic import BaseModel
from typing import Optional


class FileResponse(BaseModel):
    id: uuid.UUID
    file_name: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    provider: str
    storage_key: str
    category: Optional[str] = None
    description: Optional[str] = None
    document_type_id: Optional[uuid.UUID] = None
    uploaded_by: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True
