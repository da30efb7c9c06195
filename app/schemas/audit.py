import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class AuditLogEntry(BaseModel):
    id: uuid.UUID
    timestamp_utc: datetime
    action: str
    table_name: str
    record_id: Optional[uuid.UUID] = None
    record_key: Optional[Dict[str, Any]] = None
    actor_id: uuid.UUID
    actor_role: Optional[str] = None
    old_data: Optional[Dict[str, Any]] = None
    new_data: Optional[Dict[str, Any]] = None
    changes: Dict[str, Any] = {}
    integrity_ok: bool


class AuditLogPage(BaseModel):
    entries: List[AuditLogEntry]
    limit: int
    offset: int
