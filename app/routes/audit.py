import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas.audit import AuditLogPage
from ..services.audit import get_audit_logs, verify_integrity, compute_diff
from ..auth.security import require_owner


router = APIRouter(prefix="/api/audit-log", tags=["audit"])


@router.get("", response_model=AuditLogPage)
def list_audit_log(
    table: Optional[str] = None,
    record_id: Optional[uuid.UUID] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    _=Depends(require_owner),
):
    logs = get_audit_logs(db, table_name=table, record_id=record_id, limit=limit, offset=offset)
    entries = [
        {
            "id": log.id,
            "timestamp_utc": log.timestamp_utc,
            "action": log.action,
            "table_name": log.table_name,
            "record_id": log.record_id,
            "record_key": log.record_key,
            "actor_id": log.actor_id,
            "actor_role": log.actor_role,
            "old_data": log.old_data,
            "new_data": log.new_data,
            "changes": compute_diff(log.old_data, log.new_data) if log.action == "UPDATE" else {},
            "integrity_ok": verify_integrity(log),
        }
        for log in logs
    ]
    return {"entries": entries, "limit": limit, "offset": offset}
