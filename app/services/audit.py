"""
Audit logging service.
Append-only row-level audit log with integrity hashing.

Every ORM flush is inspected after it hits the database; each inserted,
updated or deleted row of a tracked table yields exactly one audit entry
carrying a JSON snapshot of the row before and/or after the change.
"""
import hashlib
import json
import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, Dict, Any, List

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, Mapper

from ..models.models import AuditLog, SYSTEM_ACTOR_ID, utcnow
from ..config import settings


class AuditLogImmutableError(RuntimeError):
    pass


def set_actor(db: Session, actor_id: Optional[uuid.UUID], actor_role: Optional[str]) -> None:
    """Attribute every change flushed through this session to the given user."""
    db.info["actor_id"] = actor_id
    db.info["actor_role"] = actor_role


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.hex()
    return value


def is_tracked(obj: Any) -> bool:
    return getattr(type(obj), "__audited__", True) and hasattr(obj, "__table__")


def _column_attrs(mapper: Mapper):
    return [(prop.key, prop.columns[0].name) for prop in mapper.column_attrs]


def snapshot(obj: Any) -> Dict[str, Any]:
    """Current column values of a mapped object, keyed by column name."""
    mapper = inspect(obj).mapper
    return {col: _jsonable(getattr(obj, key)) for key, col in _column_attrs(mapper)}


def previous_snapshot(obj: Any) -> Dict[str, Any]:
    """Column values as they were before the pending changes in this flush."""
    state = inspect(obj)
    data = {}
    for key, col in _column_attrs(state.mapper):
        hist = state.attrs[key].history
        if hist.deleted:
            data[col] = _jsonable(hist.deleted[0])
        elif hist.unchanged:
            data[col] = _jsonable(hist.unchanged[0])
        else:
            data[col] = _jsonable(getattr(obj, key))
    return data


def _record_identity(obj: Any):
    state = inspect(obj)
    pk_cols = state.mapper.primary_key
    key = {c.name: _jsonable(getattr(obj, state.mapper.get_property_by_column(c).key)) for c in pk_cols}
    record_id = None
    if len(pk_cols) == 1:
        raw = getattr(obj, state.mapper.get_property_by_column(pk_cols[0]).key)
        if isinstance(raw, uuid.UUID):
            record_id = raw
    return record_id, key


def compute_integrity_hash(entry: Dict[str, Any], integrity_secret: Optional[str] = None) -> Optional[str]:
    if integrity_secret is None:
        integrity_secret = settings.jwt_secret
    if not integrity_secret:
        return None
    canonical_data = {
        "action": entry.get("action"),
        "table_name": entry.get("table_name"),
        "record_key": entry.get("record_key"),
        "actor_id": str(entry["actor_id"]) if entry.get("actor_id") else None,
        "timestamp_utc": entry["timestamp_utc"].isoformat() if entry.get("timestamp_utc") else None,
        "old_data": entry.get("old_data"),
        "new_data": entry.get("new_data"),
    }
    # Remove None values and sort keys for consistency
    canonical_data = {k: v for k, v in canonical_data.items() if v is not None}
    canonical_json = json.dumps(canonical_data, sort_keys=True, default=str)
    return hashlib.sha256(f"{canonical_json}:{integrity_secret}".encode()).hexdigest()


def verify_integrity(log: AuditLog, integrity_secret: Optional[str] = None) -> bool:
    expected = compute_integrity_hash(
        {
            "action": log.action,
            "table_name": log.table_name,
            "record_key": log.record_key,
            "actor_id": log.actor_id,
            "timestamp_utc": log.timestamp_utc,
            "old_data": log.old_data,
            "new_data": log.new_data,
        },
        integrity_secret,
    )
    return expected == log.integrity_hash


def _build_entry(session: Session, obj: Any, action: str, old_data, new_data) -> Dict[str, Any]:
    record_id, record_key = _record_identity(obj)
    entry = {
        "id": uuid.uuid4(),
        "timestamp_utc": utcnow(),
        "action": action,
        "table_name": obj.__table__.name,
        "record_id": record_id,
        "record_key": record_key,
        "actor_id": session.info.get("actor_id") or SYSTEM_ACTOR_ID,
        "actor_role": session.info.get("actor_role") or "system",
        "old_data": old_data,
        "new_data": new_data,
    }
    entry["integrity_hash"] = compute_integrity_hash(entry)
    return entry


def collect_changes(session: Session) -> List[Dict[str, Any]]:
    entries = []
    for obj in session.new:
        if is_tracked(obj):
            entries.append(_build_entry(session, obj, "INSERT", None, snapshot(obj)))
    for obj in session.dirty:
        if not is_tracked(obj) or not session.is_modified(obj, include_collections=False):
            continue
        before, after = previous_snapshot(obj), snapshot(obj)
        # updated_at alone moving is not a change
        changed = {k for k in after if before.get(k) != after.get(k)} - {"updated_at"}
        if changed:
            entries.append(_build_entry(session, obj, "UPDATE", before, after))
    for obj in session.deleted:
        if is_tracked(obj):
            entries.append(_build_entry(session, obj, "DELETE", previous_snapshot(obj), None))
    return entries


@event.listens_for(Session, "before_flush")
def _load_deleted_rows(session: Session, flush_context, instances) -> None:
    # rows about to be deleted must be loaded while they still exist
    for obj in list(session.deleted):
        if is_tracked(obj):
            snapshot(obj)


@event.listens_for(Session, "after_flush")
def _write_audit_rows(session: Session, flush_context) -> None:
    entries = collect_changes(session)
    if entries:
        session.connection().execute(AuditLog.__table__.insert(), entries)


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target):
    raise AuditLogImmutableError("audit log entries cannot be modified")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target):
    raise AuditLogImmutableError("audit log entries cannot be deleted")


def get_audit_logs(
    db: Session,
    table_name: Optional[str] = None,
    record_id: Optional[uuid.UUID] = None,
    limit: int = 100,
    offset: int = 0
) -> list:
    """
    Get audit logs with optional filtering, newest first.

    Args:
        db: Database session
        table_name: Filter by table
        record_id: Filter by primary key of the changed row
        limit: Maximum number of results
        offset: Offset for pagination
    """
    query = db.query(AuditLog)

    if table_name:
        query = query.filter(AuditLog.table_name == table_name)

    if record_id:
        query = query.filter(AuditLog.record_id == record_id)

    query = query.order_by(AuditLog.timestamp_utc.desc(), AuditLog.id)
    query = query.limit(limit).offset(offset)

    return query.all()


def compute_diff(before: Optional[Dict], after: Optional[Dict]) -> Dict:
    """
    Field-level diff between two snapshots.

    Returns:
        Dict with before/after values for changed fields
    """
    before = before or {}
    after = after or {}
    diff = {}
    for key in set(before.keys()) | set(after.keys()):
        before_val = before.get(key)
        after_val = after.get(key)
        if before_val != after_val:
            diff[key] = {
                "before": before_val,
                "after": after_val,
            }
    return diff
