import uuid
from datetime import datetime, timezone
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models.models import Gig, GigType, GigPersonnel, Customer, Venue, Personnel, User
from ..schemas.gigs import (
    GigCreate,
    GigUpdate,
    GigResponse,
    AssignPersonnelRequest,
    AssignedPersonnelResponse,
)
from ..services.permissions import can_view_gig
from ..services.recurrence import occurrences
from ..auth.security import get_current_user, require_manager
from ..logging import structlog


router = APIRouter(prefix="/api/gigs", tags=["gigs"])
logger = structlog.get_logger(__name__)


def get_gig_or_404(db: Session, gig_id: uuid.UUID) -> Gig:
    gig = db.get(Gig, gig_id)
    if gig is None:
        raise HTTPException(status_code=404, detail="Gig not found")
    return gig


def _check_references(db: Session, customer_id=None, venue_id=None, gig_type_id=None) -> None:
    if customer_id is not None and db.get(Customer, customer_id) is None:
        raise HTTPException(status_code=400, detail="Unknown customer")
    if venue_id is not None and db.get(Venue, venue_id) is None:
        raise HTTPException(status_code=400, detail="Unknown venue")
    if gig_type_id is not None and db.get(GigType, gig_type_id) is None:
        raise HTTPException(status_code=400, detail="Unknown gig type")


@router.get("", response_model=List[GigResponse])
def list_gigs(
    status: Optional[str] = None,
    customer_id: Optional[uuid.UUID] = None,
    venue_id: Optional[uuid.UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    q = db.query(Gig)
    if status:
        q = q.filter(Gig.status == status)
    if customer_id:
        q = q.filter(Gig.customer_id == customer_id)
    if venue_id:
        q = q.filter(Gig.venue_id == venue_id)
    if start:
        q = q.filter(Gig.start_time >= start)
    if end:
        q = q.filter(Gig.start_time < end)
    return q.order_by(Gig.start_time.asc()).all()


@router.get("/upcoming", response_model=List[GigResponse])
def upcoming_gigs(limit: int = 10, db: Session = Depends(get_db), _=Depends(require_manager)):
    now = datetime.now(timezone.utc)
    return (
        db.query(Gig)
        .filter(Gig.start_time >= now, Gig.status != "cancelled")
        .order_by(Gig.start_time.asc())
        .limit(max(1, min(limit, 100)))
        .all()
    )


@router.get("/pending", response_model=List[GigResponse])
def pending_gigs(db: Session = Depends(get_db), _=Depends(require_manager)):
    return db.query(Gig).filter(Gig.status == "pending").order_by(Gig.start_time.asc()).all()


@router.post("", response_model=List[GigResponse], status_code=201)
def create_gig(payload: GigCreate, db: Session = Depends(get_db), _=Depends(require_manager)):
    """Create one gig, or a weekly/monthly series sharing a recurrence group."""
    _check_references(db, payload.customer_id, payload.venue_id, payload.gig_type_id)
    data = payload.model_dump(exclude={"recurrence", "start_time", "end_time"})

    if payload.recurrence is None:
        ranges = [(payload.start_time, payload.end_time)]
        group_id = None
    else:
        ranges = occurrences(
            payload.start_time,
            payload.end_time,
            payload.recurrence.frequency,
            payload.recurrence.count,
            settings.tz_default,
        )
        group_id = uuid.uuid4()

    gigs = [Gig(**data, start_time=s, end_time=e, recurrence_group_id=group_id) for s, e in ranges]
    db.add_all(gigs)
    db.commit()
    for g in gigs:
        db.refresh(g)
    if group_id:
        logger.info("gig_series_created", recurrence_group_id=str(group_id), count=len(gigs))
    return gigs


@router.get("/{gig_id}", response_model=GigResponse)
def get_gig(gig_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    gig = get_gig_or_404(db, gig_id)
    if not can_view_gig(user, gig, db):
        raise HTTPException(status_code=403, detail="Forbidden")
    return gig


@router.put("/{gig_id}", response_model=GigResponse)
def update_gig(gig_id: uuid.UUID, payload: GigUpdate, db: Session = Depends(get_db), _=Depends(require_manager)):
    gig = get_gig_or_404(db, gig_id)
    data = payload.model_dump(exclude_unset=True)
    for field in ("name", "start_time", "end_time", "customer_id", "venue_id", "status"):
        if field in data and data[field] is None:
            raise HTTPException(status_code=422, detail=f"{field} cannot be empty")
    start = data.get("start_time", gig.start_time)
    end = data.get("end_time", gig.end_time)
    if end <= start:
        raise HTTPException(status_code=422, detail="end_time must be after start_time")
    _check_references(db, data.get("customer_id"), data.get("venue_id"), data.get("gig_type_id"))
    for k, v in data.items():
        setattr(gig, k, v)
    db.commit()
    db.refresh(gig)
    return gig


@router.delete("/{gig_id}")
def delete_gig(gig_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    gig = get_gig_or_404(db, gig_id)
    # assignments, payouts, check-ins, file links and gig invoices cascade; internal invoices are detached
    db.delete(gig)
    db.commit()
    return {"message": "Gig deleted successfully"}


@router.get("/{gig_id}/series", response_model=List[GigResponse])
def gig_series(gig_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    gig = get_gig_or_404(db, gig_id)
    if gig.recurrence_group_id is None:
        return [gig]
    return (
        db.query(Gig)
        .filter(Gig.recurrence_group_id == gig.recurrence_group_id)
        .order_by(Gig.start_time.asc())
        .all()
    )


@router.post("/{gig_id}/assign-personnel", response_model=List[AssignedPersonnelResponse])
def assign_personnel(
    gig_id: uuid.UUID,
    payload: AssignPersonnelRequest,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    """Replace the gig's assignment set."""
    gig = get_gig_or_404(db, gig_id)
    wanted = list(dict.fromkeys(payload.personnel_ids))
    if wanted:
        found = {p.id for p in db.query(Personnel).filter(Personnel.id.in_(wanted)).all()}
        missing = [str(pid) for pid in wanted if pid not in found]
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown personnel: {', '.join(missing)}")
    existing = {link.personnel_id: link for link in gig.personnel_links}
    for pid, link in existing.items():
        if pid not in wanted:
            db.delete(link)
    gig.personnel_links = [existing.get(pid) or GigPersonnel(personnel_id=pid) for pid in wanted]
    db.commit()
    return gig_personnel(gig_id, db)


@router.get("/{gig_id}/personnel", response_model=List[AssignedPersonnelResponse])
def list_gig_personnel(gig_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_gig_or_404(db, gig_id)
    return gig_personnel(gig_id, db)


def gig_personnel(gig_id: uuid.UUID, db: Session) -> list:
    rows = (
        db.query(GigPersonnel, Personnel)
        .join(Personnel, Personnel.id == GigPersonnel.personnel_id)
        .filter(GigPersonnel.gig_id == gig_id)
        .order_by(Personnel.last_name, Personnel.first_name)
        .all()
    )
    return [
        {
            "personnel_id": p.id,
            "first_name": p.first_name,
            "last_name": p.last_name,
            "email": p.email,
            "phone": p.phone,
            "role_notes": link.role_notes,
        }
        for link, p in rows
    ]
