import uuid
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import Gig, GigPersonnel, User
from ..schemas.common import as_utc
from ..schemas.gigs import CalendarEvent, CalendarMove
from ..services.permissions import is_manager
from ..auth.security import get_current_user, require_manager


router = APIRouter(prefix="/api/calendar", tags=["calendar"])


def to_event(gig: Gig) -> dict:
    return {
        "id": gig.id,
        "title": gig.name,
        "start": gig.start_time,
        "end": gig.end_time,
        "status": gig.status,
        "customer_id": gig.customer_id,
        "venue_id": gig.venue_id,
        "recurrence_group_id": gig.recurrence_group_id,
    }


@router.get("/events", response_model=List[CalendarEvent])
def list_events(
    start: datetime = Query(...),
    end: datetime = Query(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Gigs overlapping the half-open window [start, end)."""
    start, end = as_utc(start), as_utc(end)
    if end <= start:
        raise HTTPException(status_code=422, detail="end must be after start")
    q = db.query(Gig).filter(Gig.start_time < end, Gig.end_time > start)
    if not is_manager(user):
        if user.personnel_id is None:
            return []
        q = q.join(GigPersonnel, GigPersonnel.gig_id == Gig.id).filter(GigPersonnel.personnel_id == user.personnel_id)
    return [to_event(g) for g in q.order_by(Gig.start_time.asc()).all()]


@router.patch("/events/{gig_id}", response_model=CalendarEvent)
def move_event(gig_id: uuid.UUID, payload: CalendarMove, db: Session = Depends(get_db), _=Depends(require_manager)):
    gig = db.get(Gig, gig_id)
    if gig is None:
        raise HTTPException(status_code=404, detail="Gig not found")
    gig.start_time = payload.start
    gig.end_time = payload.end
    db.commit()
    db.refresh(gig)
    return to_event(gig)
