import uuid
from datetime import datetime, timedelta, timezone
from typing import List

import pytz
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models.models import Gig, GigCheckIn, GigPersonnel, User
from ..schemas.checkins import CheckInRequest, CheckOutRequest, CheckInResponse
from ..schemas.gigs import GigResponse
from ..services.permissions import is_assigned
from ..auth.security import get_current_user, require_manager
from ..logging import structlog
from .gigs import get_gig_or_404


router = APIRouter(prefix="/api", tags=["check-ins"])
logger = structlog.get_logger(__name__)


def local_day_bounds(now: datetime = None, tz_name: str = None):
    """UTC bounds of the local calendar day containing `now`."""
    tz = pytz.timezone(tz_name or settings.tz_default)
    now = now or datetime.now(timezone.utc)
    local_date = now.astimezone(tz).date()
    start = tz.localize(datetime(local_date.year, local_date.month, local_date.day))
    end = tz.localize(datetime.combine(local_date + timedelta(days=1), datetime.min.time()))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def _personnel_id(user: User) -> uuid.UUID:
    if user.personnel_id is None:
        raise HTTPException(status_code=403, detail="Only personnel can check in")
    return user.personnel_id


def _open_check_in(db: Session, gig_id: uuid.UUID, personnel_id: uuid.UUID):
    return (
        db.query(GigCheckIn)
        .filter(
            GigCheckIn.gig_id == gig_id,
            GigCheckIn.personnel_id == personnel_id,
            GigCheckIn.check_out_time.is_(None),
        )
        .first()
    )


@router.get("/my-gigs/today", response_model=List[GigResponse])
def my_gigs_today(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if user.personnel_id is None:
        return []
    start, end = local_day_bounds()
    return (
        db.query(Gig)
        .join(GigPersonnel, GigPersonnel.gig_id == Gig.id)
        .filter(
            GigPersonnel.personnel_id == user.personnel_id,
            Gig.start_time >= start,
            Gig.start_time < end,
        )
        .order_by(Gig.start_time.asc())
        .all()
    )


@router.get("/my-check-ins", response_model=List[CheckInResponse])
def my_check_ins(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if user.personnel_id is None:
        return []
    return (
        db.query(GigCheckIn)
        .filter(GigCheckIn.personnel_id == user.personnel_id)
        .order_by(GigCheckIn.check_in_time.desc())
        .all()
    )


@router.post("/gigs/{gig_id}/check-in", response_model=CheckInResponse, status_code=201)
def check_in(
    gig_id: uuid.UUID,
    payload: CheckInRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    get_gig_or_404(db, gig_id)
    personnel_id = _personnel_id(user)
    if not is_assigned(db, personnel_id, gig_id):
        raise HTTPException(status_code=403, detail="You are not assigned to this gig")
    if _open_check_in(db, gig_id, personnel_id) is not None:
        raise HTTPException(status_code=409, detail="Already checked in to this gig")
    row = GigCheckIn(
        gig_id=gig_id,
        personnel_id=personnel_id,
        check_in_time=payload.check_in_time or datetime.now(timezone.utc),
        check_in_location=payload.check_in_location,
        notes=payload.notes,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("checked_in", gig_id=str(gig_id), personnel_id=str(personnel_id))
    return row


@router.post("/gigs/{gig_id}/check-out", response_model=CheckInResponse)
def check_out(
    gig_id: uuid.UUID,
    payload: CheckOutRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    get_gig_or_404(db, gig_id)
    personnel_id = _personnel_id(user)
    row = _open_check_in(db, gig_id, personnel_id)
    if row is None:
        raise HTTPException(status_code=409, detail="No open check-in for this gig")
    out_time = payload.check_out_time or datetime.now(timezone.utc)
    if out_time < row.check_in_time:
        raise HTTPException(status_code=422, detail="Check-out time cannot be before check-in time")
    row.check_out_time = out_time
    row.check_out_location = payload.check_out_location
    if payload.notes:
        row.notes = payload.notes
    db.commit()
    db.refresh(row)
    logger.info("checked_out", gig_id=str(gig_id), personnel_id=str(personnel_id))
    return row


@router.get("/gigs/{gig_id}/check-ins", response_model=List[CheckInResponse])
def gig_check_ins(gig_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_gig_or_404(db, gig_id)
    return (
        db.query(GigCheckIn)
        .filter(GigCheckIn.gig_id == gig_id)
        .order_by(GigCheckIn.check_in_time.asc())
        .all()
    )
