import uuid
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import PersonnelPayout, Personnel, PaymentMethod
from ..schemas.payouts import PayoutCreate, PayoutUpdate, PayoutResponse
from ..auth.security import require_manager
from .gigs import get_gig_or_404


router = APIRouter(prefix="/api", tags=["payouts"])


def _check_payment_method(db: Session, payment_method_id: Optional[uuid.UUID]) -> None:
    if payment_method_id is not None and db.get(PaymentMethod, payment_method_id) is None:
        raise HTTPException(status_code=400, detail="Unknown payment method")


def _get(db: Session, payout_id: uuid.UUID) -> PersonnelPayout:
    payout = db.get(PersonnelPayout, payout_id)
    if payout is None:
        raise HTTPException(status_code=404, detail="Payout not found")
    return payout


@router.get("/gigs/{gig_id}/payouts", response_model=List[PayoutResponse])
def gig_payouts(gig_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_gig_or_404(db, gig_id)
    return (
        db.query(PersonnelPayout)
        .filter(PersonnelPayout.gig_id == gig_id)
        .order_by(PersonnelPayout.created_at.asc())
        .all()
    )


@router.post("/gigs/{gig_id}/payouts", response_model=PayoutResponse, status_code=201)
def create_payout(gig_id: uuid.UUID, payload: PayoutCreate, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_gig_or_404(db, gig_id)
    if db.get(Personnel, payload.personnel_id) is None:
        raise HTTPException(status_code=400, detail="Unknown personnel")
    _check_payment_method(db, payload.payment_method_id)
    payout = PersonnelPayout(gig_id=gig_id, **payload.model_dump())
    db.add(payout)
    db.commit()
    db.refresh(payout)
    return payout


@router.get("/payouts", response_model=List[PayoutResponse])
def list_payouts(
    personnel_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    q = db.query(PersonnelPayout)
    if personnel_id:
        q = q.filter(PersonnelPayout.personnel_id == personnel_id)
    return q.order_by(PersonnelPayout.created_at.desc()).all()


@router.put("/payouts/{payout_id}", response_model=PayoutResponse)
def update_payout(payout_id: uuid.UUID, payload: PayoutUpdate, db: Session = Depends(get_db), _=Depends(require_manager)):
    payout = _get(db, payout_id)
    data = payload.model_dump(exclude_unset=True)
    if "amount" in data and data["amount"] is None:
        raise HTTPException(status_code=422, detail="amount cannot be empty")
    _check_payment_method(db, data.get("payment_method_id"))
    for k, v in data.items():
        setattr(payout, k, v)
    db.commit()
    db.refresh(payout)
    return payout


@router.delete("/payouts/{payout_id}")
def delete_payout(payout_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    db.delete(_get(db, payout_id))
    db.commit()
    return {"message": "Payout deleted successfully"}
