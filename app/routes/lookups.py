"""
CRUD routers for the six name-only lookup tables used by dropdowns.
"""
import uuid
from typing import List, Tuple, Type

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import (
    VenueType,
    PersonnelType,
    GigType,
    PaymentMethod,
    DocumentType,
    ContactRole,
    Venue,
    Personnel,
    Gig,
    PersonnelPayout,
    Invoice,
    GigInvoicePayment,
    FileRecord,
    CustomerContact,
    VenueContact,
)
from ..schemas.lookups import LookupCreate, LookupResponse
from ..auth.security import get_current_user, require_manager


# (referencing model, FK attribute) pairs detached before a lookup value is deleted
LOOKUPS: List[Tuple[str, Type, List[Tuple[Type, str]]]] = [
    ("venue-types", VenueType, [(Venue, "venue_type_id")]),
    ("personnel-types", PersonnelType, [(Personnel, "personnel_type_id")]),
    ("gig-types", GigType, [(Gig, "gig_type_id")]),
    ("payment-methods", PaymentMethod, [
        (PersonnelPayout, "payment_method_id"),
        (Invoice, "payment_method_id"),
        (GigInvoicePayment, "payment_method_id"),
    ]),
    ("document-types", DocumentType, [(FileRecord, "document_type_id")]),
    ("contact-roles", ContactRole, [(CustomerContact, "contact_role_id"), (VenueContact, "contact_role_id")]),
]


def _ensure_unique(db: Session, model: Type, name: str, exclude_id=None) -> None:
    q = db.query(model).filter(model.name == name)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    if q.first() is not None:
        raise HTTPException(status_code=409, detail=f"'{name}' already exists")


def build_lookup_router(path: str, model: Type, references: List[Tuple[Type, str]]) -> APIRouter:
    router = APIRouter(prefix=f"/api/{path}", tags=["lookups"])
    label = path.replace("-", " ").rstrip("s")

    def _get(db: Session, item_id: uuid.UUID):
        item = db.get(model, item_id)
        if item is None:
            raise HTTPException(status_code=404, detail=f"{label.capitalize()} not found")
        return item

    @router.get("", response_model=List[LookupResponse])
    def list_items(db: Session = Depends(get_db), _=Depends(get_current_user)):
        return db.query(model).order_by(model.name.asc()).all()

    @router.get("/{item_id}", response_model=LookupResponse)
    def get_item(item_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(get_current_user)):
        return _get(db, item_id)

    @router.post("", response_model=LookupResponse, status_code=201)
    def create_item(payload: LookupCreate, db: Session = Depends(get_db), _=Depends(require_manager)):
        _ensure_unique(db, model, payload.name)
        item = model(name=payload.name)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    @router.put("/{item_id}", response_model=LookupResponse)
    def update_item(item_id: uuid.UUID, payload: LookupCreate, db: Session = Depends(get_db), _=Depends(require_manager)):
        item = _get(db, item_id)
        _ensure_unique(db, model, payload.name, exclude_id=item.id)
        item.name = payload.name
        db.commit()
        db.refresh(item)
        return item

    @router.delete("/{item_id}")
    def delete_item(item_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
        item = _get(db, item_id)
        for ref_model, column in references:
            for row in db.query(ref_model).filter(getattr(ref_model, column) == item.id).all():
                setattr(row, column, None)
        db.flush()
        db.delete(item)
        db.commit()
        return {"status": "ok"}

    return router


routers = [build_lookup_router(path, model, refs) for path, model, refs in LOOKUPS]
