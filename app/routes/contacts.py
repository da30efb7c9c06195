import uuid
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import Contact
from ..schemas.contacts import ContactCreate, ContactUpdate, ContactResponse
from ..auth.security import require_manager


router = APIRouter(prefix="/api/contacts", tags=["contacts"])


def _get(db: Session, contact_id: uuid.UUID) -> Contact:
    contact = db.get(Contact, contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact


@router.get("", response_model=List[ContactResponse])
def list_contacts(q: Optional[str] = None, db: Session = Depends(get_db), _=Depends(require_manager)):
    query = db.query(Contact)
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            Contact.first_name.ilike(like),
            Contact.last_name.ilike(like),
            Contact.email.ilike(like),
            Contact.phone.ilike(like),
        ))
    return query.order_by(Contact.last_name, Contact.first_name).all()


@router.get("/{contact_id}", response_model=ContactResponse)
def get_contact(contact_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    return _get(db, contact_id)


@router.post("", response_model=ContactResponse, status_code=201)
def create_contact(payload: ContactCreate, db: Session = Depends(get_db), _=Depends(require_manager)):
    contact = Contact(**payload.model_dump())
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


@router.put("/{contact_id}", response_model=ContactResponse)
def update_contact(contact_id: uuid.UUID, payload: ContactUpdate, db: Session = Depends(get_db), _=Depends(require_manager)):
    contact = _get(db, contact_id)
    data = payload.model_dump(exclude_unset=True)
    if "first_name" in data and data["first_name"] is None:
        raise HTTPException(status_code=422, detail="first_name cannot be empty")
    for k, v in data.items():
        setattr(contact, k, v)
    db.commit()
    db.refresh(contact)
    return contact


@router.delete("/{contact_id}")
def delete_contact(contact_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    contact = _get(db, contact_id)
    db.delete(contact)
    db.commit()
    return {"message": "Contact deleted successfully"}
