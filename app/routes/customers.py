import uuid
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import Customer, CustomerContact, Gig, Invoice, Contact
from ..schemas.customers import CustomerCreate, CustomerUpdate, CustomerResponse, check_customer_names
from ..schemas.contacts import ContactAssociation, LinkedContactResponse, AssociationResult
from ..schemas.gigs import GigResponse
from ..services import contacts as contact_service
from ..auth.security import require_manager


router = APIRouter(prefix="/api/customers", tags=["customers"])


def get_customer_or_404(db: Session, customer_id: uuid.UUID) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get("", response_model=List[CustomerResponse])
def list_customers(
    q: Optional[str] = None,
    customer_type: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    query = db.query(Customer)
    if customer_type:
        query = query.filter(Customer.customer_type == customer_type)
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            Customer.business_name.ilike(like),
            Customer.first_name.ilike(like),
            Customer.last_name.ilike(like),
            Customer.primary_email.ilike(like),
        ))
    return query.order_by(Customer.created_at.desc()).all()


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    return get_customer_or_404(db, customer_id)


@router.post("", response_model=CustomerResponse, status_code=201)
def create_customer(payload: CustomerCreate, db: Session = Depends(get_db), _=Depends(require_manager)):
    customer = Customer(**payload.model_dump())
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: uuid.UUID,
    payload: CustomerUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    customer = get_customer_or_404(db, customer_id)
    data = payload.model_dump(exclude_unset=True)
    merged = {
        field: data.get(field, getattr(customer, field))
        for field in ("customer_type", "business_name", "first_name", "last_name")
    }
    try:
        check_customer_names(**merged)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    for k, v in data.items():
        setattr(customer, k, v)
    db.commit()
    db.refresh(customer)
    return customer


@router.delete("/{customer_id}")
def delete_customer(customer_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    customer = get_customer_or_404(db, customer_id)
    if db.query(Gig.id).filter(Gig.customer_id == customer.id).first():
        raise HTTPException(status_code=409, detail="Customer has gigs and cannot be deleted")
    if db.query(Invoice.id).filter(Invoice.customer_id == customer.id).first():
        raise HTTPException(status_code=409, detail="Customer has invoices and cannot be deleted")
    # contact links go with it (ORM cascade)
    db.delete(customer)
    db.commit()
    return {"message": "Customer deleted successfully"}


@router.get("/{customer_id}/gigs", response_model=List[GigResponse])
def customer_gigs(customer_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_customer_or_404(db, customer_id)
    return db.query(Gig).filter(Gig.customer_id == customer_id).order_by(Gig.start_time.asc()).all()


@router.get("/{customer_id}/contacts", response_model=List[LinkedContactResponse])
def customer_contacts(customer_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_customer_or_404(db, customer_id)
    return contact_service.linked_contacts(db, CustomerContact, "customer_id", customer_id)


@router.post("/{customer_id}/contacts", response_model=AssociationResult)
def add_customer_contact(
    customer_id: uuid.UUID,
    payload: ContactAssociation,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    get_customer_or_404(db, customer_id)
    if payload.contact_id:
        contact = db.get(Contact, payload.contact_id)
        if contact is None:
            raise HTTPException(status_code=404, detail="Contact not found")
        is_existing = True
    else:
        contact, is_existing = contact_service.find_or_create_contact(db, payload.model_dump(exclude={"contact_id", "contact_role_id"}))
    contact_service.associate(db, CustomerContact, "customer_id", customer_id, contact.id, payload.contact_role_id)
    db.commit()
    db.refresh(contact)
    body = {"contact": contact_service.linked_dict(contact, payload.contact_role_id), "is_existing": is_existing}
    return JSONResponse(status_code=200 if is_existing else 201, content=jsonable_encoder(AssociationResult(**body)))


@router.delete("/{customer_id}/contacts/{contact_id}")
def remove_customer_contact(
    customer_id: uuid.UUID,
    contact_id: uuid.UUID,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    contact_service.detach(db, CustomerContact, "customer_id", customer_id, contact_id)
    db.commit()
    return {"message": "Contact removed from customer"}
