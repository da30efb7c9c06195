import uuid
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import Venue, VenueContact, VenueType, Gig, Contact, FileRecord, VenueFile
from ..schemas.venues import VenueCreate, VenueUpdate, VenueResponse
from ..schemas.contacts import ContactAssociation, LinkedContactResponse, AssociationResult
from ..schemas.files import FileResponse
from ..schemas.gigs import GigResponse
from ..services import contacts as contact_service
from ..auth.security import require_manager


router = APIRouter(prefix="/api/venues", tags=["venues"])


def get_venue_or_404(db: Session, venue_id: uuid.UUID) -> Venue:
    venue = db.get(Venue, venue_id)
    if venue is None:
        raise HTTPException(status_code=404, detail="Venue not found")
    return venue


def _check_venue_type(db: Session, venue_type_id: Optional[uuid.UUID]):
    if venue_type_id is not None and db.get(VenueType, venue_type_id) is None:
        raise HTTPException(status_code=400, detail="Unknown venue type")


@router.get("", response_model=List[VenueResponse])
def list_venues(q: Optional[str] = None, db: Session = Depends(get_db), _=Depends(require_manager)):
    query = db.query(Venue)
    if q:
        query = query.filter(Venue.name.ilike(f"%{q}%"))
    return query.order_by(Venue.name.asc()).all()


@router.get("/{venue_id}", response_model=VenueResponse)
def get_venue(venue_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    return get_venue_or_404(db, venue_id)


@router.post("", response_model=VenueResponse, status_code=201)
def create_venue(payload: VenueCreate, db: Session = Depends(get_db), _=Depends(require_manager)):
    _check_venue_type(db, payload.venue_type_id)
    venue = Venue(**payload.model_dump())
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue


@router.put("/{venue_id}", response_model=VenueResponse)
def update_venue(venue_id: uuid.UUID, payload: VenueUpdate, db: Session = Depends(get_db), _=Depends(require_manager)):
    venue = get_venue_or_404(db, venue_id)
    data = payload.model_dump(exclude_unset=True)
    if "name" in data and data["name"] is None:
        raise HTTPException(status_code=422, detail="name cannot be empty")
    _check_venue_type(db, data.get("venue_type_id"))
    for k, v in data.items():
        setattr(venue, k, v)
    db.commit()
    db.refresh(venue)
    return venue


@router.delete("/{venue_id}")
def delete_venue(venue_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    venue = get_venue_or_404(db, venue_id)
    if db.query(Gig.id).filter(Gig.venue_id == venue.id).first():
        raise HTTPException(status_code=409, detail="Venue has gigs and cannot be deleted")
    db.delete(venue)
    db.commit()
    return {"message": "Venue deleted successfully"}


@router.get("/{venue_id}/gigs", response_model=List[GigResponse])
def venue_gigs(venue_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_venue_or_404(db, venue_id)
    return db.query(Gig).filter(Gig.venue_id == venue_id).order_by(Gig.start_time.asc()).all()


@router.get("/{venue_id}/files", response_model=List[FileResponse])
def venue_files(venue_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_venue_or_404(db, venue_id)
    return (
        db.query(FileRecord)
        .join(VenueFile, VenueFile.file_id == FileRecord.id)
        .filter(VenueFile.venue_id == venue_id)
        .order_by(FileRecord.created_at.desc())
        .all()
    )


@router.get("/{venue_id}/contacts", response_model=List[LinkedContactResponse])
def venue_contacts(venue_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_venue_or_404(db, venue_id)
    return contact_service.linked_contacts(db, VenueContact, "venue_id", venue_id)


@router.post("/{venue_id}/contacts", response_model=AssociationResult)
def add_venue_contact(
    venue_id: uuid.UUID,
    payload: ContactAssociation,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    get_venue_or_404(db, venue_id)
    if payload.contact_id:
        contact = db.get(Contact, payload.contact_id)
        if contact is None:
            raise HTTPException(status_code=404, detail="Contact not found")
        is_existing = True
    else:
        contact, is_existing = contact_service.find_or_create_contact(db, payload.model_dump(exclude={"contact_id", "contact_role_id"}))
    contact_service.associate(db, VenueContact, "venue_id", venue_id, contact.id, payload.contact_role_id)
    db.commit()
    db.refresh(contact)
    body = {"contact": contact_service.linked_dict(contact, payload.contact_role_id), "is_existing": is_existing}
    return JSONResponse(status_code=200 if is_existing else 201, content=jsonable_encoder(AssociationResult(**body)))


@router.delete("/{venue_id}/contacts/{contact_id}")
def remove_venue_contact(
    venue_id: uuid.UUID,
    contact_id: uuid.UUID,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    contact_service.detach(db, VenueContact, "venue_id", venue_id, contact_id)
    db.commit()
    return {"message": "Contact removed from venue"}
