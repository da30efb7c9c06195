"""
Contact reuse and role-tagged association with customers and venues.
"""
import uuid
from typing import Optional, Tuple, Type, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..models.models import Contact, ContactRole, CustomerContact, VenueContact


LinkModel = Union[Type[CustomerContact], Type[VenueContact]]


def find_or_create_contact(db: Session, data: dict) -> Tuple[Contact, bool]:
    """Match on email first, then phone; create when neither matches."""
    existing = None
    if data.get("email"):
        existing = db.query(Contact).filter(Contact.email == data["email"]).first()
    if existing is None and data.get("phone"):
        existing = db.query(Contact).filter(Contact.phone == data["phone"]).first()
    if existing is not None:
        return existing, True
    if not data.get("first_name"):
        raise HTTPException(status_code=422, detail="first_name is required to create a contact")
    contact = Contact(**{k: v for k, v in data.items() if k in {"first_name", "last_name", "email", "phone", "title"}})
    db.add(contact)
    db.flush()
    return contact, False


def associate(
    db: Session,
    link_model: LinkModel,
    parent_field: str,
    parent_id: uuid.UUID,
    contact_id: uuid.UUID,
    contact_role_id: Optional[uuid.UUID],
):
    """Link a contact to a parent, updating the role if the link already exists."""
    if contact_role_id is not None and db.get(ContactRole, contact_role_id) is None:
        raise HTTPException(status_code=400, detail="Unknown contact role")
    link = db.get(link_model, {parent_field: parent_id, "contact_id": contact_id})
    if link is None:
        link = link_model(**{parent_field: parent_id, "contact_id": contact_id, "contact_role_id": contact_role_id})
        db.add(link)
    else:
        link.contact_role_id = contact_role_id
    return link


def linked_contacts(db: Session, link_model: LinkModel, parent_field: str, parent_id: uuid.UUID) -> list:
    rows = (
        db.query(Contact, link_model.contact_role_id)
        .join(link_model, link_model.contact_id == Contact.id)
        .filter(getattr(link_model, parent_field) == parent_id)
        .order_by(Contact.last_name, Contact.first_name)
        .all()
    )
    return [linked_dict(c, role_id) for c, role_id in rows]


def linked_dict(c: Contact, role_id) -> dict:
    return {
        "id": c.id,
        "first_name": c.first_name,
        "last_name": c.last_name,
        "email": c.email,
        "phone": c.phone,
        "title": c.title,
        "contact_role_id": role_id,
        "created_at": c.created_at,
        "updated_at": c.updated_at,
    }


def detach(db: Session, link_model: LinkModel, parent_field: str, parent_id: uuid.UUID, contact_id: uuid.UUID) -> None:
    link = db.get(link_model, {parent_field: parent_id, "contact_id": contact_id})
    if link is None:
        raise HTTPException(status_code=404, detail="Contact is not linked")
    db.delete(link)
