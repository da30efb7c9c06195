"""
Role checks shared by routes.
"""
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from ..models.models import User, Gig, GigPersonnel


MANAGER_ROLES = ("owner", "manager")


def is_owner(user: User) -> bool:
    return user.role == "owner"


def is_manager(user: User) -> bool:
    """Owners and managers share the back office."""
    return user.role in MANAGER_ROLES


def is_assigned(db: Session, personnel_id: Optional[uuid.UUID], gig_id: uuid.UUID) -> bool:
    if personnel_id is None:
        return False
    return db.get(GigPersonnel, (gig_id, personnel_id)) is not None


def can_view_gig(user: User, gig: Gig, db: Session) -> bool:
    if is_manager(user):
        return True
    return is_assigned(db, user.personnel_id, gig.id)
