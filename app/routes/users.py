import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import User
from ..auth.security import require_owner
from ..schemas.auth import UserResponse, RoleUpdate, ActiveUpdate


router = APIRouter(prefix="/api/users", tags=["users"])


def _get_user(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _would_orphan_owners(db: Session, user: User) -> bool:
    if user.role != "owner" or not user.is_active:
        return False
    others = db.query(User).filter(User.role == "owner", User.is_active == True, User.id != user.id).count()  # noqa: E712
    return others == 0


@router.get("", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db), _=Depends(require_owner)):
    return db.query(User).order_by(User.email.asc()).all()


@router.put("/{user_id}/role", response_model=UserResponse)
def set_role(user_id: uuid.UUID, payload: RoleUpdate, db: Session = Depends(get_db), _=Depends(require_owner)):
    user = _get_user(db, user_id)
    if payload.role != "owner" and _would_orphan_owners(db, user):
        raise HTTPException(status_code=400, detail="At least one active owner is required")
    user.role = payload.role
    db.commit()
    db.refresh(user)
    return user


@router.put("/{user_id}/active", response_model=UserResponse)
def set_active(user_id: uuid.UUID, payload: ActiveUpdate, db: Session = Depends(get_db), _=Depends(require_owner)):
    user = _get_user(db, user_id)
    if not payload.is_active and _would_orphan_owners(db, user):
        raise HTTPException(status_code=400, detail="At least one active owner is required")
    user.is_active = payload.is_active
    db.commit()
    db.refresh(user)
    return user
