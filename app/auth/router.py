from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import User, Personnel, UserSession
from ..schemas.auth import (
    RegisterRequest,
    LoginRequest,
    TokenResponse,
    UserResponse,
    NavItem,
)
from ..services.navigation import menu_for_role
from .security import (
    get_password_hash,
    verify_password,
    open_session,
    get_current_user,
    get_token_payload,
)
from ..logging import structlog


router = APIRouter(prefix="/api", tags=["auth"])
logger = structlog.get_logger(__name__)


@router.post("/register", response_model=TokenResponse)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise HTTPException(status_code=400, detail="This email is already registered")

    # Only people already on the personnel list may self-register
    person = db.query(Personnel).filter(
        func.lower(Personnel.email) == email,
        func.lower(Personnel.first_name) == payload.first_name.lower(),
        func.lower(Personnel.last_name) == payload.last_name.lower(),
    ).first()
    if person is None:
        logger.warning("register_rejected", email=email)
        raise HTTPException(
            status_code=403,
            detail="No personnel record matches your email and name. Ask an administrator to add you first.",
        )
    if person.user is not None:
        raise HTTPException(status_code=400, detail="This personnel record already has a login")

    user = User(
        email=email,
        name=person.full_name,
        password_hash=get_password_hash(payload.password),
        role="personnel",
        personnel_id=person.id,
    )
    db.add(user)
    db.flush()
    token = open_session(db, user)
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("user_registered", user_id=str(user.id), personnel_id=str(person.id))
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(func.lower(User.email) == req.email.strip().lower()).first()
    if not user or not verify_password(req.password, user.password_hash):
        logger.warning("login_failed", email=req.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User not active")
    token = open_session(db, user)
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/logout")
def logout(
    payload: dict = Depends(get_token_payload),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session_row = db.get(UserSession, str(payload.get("jti")))
    if session_row is not None:
        db.delete(session_row)
        db.commit()
    return {"message": "Logout successful"}


@router.get("/user", response_model=UserResponse)
def current_user(user: User = Depends(get_current_user)):
    return user


@router.get("/navigation", response_model=list[NavItem])
def navigation(user: User = Depends(get_current_user)):
    return menu_for_role(user.role)
