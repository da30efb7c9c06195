import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Form, File, UploadFile
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import (
    Personnel,
    PersonnelType,
    PersonnelPayout,
    PersonnelFile,
    FileRecord,
    Gig,
    GigPersonnel,
    User,
)
from ..schemas.personnel import (
    PersonnelCreate,
    PersonnelUpdate,
    PersonnelResponse,
    SsnResponse,
    CreateLoginRequest,
    CreateLoginResponse,
    PersonnelStats,
    MyPayoutsResponse,
)
from ..schemas.auth import UserResponse
from ..schemas.files import FileResponse
from ..schemas.gigs import GigResponse
from ..services.crypto import encrypt_value, decrypt_value, mask_ssn
from ..services.recurrence import add_months
from ..storage.provider import StorageProvider
from ..auth.security import (
    get_current_user,
    require_manager,
    require_owner,
    get_password_hash,
    generate_password,
)
from .files import get_storage, store_upload, remove_file, content_response
from ..logging import structlog


router = APIRouter(prefix="/api/personnel", tags=["personnel"])
logger = structlog.get_logger(__name__)


def _month_bounds() -> Tuple[datetime, datetime]:
    now = datetime.now(timezone.utc)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return start, add_months(start, 1)


def _personnel_to_dict(p: Personnel) -> dict:
    ssn_masked = None
    if p.ssn_encrypted:
        try:
            ssn_masked = mask_ssn(decrypt_value(p.ssn_encrypted))
        except ValueError:
            ssn_masked = "***-**-****"
    return {
        "id": p.id,
        "first_name": p.first_name,
        "middle_name": p.middle_name,
        "last_name": p.last_name,
        "full_name": p.full_name,
        "email": p.email,
        "phone": p.phone,
        "dob": p.dob,
        "address1": p.address1,
        "address2": p.address2,
        "city": p.city,
        "state": p.state,
        "zip": p.zip,
        "personnel_type_id": p.personnel_type_id,
        "is_active": p.is_active,
        "has_ssn": bool(p.ssn_encrypted),
        "ssn_masked": ssn_masked,
        "user_id": p.user.id if p.user else None,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }


def _get(db: Session, personnel_id: uuid.UUID) -> Personnel:
    p = db.get(Personnel, personnel_id)
    if p is None:
        raise HTTPException(status_code=404, detail="Personnel not found")
    return p


def _my_personnel(db: Session, user: User) -> Personnel:
    if user.personnel_id is None:
        raise HTTPException(status_code=404, detail="No personnel record is linked to this user")
    return _get(db, user.personnel_id)


def _ensure_unique_contact(db: Session, email: Optional[str], phone: Optional[str], exclude_id=None) -> None:
    conds = []
    if email:
        conds.append(func.lower(Personnel.email) == email.lower())
    if phone:
        conds.append(Personnel.phone == phone)
    if not conds:
        return
    q = db.query(Personnel).filter(or_(*conds))
    if exclude_id is not None:
        q = q.filter(Personnel.id != exclude_id)
    if q.first() is not None:
        raise HTTPException(status_code=409, detail="Another personnel record uses this email or phone")


def _check_type(db: Session, personnel_type_id: Optional[uuid.UUID]) -> None:
    if personnel_type_id is not None and db.get(PersonnelType, personnel_type_id) is None:
        raise HTTPException(status_code=400, detail="Unknown personnel type")


def _assigned_gigs(db: Session, personnel_id: uuid.UUID) -> List[Gig]:
    return (
        db.query(Gig)
        .join(GigPersonnel, GigPersonnel.gig_id == Gig.id)
        .filter(GigPersonnel.personnel_id == personnel_id)
        .order_by(Gig.start_time.asc())
        .all()
    )


def _documents(db: Session, personnel_id: uuid.UUID) -> List[FileRecord]:
    return (
        db.query(FileRecord)
        .join(PersonnelFile, PersonnelFile.file_id == FileRecord.id)
        .filter(PersonnelFile.personnel_id == personnel_id)
        .order_by(FileRecord.created_at.desc())
        .all()
    )


# ---------------------------------------------------------------------------
# Self-service (declared before /{personnel_id})
# ---------------------------------------------------------------------------

@router.get("/me", response_model=PersonnelResponse)
def my_profile(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _personnel_to_dict(_my_personnel(db, user))


@router.get("/me/gigs", response_model=List[GigResponse])
def my_gigs(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _assigned_gigs(db, _my_personnel(db, user).id)


@router.get("/me/payouts", response_model=MyPayoutsResponse)
def my_payouts(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    person = _my_personnel(db, user)
    payouts = (
        db.query(PersonnelPayout)
        .filter(PersonnelPayout.personnel_id == person.id)
        .order_by(PersonnelPayout.created_at.desc())
        .all()
    )
    month_start, next_month = (d.date() for d in _month_bounds())
    total = sum((p.amount for p in payouts), Decimal("0"))
    this_month = sum(
        (p.amount for p in payouts if month_start <= (p.date_paid or p.created_at.date()) < next_month),
        Decimal("0"),
    )
    return {"payouts": payouts, "total_earnings": total, "this_month_earnings": this_month}


@router.get("/me/documents", response_model=List[FileResponse])
def my_documents(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _documents(db, _my_personnel(db, user).id)


@router.post("/me/documents", response_model=FileResponse, status_code=201)
async def upload_my_document(
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
    document_type_id: Optional[uuid.UUID] = Form(None),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage),
    user: User = Depends(get_current_user),
):
    person = _my_personnel(db, user)
    fr = await store_upload(
        db, storage, file, user,
        scope=f"personnel-{person.id}",
        category="personnel-documents",
        description=description,
        document_type_id=document_type_id,
    )
    db.add(PersonnelFile(personnel_id=person.id, file_id=fr.id))
    db.commit()
    db.refresh(fr)
    return fr


def _my_document(db: Session, user: User, file_id: uuid.UUID) -> FileRecord:
    person = _my_personnel(db, user)
    if db.get(PersonnelFile, (person.id, file_id)) is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return db.get(FileRecord, file_id)


@router.get("/me/documents/{file_id}/download")
def download_my_document(file_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return content_response(_my_document(db, user, file_id))


@router.delete("/me/documents/{file_id}")
def delete_my_document(file_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    remove_file(db, _my_document(db, user, file_id))
    return {"message": "Document deleted successfully"}


# ---------------------------------------------------------------------------
# Back office
# ---------------------------------------------------------------------------

@router.get("", response_model=List[PersonnelResponse])
def list_personnel(
    active: Optional[bool] = None,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    query = db.query(Personnel)
    if active is not None:
        query = query.filter(Personnel.is_active == active)
    if q:
        like = f"%{q}%"
        query = query.filter(or_(
            Personnel.first_name.ilike(like),
            Personnel.last_name.ilike(like),
            Personnel.email.ilike(like),
        ))
    rows = query.order_by(Personnel.last_name.asc(), Personnel.first_name.asc()).all()
    return [_personnel_to_dict(p) for p in rows]


@router.get("/{personnel_id}", response_model=PersonnelResponse)
def get_personnel(personnel_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    return _personnel_to_dict(_get(db, personnel_id))


@router.post("", response_model=PersonnelResponse, status_code=201)
def create_personnel(payload: PersonnelCreate, db: Session = Depends(get_db), _=Depends(require_manager)):
    _ensure_unique_contact(db, payload.email, payload.phone)
    _check_type(db, payload.personnel_type_id)
    data = payload.model_dump(exclude={"ssn"})
    p = Personnel(**data, ssn_encrypted=encrypt_value(payload.ssn))
    db.add(p)
    db.commit()
    db.refresh(p)
    return _personnel_to_dict(p)


@router.put("/{personnel_id}", response_model=PersonnelResponse)
def update_personnel(
    personnel_id: uuid.UUID,
    payload: PersonnelUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    p = _get(db, personnel_id)
    data = payload.model_dump(exclude_unset=True)
    for field in ("first_name", "last_name", "is_active"):
        if field in data and data[field] is None:
            raise HTTPException(status_code=422, detail=f"{field} cannot be empty")
    _ensure_unique_contact(db, data.get("email"), data.get("phone"), exclude_id=p.id)
    _check_type(db, data.get("personnel_type_id"))
    if "ssn" in data:
        p.ssn_encrypted = encrypt_value(data.pop("ssn"))
    for k, v in data.items():
        setattr(p, k, v)
    db.commit()
    db.refresh(p)
    return _personnel_to_dict(p)


@router.delete("/{personnel_id}")
def delete_personnel(personnel_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    p = _get(db, personnel_id)
    if db.query(PersonnelPayout.id).filter(PersonnelPayout.personnel_id == p.id).first():
        raise HTTPException(status_code=409, detail="Personnel has payouts and cannot be deleted")
    db.delete(p)
    db.commit()
    return {"message": "Personnel deleted successfully"}


@router.get("/{personnel_id}/ssn", response_model=SsnResponse)
def reveal_ssn(personnel_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(require_owner)):
    p = _get(db, personnel_id)
    try:
        ssn = decrypt_value(p.ssn_encrypted)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))
    logger.info("ssn_revealed", personnel_id=str(p.id), by=str(user.id))
    return SsnResponse(personnel_id=p.id, ssn=ssn)


@router.post("/{personnel_id}/create-login", response_model=CreateLoginResponse, status_code=201)
def create_login(
    personnel_id: uuid.UUID,
    payload: Optional[CreateLoginRequest] = None,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    p = _get(db, personnel_id)
    if not p.email:
        raise HTTPException(status_code=400, detail="Personnel needs an email before a login can be created")
    if p.user is not None:
        raise HTTPException(status_code=409, detail="Personnel already has a login")
    email = p.email.lower()
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise HTTPException(status_code=409, detail="This email is already registered")

    generated = None
    password = payload.password if payload else None
    if not password:
        generated = password = generate_password()
    user = User(
        email=email,
        name=p.full_name,
        password_hash=get_password_hash(password),
        role="personnel",
        personnel_id=p.id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("personnel_login_created", personnel_id=str(p.id), user_id=str(user.id))
    return CreateLoginResponse(user=UserResponse.model_validate(user), generated_password=generated)


@router.get("/{personnel_id}/stats", response_model=PersonnelStats)
def personnel_stats(personnel_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    p = _get(db, personnel_id)
    month_start, next_month = _month_bounds()
    total_gigs = db.query(GigPersonnel).filter(GigPersonnel.personnel_id == p.id).count()
    gigs_this_month = (
        db.query(Gig)
        .join(GigPersonnel, GigPersonnel.gig_id == Gig.id)
        .filter(
            GigPersonnel.personnel_id == p.id,
            Gig.start_time >= month_start,
            Gig.start_time < next_month,
        )
        .count()
    )
    earnings = db.query(func.coalesce(func.sum(PersonnelPayout.amount), 0)).filter(
        PersonnelPayout.personnel_id == p.id
    ).scalar()
    documents = db.query(PersonnelFile).filter(PersonnelFile.personnel_id == p.id).count()
    return PersonnelStats(
        total_gigs=total_gigs,
        gigs_this_month=gigs_this_month,
        total_earnings=Decimal(str(earnings or 0)),
        documents_uploaded=documents,
    )


@router.get("/{personnel_id}/gigs", response_model=List[GigResponse])
def personnel_gigs(personnel_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    _get(db, personnel_id)
    return _assigned_gigs(db, personnel_id)
