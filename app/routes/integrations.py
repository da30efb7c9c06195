import uuid
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models.models import SquareConfig, SquareCustomer, SquareInvoice, SquarePayment, utcnow
from ..schemas.square import (
    SquareConfigCreate,
    SquareConfigUpdate,
    SquareConfigResponse,
    SquareTestRequest,
    SquareTestResult,
    SquareSyncResult,
    SquareMirrorResponse,
)
from ..services.crypto import encrypt_value, decrypt_value, mask_token
from ..services.square_client import SquareClient, SquareError
from ..services.square_sync import sync_square
from ..auth.security import require_owner
from ..logging import structlog


router = APIRouter(prefix="/api/integrations", tags=["integrations"])
logger = structlog.get_logger(__name__)


def get_square_client_factory() -> Callable[[str, str], SquareClient]:
    return SquareClient


def _active_config(db: Session) -> Optional[SquareConfig]:
    return (
        db.query(SquareConfig)
        .filter(SquareConfig.is_active == True)  # noqa: E712
        .order_by(SquareConfig.created_at.desc())
        .first()
    )


def _stored_token(cfg: SquareConfig) -> str:
    try:
        return decrypt_value(cfg.access_token)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))


def _config_out(cfg: SquareConfig) -> dict:
    return {
        "id": cfg.id,
        "access_token_masked": mask_token(_stored_token(cfg)),
        "environment": cfg.environment,
        "is_active": cfg.is_active,
        "last_tested": cfg.last_tested,
        "test_result": cfg.test_result,
        "created_at": cfg.created_at,
        "updated_at": cfg.updated_at,
    }


@router.get("/status")
def status(db: Session = Depends(get_db)):
    db_ok = True
    try:
        db.execute(text("select 1"))
    except SQLAlchemyError:
        db_ok = False
    square_ok = False
    if db_ok:
        square_ok = _active_config(db) is not None
    return {
        "db": db_ok,
        "square": square_ok,
        "storage": settings.storage_provider,
    }


@router.get("/square", response_model=SquareConfigResponse)
def get_square_config(db: Session = Depends(get_db), _=Depends(require_owner)):
    cfg = _active_config(db)
    if cfg is None:
        raise HTTPException(status_code=404, detail="Square is not configured")
    return _config_out(cfg)


@router.post("/square", response_model=SquareConfigResponse, status_code=201)
def create_square_config(payload: SquareConfigCreate, db: Session = Depends(get_db), _=Depends(require_owner)):
    for old in db.query(SquareConfig).filter(SquareConfig.is_active == True).all():  # noqa: E712
        old.is_active = False
    cfg = SquareConfig(
        access_token=encrypt_value(payload.access_token),
        environment=payload.environment,
        is_active=True,
    )
    db.add(cfg)
    db.commit()
    db.refresh(cfg)
    logger.info("square_config_saved", config_id=str(cfg.id), environment=cfg.environment)
    return _config_out(cfg)


@router.put("/square/{config_id}", response_model=SquareConfigResponse)
def update_square_config(
    config_id: uuid.UUID,
    payload: SquareConfigUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_owner),
):
    cfg = db.get(SquareConfig, config_id)
    if cfg is None:
        raise HTTPException(status_code=404, detail="Square config not found")
    data = payload.model_dump(exclude_unset=True)
    if data.get("access_token"):
        cfg.access_token = encrypt_value(data["access_token"])
    if data.get("environment"):
        cfg.environment = data["environment"]
    if data.get("is_active") is not None:
        if data["is_active"]:
            others = db.query(SquareConfig).filter(SquareConfig.id != cfg.id, SquareConfig.is_active == True)  # noqa: E712
            for other in others.all():
                other.is_active = False
        cfg.is_active = data["is_active"]
    db.commit()
    db.refresh(cfg)
    return _config_out(cfg)


@router.post("/square/test", response_model=SquareTestResult)
def test_square_connection(
    payload: Optional[SquareTestRequest] = None,
    db: Session = Depends(get_db),
    factory=Depends(get_square_client_factory),
    _=Depends(require_owner),
):
    cfg = _active_config(db)
    token = payload.access_token if payload and payload.access_token else None
    environment = payload.environment if payload and payload.environment else None
    if token is None:
        if cfg is None:
            raise HTTPException(status_code=400, detail="No access token given and Square is not configured")
        token = _stored_token(cfg)
    environment = environment or (cfg.environment if cfg else "sandbox")

    try:
        locations = factory(token, environment).list_locations()
        result = SquareTestResult(
            success=True,
            message=f"Connected to Square {environment}: {len(locations)} location(s)",
        )
    except SquareError as e:
        logger.warning("square_test_failed", environment=environment, error=e.detail)
        result = SquareTestResult(success=False, message=e.detail)

    if cfg is not None:
        cfg.last_tested = utcnow()
        cfg.test_result = result.message
        db.commit()
    return result


@router.post("/square/sync", response_model=SquareSyncResult)
def run_square_sync(
    db: Session = Depends(get_db),
    factory=Depends(get_square_client_factory),
    _=Depends(require_owner),
):
    cfg = _active_config(db)
    if cfg is None:
        raise HTTPException(status_code=400, detail="Square is not configured")
    try:
        return sync_square(db, factory(_stored_token(cfg), cfg.environment))
    except SquareError as e:
        db.rollback()
        raise HTTPException(status_code=502, detail=f"Square error: {e.detail}")


def _mirror_rows(db: Session, model, key_field: str) -> List[dict]:
    rows = db.query(model).order_by(model.fetched_at.desc()).all()
    return [
        {"id": r.id, "external_id": getattr(r, key_field), "full_data": r.full_data, "fetched_at": r.fetched_at}
        for r in rows
    ]


@router.get("/square/customers", response_model=List[SquareMirrorResponse])
def square_customers(db: Session = Depends(get_db), _=Depends(require_owner)):
    return _mirror_rows(db, SquareCustomer, "square_customer_id")


@router.get("/square/invoices", response_model=List[SquareMirrorResponse])
def square_invoices(db: Session = Depends(get_db), _=Depends(require_owner)):
    return _mirror_rows(db, SquareInvoice, "square_invoice_id")


@router.get("/square/payments", response_model=List[SquareMirrorResponse])
def square_payments(db: Session = Depends(get_db), _=Depends(require_owner)):
    return _mirror_rows(db, SquarePayment, "square_payment_id")
