import time
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..models.models import (
    Invoice,
    InvoiceItem,
    Customer,
    Gig,
    GigInvoice,
    GigInvoicePayment,
    PaymentMethod,
    SquareInvoice,
)
from ..schemas.invoices import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceStatusUpdate,
    InvoiceResponse,
    InvoiceItemIn,
    GigInvoiceCreate,
    GigInvoiceResponse,
    SquareLinkRequest,
    GigInvoicePaymentCreate,
    GigInvoicePaymentResponse,
)
from ..auth.security import require_manager
from ..logging import structlog
from .gigs import get_gig_or_404


router = APIRouter(prefix="/api", tags=["invoices"])
logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def next_invoice_number() -> str:
    return f"INV-{int(time.time() * 1000)}"


def _unused_invoice_number(db: Session) -> str:
    number = next_invoice_number()
    stamp = int(number[4:])
    while db.query(Invoice.id).filter(Invoice.invoice_number == number).first():
        stamp += 1
        number = f"INV-{stamp}"
    return number


def build_items(items: List[InvoiceItemIn]) -> List[InvoiceItem]:
    return [
        InvoiceItem(
            description=item.description,
            quantity=item.quantity,
            rate=item.rate,
            amount=(item.quantity * item.rate).quantize(CENT),
            sort_order=i,
        )
        for i, item in enumerate(items)
    ]


def _recompute_totals(inv: Invoice, items_given: bool) -> None:
    if items_given:
        inv.amount = sum((Decimal(i.amount) for i in inv.items), Decimal("0"))
    inv.total = (Decimal(inv.amount or 0) + Decimal(inv.tax or 0)).quantize(CENT)


def _get(db: Session, invoice_id: uuid.UUID) -> Invoice:
    inv = db.get(Invoice, invoice_id)
    if inv is None:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return inv


def _check_refs(db: Session, gig_id=None, payment_method_id=None) -> None:
    if gig_id is not None and db.get(Gig, gig_id) is None:
        raise HTTPException(status_code=400, detail="Unknown gig")
    if payment_method_id is not None and db.get(PaymentMethod, payment_method_id) is None:
        raise HTTPException(status_code=400, detail="Unknown payment method")


@router.get("/invoices", response_model=List[InvoiceResponse])
def list_invoices(
    status: Optional[str] = None,
    customer_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    q = db.query(Invoice)
    if status:
        q = q.filter(Invoice.status == status)
    if customer_id:
        q = q.filter(Invoice.customer_id == customer_id)
    return q.order_by(Invoice.issue_date.desc(), Invoice.created_at.desc()).all()


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
def create_invoice(payload: InvoiceCreate, db: Session = Depends(get_db), _=Depends(require_manager)):
    if db.get(Customer, payload.customer_id) is None:
        raise HTTPException(status_code=400, detail="Unknown customer")
    _check_refs(db, payload.gig_id, payload.payment_method_id)
    issue_date = payload.issue_date or date.today()
    inv = Invoice(
        invoice_number=payload.invoice_number or _unused_invoice_number(db),
        customer_id=payload.customer_id,
        gig_id=payload.gig_id,
        amount=payload.amount or Decimal("0"),
        tax=payload.tax,
        status=payload.status,
        issue_date=issue_date,
        due_date=payload.due_date or issue_date + timedelta(days=settings.invoice_due_days),
        paid_date=date.today() if payload.status == "paid" else None,
        payment_method_id=payload.payment_method_id,
        notes=payload.notes,
        items=build_items(payload.items),
    )
    _recompute_totals(inv, items_given=bool(payload.items))
    db.add(inv)
    db.commit()
    db.refresh(inv)
    logger.info("invoice_created", invoice_id=str(inv.id), invoice_number=inv.invoice_number)
    return inv


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(invoice_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    return _get(db, invoice_id)


@router.put("/invoices/{invoice_id}", response_model=InvoiceResponse)
def update_invoice(
    invoice_id: uuid.UUID,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    inv = _get(db, invoice_id)
    data = payload.model_dump(exclude_unset=True, exclude={"items"})
    for field in ("amount", "tax", "issue_date"):
        if field in data and data[field] is None:
            raise HTTPException(status_code=422, detail=f"{field} cannot be empty")
    _check_refs(db, data.get("gig_id"), data.get("payment_method_id"))
    for k, v in data.items():
        setattr(inv, k, v)
    if payload.items is not None:
        for item in list(inv.items):
            db.delete(item)
        inv.items = build_items(payload.items)
    _recompute_totals(inv, items_given=payload.items is not None)
    db.commit()
    db.refresh(inv)
    return inv


@router.put("/invoices/{invoice_id}/status", response_model=InvoiceResponse)
def update_invoice_status(
    invoice_id: uuid.UUID,
    payload: InvoiceStatusUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    inv = _get(db, invoice_id)
    inv.status = payload.status
    if payload.status == "paid":
        inv.paid_date = payload.paid_date or inv.paid_date or date.today()
    elif payload.paid_date is not None:
        inv.paid_date = payload.paid_date
    db.commit()
    db.refresh(inv)
    logger.info("invoice_status_changed", invoice_id=str(inv.id), status=inv.status)
    return inv


@router.delete("/invoices/{invoice_id}")
def delete_invoice(invoice_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    db.delete(_get(db, invoice_id))
    db.commit()
    return {"message": "Invoice deleted successfully"}


# ---------------------------------------------------------------------------
# Externally issued invoices attached to gigs
# ---------------------------------------------------------------------------

def _amount_paid(db: Session, gig_invoice_id: uuid.UUID) -> Decimal:
    paid = db.query(func.coalesce(func.sum(GigInvoicePayment.payment_amount), 0)).filter(
        GigInvoicePayment.gig_invoice_id == gig_invoice_id
    ).scalar()
    return Decimal(str(paid or 0))


def _gig_invoice_out(db: Session, gi: GigInvoice) -> GigInvoiceResponse:
    out = GigInvoiceResponse.model_validate(gi)
    out.amount_paid = _amount_paid(db, gi.id)
    return out


def _get_gig_invoice(db: Session, gig_invoice_id: uuid.UUID) -> GigInvoice:
    gi = db.get(GigInvoice, gig_invoice_id)
    if gi is None:
        raise HTTPException(status_code=404, detail="Gig invoice not found")
    return gi


@router.get("/gigs/{gig_id}/invoices", response_model=List[GigInvoiceResponse])
def gig_invoices(gig_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    get_gig_or_404(db, gig_id)
    rows = db.query(GigInvoice).filter(GigInvoice.gig_id == gig_id).order_by(GigInvoice.created_at.asc()).all()
    return [_gig_invoice_out(db, gi) for gi in rows]


@router.post("/gigs/{gig_id}/invoices", response_model=GigInvoiceResponse, status_code=201)
def create_gig_invoice(
    gig_id: uuid.UUID,
    payload: GigInvoiceCreate,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    get_gig_or_404(db, gig_id)
    data = payload.model_dump()
    if not data.get("external_invoice_id"):
        data["external_invoice_id"] = next_invoice_number()
    exists = db.query(GigInvoice.id).filter(
        GigInvoice.gig_id == gig_id, GigInvoice.external_invoice_id == data["external_invoice_id"]
    ).first()
    if exists:
        raise HTTPException(status_code=409, detail="This invoice is already attached to the gig")
    gi = GigInvoice(gig_id=gig_id, **data)
    db.add(gi)
    db.commit()
    db.refresh(gi)
    return _gig_invoice_out(db, gi)


@router.put("/gig-invoices/{gig_invoice_id}/square-link", response_model=GigInvoiceResponse)
def link_square_invoice(
    gig_invoice_id: uuid.UUID,
    payload: SquareLinkRequest,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    """Link (or with null, unlink) a mirrored Square invoice."""
    gi = _get_gig_invoice(db, gig_invoice_id)
    if payload.square_invoice_id is None:
        gi.square_invoice_uuid = None
    else:
        sq = db.query(SquareInvoice).filter(SquareInvoice.square_invoice_id == payload.square_invoice_id).first()
        if sq is None:
            raise HTTPException(status_code=404, detail="Square invoice not found; run a sync first")
        gi.square_invoice_uuid = sq.id
    db.commit()
    db.refresh(gi)
    return _gig_invoice_out(db, gi)


@router.get("/gig-invoices/{gig_invoice_id}/payments", response_model=List[GigInvoicePaymentResponse])
def gig_invoice_payments(gig_invoice_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_manager)):
    _get_gig_invoice(db, gig_invoice_id)
    return (
        db.query(GigInvoicePayment)
        .filter(GigInvoicePayment.gig_invoice_id == gig_invoice_id)
        .order_by(GigInvoicePayment.payment_date.asc())
        .all()
    )


@router.post("/gig-invoices/{gig_invoice_id}/payments", response_model=GigInvoicePaymentResponse, status_code=201)
def add_gig_invoice_payment(
    gig_invoice_id: uuid.UUID,
    payload: GigInvoicePaymentCreate,
    db: Session = Depends(get_db),
    _=Depends(require_manager),
):
    _get_gig_invoice(db, gig_invoice_id)
    _check_refs(db, payment_method_id=payload.payment_method_id)
    payment = GigInvoicePayment(
        gig_invoice_id=gig_invoice_id,
        payment_amount=payload.payment_amount,
        payment_method_id=payload.payment_method_id,
        payment_date=payload.payment_date or datetime.now(timezone.utc),
        origin="manual",
        notes=payload.notes,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment
