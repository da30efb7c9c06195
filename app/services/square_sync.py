"""
Refresh of the Square mirror tables.

Square is authoritative for these rows: each sync overwrites the stored
snapshot for every external id whose content changed. Payments against a
Square invoice that has been manually linked to a gig invoice are imported
as gig invoice payments (once per Square payment id).
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Type

from ..logging import structlog
from sqlalchemy.orm import Session

from ..models.models import (
    Customer,
    GigInvoice,
    GigInvoicePayment,
    SquareCustomer,
    SquareInvoice,
    SquarePayment,
    utcnow,
)
from .square_client import SquareClient


logger = structlog.get_logger(__name__)


def _upsert(db: Session, model: Type, key_field: str, key: str, full_data: dict, **extra):
    row = db.query(model).filter(getattr(model, key_field) == key).first()
    if row is None:
        row = model(**{key_field: key})
        db.add(row)
    elif row.full_data == full_data and all(getattr(row, k) == v for k, v in extra.items()):
        # fetched_at marks the last content change
        return row
    row.full_data = full_data
    row.fetched_at = utcnow()
    for k, v in extra.items():
        setattr(row, k, v)
    return row


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return utcnow()
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(timezone.utc)


def _money(amount_money: Optional[Dict[str, Any]]) -> Decimal:
    # Square amounts are in the currency's smallest unit
    cents = (amount_money or {}).get("amount") or 0
    return (Decimal(cents) / Decimal(100)).quantize(Decimal("0.01"))


def sync_square(db: Session, client: SquareClient) -> Dict[str, int]:
    customers = client.list_customers()
    for c in customers:
        _upsert(db, SquareCustomer, "square_customer_id", c["id"], c)
    square_ids = [c["id"] for c in customers]
    linked_customers = (
        db.query(Customer).filter(Customer.square_customer_id.in_(square_ids)).count() if square_ids else 0
    )

    invoices = []
    for location in client.list_locations():
        invoices.extend(client.list_invoices(location["id"]))
    invoice_by_order: Dict[str, str] = {}
    for inv in invoices:
        recipient = inv.get("primary_recipient") or {}
        _upsert(
            db, SquareInvoice, "square_invoice_id", inv["id"], inv,
            square_customer_id=recipient.get("customer_id"),
        )
        if inv.get("order_id"):
            invoice_by_order[inv["order_id"]] = inv["id"]

    payments = client.list_payments()
    for p in payments:
        _upsert(
            db, SquarePayment, "square_payment_id", p["id"], p,
            square_invoice_id=invoice_by_order.get(p.get("order_id")),
            square_customer_id=p.get("customer_id"),
        )
    db.flush()

    imported = _import_linked_payments(db, payments, invoice_by_order)
    db.commit()

    result = {
        "customers": len(customers),
        "invoices": len(invoices),
        "payments": len(payments),
        "linked_customers": linked_customers,
        "imported_payments": imported,
    }
    logger.info("square_sync_completed", **result)
    return result


def _import_linked_payments(db: Session, payments: list, invoice_by_order: Dict[str, str]) -> int:
    imported = 0
    for p in payments:
        if p.get("status") != "COMPLETED":
            continue
        square_invoice_id = invoice_by_order.get(p.get("order_id"))
        if not square_invoice_id:
            continue
        mirror = db.query(SquareInvoice).filter(SquareInvoice.square_invoice_id == square_invoice_id).first()
        gig_invoice = (
            db.query(GigInvoice).filter(GigInvoice.square_invoice_uuid == mirror.id).first() if mirror else None
        )
        if gig_invoice is None:
            continue
        exists = db.query(GigInvoicePayment).filter(GigInvoicePayment.square_payment_id == p["id"]).first()
        if exists:
            continue
        db.add(GigInvoicePayment(
            gig_invoice_id=gig_invoice.id,
            payment_amount=_money(p.get("amount_money")),
            payment_date=_parse_timestamp(p.get("created_at")),
            origin="square",
            square_payment_id=p["id"],
        ))
        imported += 1
    return imported
