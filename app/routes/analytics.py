from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import Invoice, Personnel, Gig, GigPersonnel, Customer, Venue
from ..auth.security import require_manager


router = APIRouter(prefix="/api", tags=["analytics"])

CENT = Decimal("0.01")


@router.get("/analytics/summary")
def analytics_summary(db: Session = Depends(get_db), _=Depends(require_manager)):
    year = datetime.now(timezone.utc).year
    paid = db.query(Invoice).filter(Invoice.status == "paid").all()

    total_revenue = sum((Decimal(inv.total) for inv in paid), Decimal("0"))
    monthly = [Decimal("0")] * 12
    for inv in paid:
        when = inv.paid_date or inv.issue_date
        if when and when.year == year:
            monthly[when.month - 1] += Decimal(inv.total)

    active_personnel = db.query(Personnel).filter(Personnel.is_active == True).count()  # noqa: E712
    counts = (
        db.query(Personnel, func.count(GigPersonnel.gig_id))
        .outerjoin(GigPersonnel, GigPersonnel.personnel_id == Personnel.id)
        .filter(Personnel.is_active == True)  # noqa: E712
        .group_by(Personnel.id)
        .all()
    )
    personnel_counts = sorted(
        (
            {"personnel_id": str(p.id), "name": p.full_name, "gig_count": n}
            for p, n in counts
        ),
        key=lambda row: (-row["gig_count"], row["name"]),
    )

    return {
        "year": year,
        "total_revenue": str(total_revenue.quantize(CENT)),
        "active_personnel": active_personnel,
        "monthly_revenue": [str(m.quantize(CENT)) for m in monthly],
        "personnel_with_gig_counts": personnel_counts,
    }


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), _=Depends(require_manager)):
    now = datetime.now(timezone.utc)
    unpaid = db.query(func.coalesce(func.sum(Invoice.total), 0)).filter(
        Invoice.status.in_(("draft", "sent", "overdue"))
    ).scalar()
    return {
        "upcoming_gigs": db.query(Gig).filter(Gig.start_time >= now, Gig.status != "cancelled").count(),
        "pending_gigs": db.query(Gig).filter(Gig.status == "pending").count(),
        "customers": db.query(Customer).count(),
        "venues": db.query(Venue).count(),
        "personnel": db.query(Personnel).filter(Personnel.is_active == True).count(),  # noqa: E712
        "unpaid_invoice_total": str(Decimal(str(unpaid or 0)).quantize(CENT)),
    }
