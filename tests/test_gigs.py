import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytz

from app.models.models import (
    Gig,
    GigPersonnel,
    GigCheckIn,
    Invoice,
    Personnel,
    PersonnelPayout,
)


def parse(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _payload(customer, venue, start, hours=4, **extra):
    body = {
        "name": "Karaoke Night",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=hours)).isoformat(),
        "customer_id": str(customer.id),
        "venue_id": str(venue.id),
    }
    body.update(extra)
    return body


def test_create_single_gig(client, manager_headers, customer, venue):
    start = datetime(2027, 6, 4, 1, tzinfo=timezone.utc)
    resp = client.post("/api/gigs", json=_payload(customer, venue, start), headers=manager_headers)
    assert resp.status_code == 201, resp.text
    gigs = resp.json()
    assert len(gigs) == 1
    assert gigs[0]["status"] == "pending"
    assert gigs[0]["recurrence_group_id"] is None
    assert parse(gigs[0]["start_time"]) == start


def test_offset_times_are_stored_as_utc(client, manager_headers, customer, venue):
    payload = _payload(customer, venue, datetime(2027, 6, 4, 1, tzinfo=timezone.utc))
    payload["start_time"] = "2027-06-03T20:00:00-05:00"
    payload["end_time"] = "2027-06-04T00:00:00-05:00"
    gig = client.post("/api/gigs", json=payload, headers=manager_headers).json()[0]
    assert parse(gig["start_time"]) == datetime(2027, 6, 4, 1, tzinfo=timezone.utc)
    assert parse(gig["end_time"]) == datetime(2027, 6, 4, 5, tzinfo=timezone.utc)


def test_end_must_follow_start(client, manager_headers, customer, venue):
    start = datetime(2027, 6, 4, 1, tzinfo=timezone.utc)
    resp = client.post("/api/gigs", json=_payload(customer, venue, start, hours=0), headers=manager_headers)
    assert resp.status_code == 422


def test_unknown_references_rejected(client, manager_headers, customer, venue):
    start = datetime(2027, 6, 4, 1, tzinfo=timezone.utc)
    payload = _payload(customer, venue, start, customer_id=str(uuid.uuid4()))
    assert client.post("/api/gigs", json=payload, headers=manager_headers).status_code == 400
    payload = _payload(customer, venue, start, gig_type_id=str(uuid.uuid4()))
    assert client.post("/api/gigs", json=payload, headers=manager_headers).status_code == 400


def test_weekly_series(client, db, manager_headers, customer, venue):
    start = datetime(2027, 3, 6, 2, tzinfo=timezone.utc)  # Friday 8pm Chicago
    payload = _payload(customer, venue, start, recurrence={"frequency": "weekly", "count": 4})
    resp = client.post("/api/gigs", json=payload, headers=manager_headers)
    assert resp.status_code == 201, resp.text
    gigs = resp.json()
    assert len(gigs) == 4
    assert len({g["recurrence_group_id"] for g in gigs}) == 1
    assert gigs[0]["recurrence_group_id"] is not None

    tz = pytz.timezone("America/Chicago")
    for g in gigs:
        s, e = parse(g["start_time"]), parse(g["end_time"])
        assert e - s == timedelta(hours=4)
        assert s.astimezone(tz).hour == 20

    series = client.get(f"/api/gigs/{gigs[2]['id']}/series", headers=manager_headers).json()
    assert [g["id"] for g in series] == [g["id"] for g in gigs]
    assert db.query(Gig).count() == 4


def test_monthly_series_clamps_to_month_end(client, manager_headers, customer, venue):
    start = datetime(2027, 2, 1, 2, tzinfo=timezone.utc)  # Jan 31 8pm Chicago
    payload = _payload(customer, venue, start, recurrence={"frequency": "monthly", "count": 3})
    gigs = client.post("/api/gigs", json=payload, headers=manager_headers).json()
    tz = pytz.timezone("America/Chicago")
    days = [parse(g["start_time"]).astimezone(tz).date().isoformat() for g in gigs]
    assert days == ["2027-01-31", "2027-02-28", "2027-03-31"]


def test_recurrence_count_limits(client, manager_headers, customer, venue):
    start = datetime(2027, 6, 4, 1, tzinfo=timezone.utc)
    too_many = _payload(customer, venue, start, recurrence={"frequency": "weekly", "count": 53})
    assert client.post("/api/gigs", json=too_many, headers=manager_headers).status_code == 422
    bad_freq = _payload(customer, venue, start, recurrence={"frequency": "daily", "count": 2})
    assert client.post("/api/gigs", json=bad_freq, headers=manager_headers).status_code == 422


def test_single_gig_series_is_itself(client, manager_headers, gig):
    series = client.get(f"/api/gigs/{gig.id}/series", headers=manager_headers).json()
    assert [g["id"] for g in series] == [str(gig.id)]


def test_update_validates_merged_range(client, manager_headers, gig):
    earlier = (gig.start_time - timedelta(hours=1)).isoformat()
    resp = client.put(f"/api/gigs/{gig.id}", json={"end_time": earlier}, headers=manager_headers)
    assert resp.status_code == 422

    resp = client.put(f"/api/gigs/{gig.id}", json={"status": "cancelled", "notes": "rained out"}, headers=manager_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


def test_update_rejects_null_required_field(client, manager_headers, gig):
    resp = client.put(f"/api/gigs/{gig.id}", json={"venue_id": None}, headers=manager_headers)
    assert resp.status_code == 422


def test_assign_personnel_replaces_set(client, db, manager_headers, gig, dj):
    other = Personnel(first_name="Ray", last_name="Adams")
    db.add(other)
    db.commit()

    resp = client.post(f"/api/gigs/{gig.id}/assign-personnel", json={
        "personnel_ids": [str(dj.id), str(other.id), str(dj.id)],
    }, headers=manager_headers)
    assert resp.status_code == 200
    assert [p["last_name"] for p in resp.json()] == ["Adams", "Jones"]

    resp = client.post(f"/api/gigs/{gig.id}/assign-personnel", json={
        "personnel_ids": [str(other.id)],
    }, headers=manager_headers)
    assert [p["personnel_id"] for p in resp.json()] == [str(other.id)]
    listed = client.get(f"/api/gigs/{gig.id}/personnel", headers=manager_headers).json()
    assert [p["personnel_id"] for p in listed] == [str(other.id)]

    cleared = client.post(f"/api/gigs/{gig.id}/assign-personnel", json={"personnel_ids": []}, headers=manager_headers)
    assert cleared.json() == []


def test_assign_unknown_personnel_rejected(client, db, manager_headers, assigned_gig):
    resp = client.post(f"/api/gigs/{assigned_gig.id}/assign-personnel", json={
        "personnel_ids": [str(uuid.uuid4())],
    }, headers=manager_headers)
    assert resp.status_code == 400
    db.expire_all()
    assert db.query(GigPersonnel).count() == 1


def test_personnel_sees_only_assigned_gig(client, db, dj_headers, gig, dj):
    assert client.get(f"/api/gigs/{gig.id}", headers=dj_headers).status_code == 403
    db.add(GigPersonnel(gig_id=gig.id, personnel_id=dj.id))
    db.commit()
    resp = client.get(f"/api/gigs/{gig.id}", headers=dj_headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Friday Karaoke"
    assert client.get("/api/gigs", headers=dj_headers).status_code == 403


def test_delete_gig_cascades_and_detaches_invoices(client, db, manager_headers, assigned_gig, dj, customer):
    db.add(PersonnelPayout(gig_id=assigned_gig.id, personnel_id=dj.id, amount=Decimal("100.00")))
    db.add(GigCheckIn(gig_id=assigned_gig.id, personnel_id=dj.id, check_in_time=datetime.now(timezone.utc)))
    invoice = Invoice(
        invoice_number="INV-1",
        customer_id=customer.id,
        gig_id=assigned_gig.id,
        issue_date=datetime.now(timezone.utc).date(),
        amount=Decimal("500.00"),
        total=Decimal("500.00"),
    )
    db.add(invoice)
    db.commit()
    invoice_id = invoice.id

    assert client.delete(f"/api/gigs/{assigned_gig.id}", headers=manager_headers).status_code == 200
    db.expire_all()
    assert db.query(Gig).count() == 0
    assert db.query(GigPersonnel).count() == 0
    assert db.query(PersonnelPayout).count() == 0
    assert db.query(GigCheckIn).count() == 0
    assert db.get(Invoice, invoice_id).gig_id is None


def test_upcoming_and_pending(client, db, manager_headers, gig, customer, venue):
    past = datetime.now(timezone.utc) - timedelta(days=2)
    db.add(Gig(name="Old Show", start_time=past, end_time=past + timedelta(hours=2),
               customer_id=customer.id, venue_id=venue.id, status="pending"))
    soon = datetime.now(timezone.utc) + timedelta(days=1)
    db.add(Gig(name="Soon Show", start_time=soon, end_time=soon + timedelta(hours=2),
               customer_id=customer.id, venue_id=venue.id, status="pending"))
    db.commit()

    upcoming = client.get("/api/gigs/upcoming", params={"limit": 5}, headers=manager_headers).json()
    assert [g["name"] for g in upcoming] == ["Soon Show", "Friday Karaoke"]

    pending = client.get("/api/gigs/pending", headers=manager_headers).json()
    assert [g["name"] for g in pending] == ["Old Show", "Soon Show"]


def test_list_filters(client, manager_headers, gig):
    assert len(client.get("/api/gigs", params={"status": "confirmed"}, headers=manager_headers).json()) == 1
    assert client.get("/api/gigs", params={"status": "pending"}, headers=manager_headers).json() == []
    by_venue = client.get("/api/gigs", params={"venue_id": str(gig.venue_id)}, headers=manager_headers).json()
    assert [g["id"] for g in by_venue] == [str(gig.id)]
