from datetime import date, timedelta
from decimal import Decimal

from app.models.models import Invoice, InvoiceItem, SquareInvoice, PaymentMethod
from app.routes.invoices import next_invoice_number


def _create(client, headers, customer, **extra):
    body = {"customer_id": str(customer.id)}
    body.update(extra)
    return client.post("/api/invoices", json=body, headers=headers)


def test_invoice_defaults(client, manager_headers, customer):
    resp = _create(client, manager_headers, customer, amount="400", tax="32.50")
    assert resp.status_code == 201, resp.text
    inv = resp.json()
    assert inv["invoice_number"].startswith("INV-")
    assert inv["status"] == "draft"
    assert inv["issue_date"] == date.today().isoformat()
    assert inv["due_date"] == (date.today() + timedelta(days=30)).isoformat()
    assert inv["paid_date"] is None
    assert Decimal(inv["total"]) == Decimal("432.50")


def test_items_drive_amount(client, manager_headers, customer):
    resp = _create(client, manager_headers, customer, tax="10", items=[
        {"description": "DJ set", "quantity": "4", "rate": "125"},
        {"description": "Karaoke add-on", "rate": "75.50"},
    ])
    inv = resp.json()
    assert [i["description"] for i in inv["items"]] == ["DJ set", "Karaoke add-on"]
    assert [Decimal(i["amount"]) for i in inv["items"]] == [Decimal("500"), Decimal("75.50")]
    assert Decimal(inv["amount"]) == Decimal("575.50")
    assert Decimal(inv["total"]) == Decimal("585.50")


def test_update_replaces_items(client, db, manager_headers, customer):
    inv = _create(client, manager_headers, customer, items=[
        {"description": "DJ set", "quantity": "2", "rate": "100"},
    ]).json()
    resp = client.put(f"/api/invoices/{inv['id']}", json={
        "items": [{"description": "Lighting", "rate": "60"}, {"description": "Fog", "rate": "15"}],
        "notes": "revised",
    }, headers=manager_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert [i["description"] for i in body["items"]] == ["Lighting", "Fog"]
    assert Decimal(body["total"]) == Decimal("75")
    db.expire_all()
    assert db.query(InvoiceItem).count() == 2


def test_clearing_items_zeroes_amount(client, db, manager_headers, customer):
    inv = _create(client, manager_headers, customer, tax="8.25", items=[
        {"description": "DJ set", "rate": "100"},
    ]).json()
    resp = client.put(f"/api/invoices/{inv['id']}", json={"items": []}, headers=manager_headers)
    body = resp.json()
    assert body["items"] == []
    assert Decimal(body["amount"]) == Decimal("0")
    assert Decimal(body["total"]) == Decimal("8.25")
    db.expire_all()
    assert db.query(InvoiceItem).count() == 0

    # leaving items out keeps a manual amount
    kept = client.put(f"/api/invoices/{inv['id']}", json={"amount": "40"}, headers=manager_headers).json()
    assert Decimal(kept["total"]) == Decimal("48.25")


def test_create_as_paid_stamps_paid_date(client, manager_headers, customer):
    inv = _create(client, manager_headers, customer, amount="100", status="paid").json()
    assert inv["paid_date"] == date.today().isoformat()


def test_status_change(client, manager_headers, customer):
    inv = _create(client, manager_headers, customer, amount="100").json()
    sent = client.put(f"/api/invoices/{inv['id']}/status", json={"status": "sent"}, headers=manager_headers)
    assert sent.json()["status"] == "sent"
    assert sent.json()["paid_date"] is None

    paid = client.put(f"/api/invoices/{inv['id']}/status", json={
        "status": "paid", "paid_date": "2027-01-15",
    }, headers=manager_headers)
    assert paid.json()["paid_date"] == "2027-01-15"

    bad = client.put(f"/api/invoices/{inv['id']}/status", json={"status": "lost"}, headers=manager_headers)
    assert bad.status_code == 422


def test_unknown_references(client, manager_headers, customer):
    missing = {"customer_id": "00000000-0000-0000-0000-000000000042"}
    assert client.post("/api/invoices", json=missing, headers=manager_headers).status_code == 400
    resp = _create(client, manager_headers, customer, payment_method_id="00000000-0000-0000-0000-000000000042")
    assert resp.status_code == 400


def test_duplicate_invoice_number_conflicts(client, manager_headers, customer):
    assert _create(client, manager_headers, customer, invoice_number="A-100").status_code == 201
    assert _create(client, manager_headers, customer, invoice_number="A-100").status_code == 409


def test_list_filter_and_delete(client, db, manager_headers, customer):
    first = _create(client, manager_headers, customer, amount="1", items=[{"description": "x", "rate": "1"}]).json()
    _create(client, manager_headers, customer, amount="2", status="sent")
    sent = client.get("/api/invoices", params={"status": "sent"}, headers=manager_headers).json()
    assert len(sent) == 1

    assert client.delete(f"/api/invoices/{first['id']}", headers=manager_headers).status_code == 200
    db.expire_all()
    assert db.query(Invoice).count() == 1
    assert db.query(InvoiceItem).count() == 0


def test_invoice_keeps_gig_link(client, manager_headers, customer, gig):
    inv = _create(client, manager_headers, customer, gig_id=str(gig.id)).json()
    assert inv["gig_id"] == str(gig.id)


def test_next_invoice_number_format():
    assert next_invoice_number()[4:].isdigit()


def test_gig_invoice_payments(client, db, manager_headers, gig):
    method = PaymentMethod(name="Venmo")
    db.add(method)
    db.commit()

    resp = client.post(f"/api/gigs/{gig.id}/invoices", json={
        "external_invoice_id": "SQ-123", "amount": "800", "external_invoice_url": "https://squareup.com/i/SQ-123",
    }, headers=manager_headers)
    assert resp.status_code == 201
    gi = resp.json()
    assert gi["status"] == "sent"
    assert Decimal(gi["amount_paid"]) == Decimal("0")

    dup = client.post(f"/api/gigs/{gig.id}/invoices", json={"external_invoice_id": "SQ-123"}, headers=manager_headers)
    assert dup.status_code == 409

    for amount in ("300", "200.25"):
        paid = client.post(f"/api/gig-invoices/{gi['id']}/payments", json={
            "payment_amount": amount, "payment_method_id": str(method.id),
        }, headers=manager_headers)
        assert paid.status_code == 201
        assert paid.json()["origin"] == "manual"

    listed = client.get(f"/api/gigs/{gig.id}/invoices", headers=manager_headers).json()
    assert Decimal(listed[0]["amount_paid"]) == Decimal("500.25")
    payments = client.get(f"/api/gig-invoices/{gi['id']}/payments", headers=manager_headers).json()
    assert len(payments) == 2


def test_gig_invoice_generates_external_id(client, manager_headers, gig):
    gi = client.post(f"/api/gigs/{gig.id}/invoices", json={}, headers=manager_headers).json()
    assert gi["external_invoice_id"].startswith("INV-")


def test_zero_payment_rejected(client, manager_headers, gig):
    gi = client.post(f"/api/gigs/{gig.id}/invoices", json={}, headers=manager_headers).json()
    resp = client.post(f"/api/gig-invoices/{gi['id']}/payments", json={"payment_amount": "0"}, headers=manager_headers)
    assert resp.status_code == 422


def test_square_link(client, db, manager_headers, gig):
    mirror = SquareInvoice(square_invoice_id="inv:0-abc", full_data={"id": "inv:0-abc"})
    db.add(mirror)
    db.commit()
    gi = client.post(f"/api/gigs/{gig.id}/invoices", json={"external_invoice_id": "SQ-9"}, headers=manager_headers).json()

    missing = client.put(f"/api/gig-invoices/{gi['id']}/square-link", json={
        "square_invoice_id": "inv:0-missing",
    }, headers=manager_headers)
    assert missing.status_code == 404

    linked = client.put(f"/api/gig-invoices/{gi['id']}/square-link", json={
        "square_invoice_id": "inv:0-abc",
    }, headers=manager_headers)
    assert linked.json()["square_invoice_uuid"] == str(mirror.id)

    unlinked = client.put(f"/api/gig-invoices/{gi['id']}/square-link", json={"square_invoice_id": None},
                          headers=manager_headers)
    assert unlinked.json()["square_invoice_uuid"] is None
