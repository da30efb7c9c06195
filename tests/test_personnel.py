import uuid
from datetime import date
from decimal import Decimal

from app.models.models import Personnel, PersonnelPayout, GigPersonnel, User
from app.services.crypto import encrypt_value, decrypt_value, mask_ssn
from conftest import login


def _create(client, headers, **overrides):
    payload = {
        "first_name": "Kai",
        "last_name": "Lopez",
        "email": "kai@example.com",
        "phone": "(555) 333-4444",
        "dob": "1990-04-01",
        "ssn": "123-45-6789",
        "city": "Houston",
    }
    payload.update(overrides)
    return client.post("/api/personnel", json=payload, headers=headers)


def test_personnel_round_trip_masks_ssn(client, db, manager_headers):
    resp = _create(client, manager_headers)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["full_name"] == "Kai Lopez"
    assert body["dob"] == "1990-04-01"
    assert body["has_ssn"] is True
    assert body["ssn_masked"] == "***-**-6789"
    assert "ssn" not in body

    stored = db.get(Personnel, uuid.UUID(body["id"]))
    assert "6789" not in stored.ssn_encrypted
    assert decrypt_value(stored.ssn_encrypted) == "123-45-6789"


def test_ssn_reveal_is_owner_only(client, manager_headers, owner_headers):
    person_id = _create(client, manager_headers).json()["id"]
    assert client.get(f"/api/personnel/{person_id}/ssn", headers=manager_headers).status_code == 403
    resp = client.get(f"/api/personnel/{person_id}/ssn", headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["ssn"] == "123-45-6789"


def test_invalid_ssn_rejected(client, manager_headers):
    assert _create(client, manager_headers, ssn="12-345").status_code == 422


def test_duplicate_email_or_phone_conflicts(client, manager_headers):
    _create(client, manager_headers)
    assert _create(client, manager_headers, phone="(555) 000-0000").status_code == 409
    assert _create(client, manager_headers, email="other@example.com").status_code == 409


def test_update_clears_ssn(client, manager_headers):
    person_id = _create(client, manager_headers).json()["id"]
    resp = client.put(f"/api/personnel/{person_id}", json={"ssn": None, "city": "Austin"}, headers=manager_headers)
    assert resp.status_code == 200
    assert resp.json()["has_ssn"] is False
    assert resp.json()["city"] == "Austin"


def test_create_login_generates_password(client, db, manager_headers):
    person_id = _create(client, manager_headers).json()["id"]
    resp = client.post(f"/api/personnel/{person_id}/create-login", headers=manager_headers)
    assert resp.status_code == 201, resp.text
    generated = resp.json()["generated_password"]
    assert generated
    assert resp.json()["user"]["personnel_id"] == person_id

    headers = login(client, "kai@example.com", generated)
    me = client.get("/api/personnel/me", headers=headers)
    assert me.json()["id"] == person_id

    again = client.post(f"/api/personnel/{person_id}/create-login", headers=manager_headers)
    assert again.status_code == 409


def test_create_login_with_password_and_missing_email(client, manager_headers):
    no_email = _create(client, manager_headers, email=None).json()["id"]
    assert client.post(f"/api/personnel/{no_email}/create-login", headers=manager_headers).status_code == 400

    other = _create(client, manager_headers, email="zed@example.com", phone=None).json()["id"]
    resp = client.post(
        f"/api/personnel/{other}/create-login", json={"password": "letmein1"}, headers=manager_headers
    )
    assert resp.status_code == 201
    assert resp.json()["generated_password"] is None
    login(client, "zed@example.com", "letmein1")


def test_delete_with_payouts_is_rejected(client, db, manager_headers, gig, dj):
    db.add(PersonnelPayout(gig_id=gig.id, personnel_id=dj.id, amount=Decimal("150.00")))
    db.commit()
    assert client.delete(f"/api/personnel/{dj.id}", headers=manager_headers).status_code == 409


def test_delete_cascades_assignments_and_detaches_login(client, db, manager_headers, assigned_gig, dj, dj_user):
    assert client.delete(f"/api/personnel/{dj.id}", headers=manager_headers).status_code == 200
    db.expire_all()
    assert db.query(GigPersonnel).count() == 0
    assert db.get(User, dj_user.id).personnel_id is None


def test_self_service_requires_link(client, manager_headers):
    assert client.get("/api/personnel/me", headers=manager_headers).status_code == 404


def test_my_gigs_and_payouts(client, db, dj_headers, assigned_gig, dj):
    db.add(PersonnelPayout(gig_id=assigned_gig.id, personnel_id=dj.id, amount=Decimal("200.00"), date_paid=date.today()))
    db.add(PersonnelPayout(gig_id=assigned_gig.id, personnel_id=dj.id, amount=Decimal("50.00"), date_paid=date(2000, 1, 1)))
    db.commit()

    gigs = client.get("/api/personnel/me/gigs", headers=dj_headers).json()
    assert [g["id"] for g in gigs] == [str(assigned_gig.id)]

    payouts = client.get("/api/personnel/me/payouts", headers=dj_headers).json()
    assert len(payouts["payouts"]) == 2
    assert Decimal(payouts["total_earnings"]) == Decimal("250.00")
    assert Decimal(payouts["this_month_earnings"]) == Decimal("200.00")


def test_stats(client, db, manager_headers, assigned_gig, dj):
    db.add(PersonnelPayout(gig_id=assigned_gig.id, personnel_id=dj.id, amount=Decimal("80.00")))
    db.commit()
    stats = client.get(f"/api/personnel/{dj.id}/stats", headers=manager_headers).json()
    assert stats["total_gigs"] == 1
    assert Decimal(stats["total_earnings"]) == Decimal("80.00")
    assert stats["documents_uploaded"] == 0


def test_personnel_gigs(client, manager_headers, assigned_gig, dj):
    resp = client.get(f"/api/personnel/{dj.id}/gigs", headers=manager_headers)
    assert [g["id"] for g in resp.json()] == [str(assigned_gig.id)]


def test_crypto_helpers():
    token = encrypt_value("987-65-4321")
    assert token != "987-65-4321"
    assert decrypt_value(token) == "987-65-4321"
    assert mask_ssn("987654321") == "***-**-4321"
    assert encrypt_value(None) is None
