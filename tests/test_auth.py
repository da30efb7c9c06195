import re

import pytest

from app.auth.security import generate_password, require_roles, verify_password, get_password_hash
from app.models.models import UserSession
from app.services.navigation import menu_for_role
from conftest import login, make_user, PASSWORD


def test_login_returns_token_and_user(client, owner):
    resp = client.post("/api/login", json={"email": "OWNER@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "owner@example.com"
    assert body["user"]["role"] == "owner"


def test_login_rejects_bad_password(client, owner):
    resp = client.post("/api/login", json={"email": owner.email, "password": "nope-nope"})
    assert resp.status_code == 401


def test_login_rejects_inactive_user(client, db, owner):
    owner.is_active = False
    db.commit()
    resp = client.post("/api/login", json={"email": owner.email, "password": PASSWORD})
    assert resp.status_code == 401


def test_current_user_requires_token(client):
    assert client.get("/api/user").status_code == 401


def test_current_user(client, manager_headers, manager):
    resp = client.get("/api/user", headers=manager_headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == str(manager.id)
    assert resp.json()["personnel_id"] is None


def test_logout_invalidates_token(client, db, owner_headers):
    assert db.query(UserSession).count() == 1
    assert client.post("/api/logout", headers=owner_headers).status_code == 200
    db.expire_all()
    assert db.query(UserSession).count() == 0
    resp = client.get("/api/user", headers=owner_headers)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Session expired"


def test_register_requires_matching_personnel(client, dj):
    resp = client.post("/api/register", json={
        "email": "stranger@example.com", "password": "abcdef", "first_name": "Sam", "last_name": "Stone",
    })
    assert resp.status_code == 403


def test_register_links_personnel(client, db, dj):
    resp = client.post("/api/register", json={
        "email": "Dana@Example.com", "password": "abcdef", "first_name": "dana", "last_name": "JONES",
    })
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["user"]["role"] == "personnel"
    assert body["user"]["personnel_id"] == str(dj.id)

    again = client.post("/api/register", json={
        "email": "dana@example.com", "password": "abcdef", "first_name": "Dana", "last_name": "Jones",
    })
    assert again.status_code == 400


def test_register_validates_password_length(client, dj):
    resp = client.post("/api/register", json={
        "email": "dana@example.com", "password": "abc", "first_name": "Dana", "last_name": "Jones",
    })
    assert resp.status_code == 422


@pytest.mark.parametrize("role,expected", [
    ("owner", "Settings"),
    ("manager", "Contacts"),
    ("personnel", "My Payouts"),
])
def test_navigation_by_role(client, db, role, expected):
    make_user(db, f"{role}@nav.example.com", role)
    headers = login(client, f"{role}@nav.example.com")
    titles = [item["title"] for item in client.get("/api/navigation", headers=headers).json()]
    assert expected in titles


def test_navigation_menus():
    assert "Settings" not in [i["title"] for i in menu_for_role("manager")]
    assert "Customers" not in [i["title"] for i in menu_for_role("personnel")]
    assert menu_for_role("unknown") == []


def test_generate_password_shape():
    for _ in range(20):
        pw = generate_password()
        assert re.fullmatch(r"(vibe|gig|beat|tune|song|mix|play|jazz|rock|soul){3}\d{3}[!@#$%]", pw)


def test_password_hash_roundtrip():
    hashed = get_password_hash("hunter22")
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)
    assert not verify_password("hunter22", None)


def test_require_roles_rejects_unknown_role():
    with pytest.raises(ValueError):
        require_roles("superuser")


def test_personnel_cannot_reach_back_office(client, dj_headers):
    assert client.get("/api/customers", headers=dj_headers).status_code == 403
    assert client.get("/api/invoices", headers=dj_headers).status_code == 403
    assert client.get("/api/users", headers=dj_headers).status_code == 403


def test_manager_cannot_reach_owner_routes(client, manager_headers):
    assert client.get("/api/users", headers=manager_headers).status_code == 403
    assert client.get("/api/audit-log", headers=manager_headers).status_code == 403
    assert client.get("/api/integrations/square", headers=manager_headers).status_code == 403

