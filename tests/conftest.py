import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT", "100000/minute")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config import settings  # noqa: E402
from app.db import Base, get_db, enable_sqlite_foreign_keys  # noqa: E402
from app.main import app  # noqa: E402
from app.models.models import User, Personnel, Customer, Venue, Gig, GigPersonnel  # noqa: E402
from app.auth.security import get_password_hash  # noqa: E402


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

PASSWORD = "secret123"


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "storage_provider", "local")
    monkeypatch.setattr(settings, "local_storage_dir", str(tmp_path / "storage"))
    return tmp_path / "storage"


@pytest.fixture()
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db, email, role, personnel_id=None, password=PASSWORD):
    user = User(
        email=email,
        name=email.split("@")[0],
        password_hash=get_password_hash(password),
        role=role,
        personnel_id=personnel_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def login(client, email, password=PASSWORD):
    resp = client.post("/api/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture()
def owner(db):
    return make_user(db, "owner@example.com", "owner")


@pytest.fixture()
def manager(db):
    return make_user(db, "manager@example.com", "manager")


@pytest.fixture()
def owner_headers(client, owner):
    return login(client, owner.email)


@pytest.fixture()
def manager_headers(client, manager):
    return login(client, manager.email)


@pytest.fixture()
def dj(db):
    person = Personnel(first_name="Dana", last_name="Jones", email="dana@example.com", phone="(555) 111-2222")
    db.add(person)
    db.commit()
    db.refresh(person)
    return person


@pytest.fixture()
def dj_user(db, dj):
    return make_user(db, "dana@example.com", "personnel", personnel_id=dj.id)


@pytest.fixture()
def dj_headers(client, dj_user):
    return login(client, dj_user.email)


@pytest.fixture()
def customer(db):
    c = Customer(customer_type="business", business_name="Acme Events")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@pytest.fixture()
def venue(db):
    v = Venue(name="The Blue Room", city="Austin", state="TX")
    db.add(v)
    db.commit()
    db.refresh(v)
    return v


@pytest.fixture()
def gig(db, customer, venue):
    start = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=3)
    g = Gig(
        name="Friday Karaoke",
        start_time=start,
        end_time=start + timedelta(hours=4),
        customer_id=customer.id,
        venue_id=venue.id,
        status="confirmed",
    )
    db.add(g)
    db.commit()
    db.refresh(g)
    return g


@pytest.fixture()
def assigned_gig(db, gig, dj):
    db.add(GigPersonnel(gig_id=gig.id, personnel_id=dj.id))
    db.commit()
    return gig
