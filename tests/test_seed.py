from app.models.models import User, VenueType, PaymentMethod
from scripts.seed import DEFAULT_LOOKUPS, seed_database
from conftest import login


def test_seed_is_idempotent(client, db):
    first = seed_database(db, owner_password="ownerpass", manager_password="managerpass")
    assert first == {"users": 2, "lookups": sum(len(v) for v in DEFAULT_LOOKUPS.values())}

    second = seed_database(db)
    assert second == {"users": 0, "lookups": 0}
    assert db.query(User).count() == 2
    assert db.query(PaymentMethod).count() == len(DEFAULT_LOOKUPS[PaymentMethod])

    headers = login(client, "owner@example.com", "ownerpass")
    assert client.get("/api/users", headers=headers).status_code == 200


def test_seed_keeps_existing_lookups(db):
    db.add(VenueType(name="Hotel"))
    db.commit()
    created = seed_database(db)
    assert created["lookups"] == sum(len(v) for v in DEFAULT_LOOKUPS.values()) - 1
    assert db.query(VenueType).filter(VenueType.name == "Hotel").count() == 1
