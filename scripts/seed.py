"""
Seed the back office: an owner login, a manager login and the default lookup values.

Usage:
  python -m scripts.seed [--owner-email E] [--owner-password P] [--manager-email E] [--manager-password P]

This script is idempotent: existing users and lookup names are left untouched.
"""
import argparse

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.db import Base, SessionLocal, engine
from app.models.models import (
    User,
    VenueType,
    PersonnelType,
    GigType,
    ContactRole,
    PaymentMethod,
    DocumentType,
)
from app.services import audit  # noqa: F401  audit rows for seeded data
from app.auth.security import get_password_hash


DEFAULT_LOOKUPS = {
    VenueType: ["Wedding Venue", "Corporate Event Space", "Night Club", "Restaurant", "Hotel"],
    PersonnelType: ["DJ", "KJ (Karaoke Jockey)", "MC (Master of Ceremonies)", "Lighting Tech", "Sound Tech"],
    GigType: ["Wedding", "Corporate Event", "Birthday Party", "Karaoke Night", "Club Night"],
    ContactRole: ["Venue Manager", "Event Coordinator", "Billing Contact", "Technical Contact"],
    PaymentMethod: ["Cash", "Check", "Credit Card", "Bank Transfer", "PayPal", "Venmo"],
    DocumentType: ["Contract", "Invoice", "W-9 Form", "Insurance Certificate", "Venue Agreement"],
}


def ensure_user(db: Session, email: str, password: str, role: str, name: str) -> bool:
    email = email.strip().lower()
    if db.query(User).filter(func.lower(User.email) == email).first():
        return False
    db.add(User(email=email, name=name, password_hash=get_password_hash(password), role=role))
    return True


def seed_database(
    db: Session,
    owner_email: str = "owner@example.com",
    owner_password: str = "password123",
    manager_email: str = "manager@example.com",
    manager_password: str = "password123",
) -> dict:
    created = {"users": 0, "lookups": 0}
    created["users"] += ensure_user(db, owner_email, owner_password, "owner", "Owner")
    created["users"] += ensure_user(db, manager_email, manager_password, "manager", "Manager")
    for model, names in DEFAULT_LOOKUPS.items():
        existing = {row.name for row in db.query(model).all()}
        for name in names:
            if name not in existing:
                db.add(model(name=name))
                created["lookups"] += 1
    db.commit()
    return created


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seed owner/manager logins and default lookup values")
    parser.add_argument("--owner-email", default="owner@example.com")
    parser.add_argument("--owner-password", default="password123")
    parser.add_argument("--manager-email", default="manager@example.com")
    parser.add_argument("--manager-password", default="password123")
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = seed_database(
            db,
            owner_email=args.owner_email,
            owner_password=args.owner_password,
            manager_email=args.manager_email,
            manager_password=args.manager_password,
        )
        print(f"Seeded {created['users']} user(s) and {created['lookups']} lookup value(s)")
        print(f"  Owner: {args.owner_email}")
        print(f"  Manager: {args.manager_email}")
    except Exception as e:
        db.rollback()
        print(f"Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
