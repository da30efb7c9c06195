import uuid
from datetime import datetime, date, timezone
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Integer,
    Numeric,
    JSON,
    UniqueConstraint,
    BigInteger,
    Text,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from ..db import Base


SYSTEM_ACTOR_ID = uuid.UUID(int=0)

USER_ROLES = ("owner", "manager", "personnel")
CUSTOMER_TYPES = ("business", "person")
GIG_STATUSES = ("pending", "confirmed", "cancelled")
INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "cancelled")
AUDIT_ACTIONS = ("INSERT", "UPDATE", "DELETE")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend (SQLite drops tzinfo)."""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


def money() -> Numeric:
    return Numeric(10, 2)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

class LookupMixin:
    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)


class VenueType(LookupMixin, Base):
    __tablename__ = "venue_types"


class PersonnelType(LookupMixin, Base):
    __tablename__ = "personnel_types"


class GigType(LookupMixin, Base):
    __tablename__ = "gig_types"


class PaymentMethod(LookupMixin, Base):
    __tablename__ = "payment_methods"


class DocumentType(LookupMixin, Base):
    __tablename__ = "document_types"


class ContactRole(LookupMixin, Base):
    __tablename__ = "contact_roles"


# ---------------------------------------------------------------------------
# People and logins
# ---------------------------------------------------------------------------

class Personnel(TimestampMixin, Base):
    __tablename__ = "personnel"

    id: Mapped[uuid.UUID] = uuid_pk()
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    middle_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), unique=True)
    dob: Mapped[Optional[date]] = mapped_column(Date)
    ssn_encrypted: Mapped[Optional[str]] = mapped_column(Text)
    address1: Mapped[Optional[str]] = mapped_column(String(255))
    address2: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(50))
    zip: Mapped[Optional[str]] = mapped_column(String(20))
    personnel_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("personnel_types.id", ondelete="SET NULL"), index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Deleting personnel nullifies users.personnel_id through the ORM
    user: Mapped[Optional["User"]] = relationship("User", back_populates="personnel", uselist=False)
    gig_links: Mapped[List["GigPersonnel"]] = relationship(
        "GigPersonnel", back_populates="personnel", cascade="all, delete-orphan"
    )
    check_ins: Mapped[List["GigCheckIn"]] = relationship(
        "GigCheckIn", back_populates="personnel", cascade="all, delete-orphan"
    )
    file_links: Mapped[List["PersonnelFile"]] = relationship(
        "PersonnelFile", back_populates="personnel", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[Optional[str]] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="personnel")
    personnel_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("personnel.id", ondelete="SET NULL"), unique=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())

    personnel: Mapped[Optional[Personnel]] = relationship("Personnel", back_populates="user")
    sessions: Mapped[List["UserSession"]] = relationship(
        "UserSession", back_populates="user", cascade="all, delete-orphan"
    )


class UserSession(Base):
    """One row per issued access token; logout removes it."""
    __tablename__ = "user_sessions"
    __audited__ = False

    jti: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    user: Mapped[User] = relationship("User", back_populates="sessions")


# ---------------------------------------------------------------------------
# Contacts, customers, venues
# ---------------------------------------------------------------------------

class Contact(TimestampMixin, Base):
    __tablename__ = "contacts"

    id: Mapped[uuid.UUID] = uuid_pk()
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    title: Mapped[Optional[str]] = mapped_column(String(255))

    customer_links: Mapped[List["CustomerContact"]] = relationship(
        "CustomerContact", back_populates="contact", cascade="all, delete-orphan"
    )
    venue_links: Mapped[List["VenueContact"]] = relationship(
        "VenueContact", back_populates="contact", cascade="all, delete-orphan"
    )

    __table_args__ = (UniqueConstraint("email", "phone", name="uq_contact_email_phone"),)


class Customer(TimestampMixin, Base):
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = uuid_pk()
    customer_type: Mapped[str] = mapped_column(String(20), nullable=False)  # business|person
    business_name: Mapped[Optional[str]] = mapped_column(String(255))
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    primary_email: Mapped[Optional[str]] = mapped_column(String(255))
    primary_phone: Mapped[Optional[str]] = mapped_column(String(50))
    address1: Mapped[Optional[str]] = mapped_column(String(255))
    address2: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(50))
    zip: Mapped[Optional[str]] = mapped_column(String(20))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    square_customer_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True)

    contact_links: Mapped[List["CustomerContact"]] = relationship(
        "CustomerContact", back_populates="customer", cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        if self.customer_type == "business":
            return self.business_name or ""
        return " ".join(p for p in [self.first_name, self.last_name] if p)


class Venue(TimestampMixin, Base):
    __tablename__ = "venues"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address1: Mapped[Optional[str]] = mapped_column(String(255))
    address2: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(50))
    zip: Mapped[Optional[str]] = mapped_column(String(20))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    website: Mapped[Optional[str]] = mapped_column(String(500))
    occupancy: Mapped[Optional[int]] = mapped_column(Integer)
    venue_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("venue_types.id", ondelete="SET NULL"), index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    contact_links: Mapped[List["VenueContact"]] = relationship(
        "VenueContact", back_populates="venue", cascade="all, delete-orphan"
    )
    file_links: Mapped[List["VenueFile"]] = relationship(
        "VenueFile", back_populates="venue", cascade="all, delete-orphan"
    )


class CustomerContact(Base):
    __tablename__ = "customer_contacts"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="CASCADE"), primary_key=True
    )
    contact_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contacts.id", ondelete="CASCADE"), primary_key=True
    )
    contact_role_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contact_roles.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    customer: Mapped[Customer] = relationship("Customer", back_populates="contact_links")
    contact: Mapped[Contact] = relationship("Contact", back_populates="customer_links")


class VenueContact(Base):
    __tablename__ = "venue_contacts"

    venue_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("venues.id", ondelete="CASCADE"), primary_key=True
    )
    contact_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contacts.id", ondelete="CASCADE"), primary_key=True
    )
    contact_role_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contact_roles.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    venue: Mapped[Venue] = relationship("Venue", back_populates="contact_links")
    contact: Mapped[Contact] = relationship("Contact", back_populates="venue_links")


# ---------------------------------------------------------------------------
# Gigs
# ---------------------------------------------------------------------------

class Gig(TimestampMixin, Base):
    __tablename__ = "gigs"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    venue_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("venues.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    gig_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("gig_types.id", ondelete="SET NULL"), index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    notes: Mapped[Optional[str]] = mapped_column(Text)
    recurrence_group_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), index=True)

    customer: Mapped[Customer] = relationship("Customer")
    venue: Mapped[Venue] = relationship("Venue")
    personnel_links: Mapped[List["GigPersonnel"]] = relationship(
        "GigPersonnel", back_populates="gig", cascade="all, delete-orphan"
    )
    payouts: Mapped[List["PersonnelPayout"]] = relationship(
        "PersonnelPayout", back_populates="gig", cascade="all, delete-orphan"
    )
    check_ins: Mapped[List["GigCheckIn"]] = relationship(
        "GigCheckIn", back_populates="gig", cascade="all, delete-orphan"
    )
    file_links: Mapped[List["GigFile"]] = relationship(
        "GigFile", back_populates="gig", cascade="all, delete-orphan"
    )
    external_invoices: Mapped[List["GigInvoice"]] = relationship(
        "GigInvoice", back_populates="gig", cascade="all, delete-orphan"
    )
    # Internal invoices survive gig deletion with gig_id nullified
    invoices: Mapped[List["Invoice"]] = relationship("Invoice", back_populates="gig")


class GigPersonnel(Base):
    __tablename__ = "gig_personnel"

    gig_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("gigs.id", ondelete="CASCADE"), primary_key=True
    )
    personnel_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("personnel.id", ondelete="CASCADE"), primary_key=True
    )
    role_notes: Mapped[Optional[str]] = mapped_column(Text)

    gig: Mapped[Gig] = relationship("Gig", back_populates="personnel_links")
    personnel: Mapped[Personnel] = relationship("Personnel", back_populates="gig_links")


class GigCheckIn(TimestampMixin, Base):
    __tablename__ = "gig_check_ins"

    id: Mapped[uuid.UUID] = uuid_pk()
    gig_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("gigs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    personnel_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("personnel.id", ondelete="CASCADE"), nullable=False, index=True
    )
    check_in_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    check_out_time: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    check_in_location: Mapped[Optional[str]] = mapped_column(String(500))
    check_out_location: Mapped[Optional[str]] = mapped_column(String(500))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    gig: Mapped[Gig] = relationship("Gig", back_populates="check_ins")
    personnel: Mapped[Personnel] = relationship("Personnel", back_populates="check_ins")


class PersonnelPayout(TimestampMixin, Base):
    __tablename__ = "personnel_payouts"

    id: Mapped[uuid.UUID] = uuid_pk()
    gig_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("gigs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    personnel_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("personnel.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    payment_method_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("payment_methods.id", ondelete="SET NULL")
    )
    amount: Mapped[Decimal] = mapped_column(money(), nullable=False)
    date_paid: Mapped[Optional[date]] = mapped_column(Date)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    gig: Mapped[Gig] = relationship("Gig", back_populates="payouts")
    # No back-reference on Personnel: payouts restrict personnel deletion
    personnel: Mapped[Personnel] = relationship("Personnel")


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------

class Invoice(TimestampMixin, Base):
    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = uuid_pk()
    invoice_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    gig_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("gigs.id", ondelete="SET NULL"), index=True
    )
    amount: Mapped[Decimal] = mapped_column(money(), nullable=False, default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(money(), nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(money(), nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date)
    paid_date: Mapped[Optional[date]] = mapped_column(Date)
    payment_method_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("payment_methods.id", ondelete="SET NULL")
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    gig: Mapped[Optional[Gig]] = relationship("Gig", back_populates="invoices")
    customer: Mapped[Customer] = relationship("Customer")
    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.sort_order",
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id: Mapped[uuid.UUID] = uuid_pk()
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(money(), nullable=False, default=Decimal("1"))
    rate: Mapped[Decimal] = mapped_column(money(), nullable=False)
    amount: Mapped[Decimal] = mapped_column(money(), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    invoice: Mapped[Invoice] = relationship("Invoice", back_populates="items")


class GigInvoice(TimestampMixin, Base):
    """Externally issued invoice attached to a gig (e.g. one created in Square)."""
    __tablename__ = "gig_invoices"

    id: Mapped[uuid.UUID] = uuid_pk()
    gig_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("gigs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    external_invoice_id: Mapped[str] = mapped_column(String(255), nullable=False)
    external_invoice_url: Mapped[Optional[str]] = mapped_column(String(1024))
    amount: Mapped[Optional[Decimal]] = mapped_column(money())
    status: Mapped[Optional[str]] = mapped_column(String(50))
    issue_date: Mapped[Optional[date]] = mapped_column(Date)
    due_date: Mapped[Optional[date]] = mapped_column(Date)
    square_invoice_uuid: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("square_invoices.id", ondelete="SET NULL")
    )

    gig: Mapped[Gig] = relationship("Gig", back_populates="external_invoices")
    square_invoice: Mapped[Optional["SquareInvoice"]] = relationship("SquareInvoice")
    payments: Mapped[List["GigInvoicePayment"]] = relationship(
        "GigInvoicePayment", back_populates="gig_invoice", cascade="all, delete-orphan"
    )

    __table_args__ = (UniqueConstraint("gig_id", "external_invoice_id", name="uq_gig_external_invoice"),)


class GigInvoicePayment(TimestampMixin, Base):
    __tablename__ = "gig_invoice_payments"

    id: Mapped[uuid.UUID] = uuid_pk()
    gig_invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("gig_invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    payment_amount: Mapped[Decimal] = mapped_column(money(), nullable=False)
    payment_method_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("payment_methods.id", ondelete="SET NULL")
    )
    payment_date: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    origin: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")  # manual|square
    notes: Mapped[Optional[str]] = mapped_column(Text)
    square_payment_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True)

    gig_invoice: Mapped[GigInvoice] = relationship("GigInvoice", back_populates="payments")


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

class FileRecord(TimestampMixin, Base):
    __tablename__ = "files"

    id: Mapped[uuid.UUID] = uuid_pk()
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_type: Mapped[Optional[str]] = mapped_column(String(255))
    file_size: Mapped[Optional[int]] = mapped_column(BigInteger)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(1024), nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text)
    document_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("document_types.id", ondelete="SET NULL")
    )
    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )

    gig_links: Mapped[List["GigFile"]] = relationship(
        "GigFile", back_populates="file", cascade="all, delete-orphan"
    )
    venue_links: Mapped[List["VenueFile"]] = relationship(
        "VenueFile", back_populates="file", cascade="all, delete-orphan"
    )
    personnel_links: Mapped[List["PersonnelFile"]] = relationship(
        "PersonnelFile", back_populates="file", cascade="all, delete-orphan"
    )


class GigFile(Base):
    __tablename__ = "gig_files"

    gig_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("gigs.id", ondelete="CASCADE"), primary_key=True
    )
    file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("files.id", ondelete="CASCADE"), primary_key=True
    )

    gig: Mapped[Gig] = relationship("Gig", back_populates="file_links")
    file: Mapped[FileRecord] = relationship("FileRecord", back_populates="gig_links")


class VenueFile(Base):
    __tablename__ = "venue_files"

    venue_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("venues.id", ondelete="CASCADE"), primary_key=True
    )
    file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("files.id", ondelete="CASCADE"), primary_key=True
    )

    venue: Mapped[Venue] = relationship("Venue", back_populates="file_links")
    file: Mapped[FileRecord] = relationship("FileRecord", back_populates="venue_links")


class PersonnelFile(Base):
    __tablename__ = "personnel_files"

    personnel_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("personnel.id", ondelete="CASCADE"), primary_key=True
    )
    file_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("files.id", ondelete="CASCADE"), primary_key=True
    )

    personnel: Mapped[Personnel] = relationship("Personnel", back_populates="file_links")
    file: Mapped[FileRecord] = relationship("FileRecord", back_populates="personnel_links")


# ---------------------------------------------------------------------------
# Square integration
# ---------------------------------------------------------------------------

class SquareConfig(TimestampMixin, Base):
    __tablename__ = "square_config"

    id: Mapped[uuid.UUID] = uuid_pk()
    access_token: Mapped[str] = mapped_column(Text, nullable=False)  # Fernet-encrypted
    environment: Mapped[str] = mapped_column(String(20), nullable=False, default="sandbox")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_tested: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    test_result: Mapped[Optional[str]] = mapped_column(Text)


class SquareCustomer(Base):
    __tablename__ = "square_customers"

    id: Mapped[uuid.UUID] = uuid_pk()
    square_customer_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)


class SquareInvoice(Base):
    __tablename__ = "square_invoices"

    id: Mapped[uuid.UUID] = uuid_pk()
    square_invoice_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    square_customer_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    full_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)


class SquarePayment(Base):
    __tablename__ = "square_payments"

    id: Mapped[uuid.UUID] = uuid_pk()
    square_payment_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    square_invoice_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    square_customer_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    full_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

class AuditLog(Base):
    """Append-only row-level change log; nothing references it."""
    __tablename__ = "audit_log"
    __audited__ = False

    id: Mapped[uuid.UUID] = uuid_pk()
    timestamp_utc: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(10), nullable=False)  # INSERT|UPDATE|DELETE
    table_name: Mapped[str] = mapped_column(String(100), nullable=False)
    record_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    record_key: Mapped[Optional[dict]] = mapped_column(JSON)
    actor_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    actor_role: Mapped[Optional[str]] = mapped_column(String(20))
    old_data: Mapped[Optional[dict]] = mapped_column(JSON)
    new_data: Mapped[Optional[dict]] = mapped_column(JSON)
    integrity_hash: Mapped[Optional[str]] = mapped_column(String(64))

    __table_args__ = (
        Index("idx_audit_table_record", "table_name", "record_id"),
    )
