"""
SQLAlchemy schema for the circulation engine.

Tables mirror the Pydantic models in ``library_circulation.models``. Beyond
the engine's compare-and-swap on copy status, three partial unique indexes
guard the circulation invariants at the store level:

- at most one open loan (``return_date IS NULL``) per copy,
- at most one open reservation (PENDING or RESERVED) per member and book,
- a copy is held by at most one RESERVED reservation.
"""

import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from ..models.copy import DEFAULT_LOCATION, CopyCondition, CopyStatus
from ..models.member import MembershipStatus
from ..models.reservation import ReservationStatus
from ..models.settings import SettingKey

Base = declarative_base()


def new_id(prefix: str) -> str:
    """Generate a prefixed identifier such as ``loan_0c7d8e3b41f2``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class Book(Base):
    """Catalog titles. Only existence and copies matter to circulation."""

    __tablename__ = "books"

    id = Column(String(50), primary_key=True)
    title = Column(String(500), nullable=False)
    isbn = Column(String(13), nullable=True, unique=True)
    authors = Column(String(500), nullable=True)
    publication_year = Column(Integer, nullable=True)
    category = Column(String(100), nullable=True)
    publisher = Column(String(200), nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())

    copies = relationship("BookCopy", back_populates="book", order_by="BookCopy.copy_number")
    reservations = relationship("Reservation", back_populates="book")

    __table_args__ = (
        Index("idx_book_title", "title"),
        CheckConstraint("id LIKE 'book_%'", name="check_book_id_format"),
    )

    def __repr__(self) -> str:
        return f"<Book(id='{self.id}', title='{self.title}')>"


class Member(Base):
    """Circulation identity of a library member."""

    __tablename__ = "members"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    membership_status = Column(
        Enum(MembershipStatus), nullable=False, default=MembershipStatus.ACTIVE
    )
    membership_date = Column(Date, nullable=False)
    created_at = Column(DateTime, nullable=False, default=func.now())

    loans = relationship("Loan", back_populates="member")
    reservations = relationship("Reservation", back_populates="member")

    __table_args__ = (
        Index("idx_member_status", "membership_status"),
        CheckConstraint("id LIKE 'member_%'", name="check_member_id_format"),
    )

    def __repr__(self) -> str:
        return f"<Member(id='{self.id}', status='{self.membership_status}')>"


class BookCopy(Base):
    """
    Physical copies. ``status`` changes only through
    ``CopyRepository.transition_status``.
    """

    __tablename__ = "book_copies"

    id = Column(String(50), primary_key=True)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    copy_number = Column(Integer, nullable=False)
    status = Column(Enum(CopyStatus), nullable=False, default=CopyStatus.AVAILABLE)
    condition = Column(Enum(CopyCondition), nullable=False, default=CopyCondition.GOOD)
    location = Column(String(200), nullable=False, default=DEFAULT_LOCATION)
    acquisition_date = Column(Date, nullable=False)
    last_borrowed_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    book = relationship("Book", back_populates="copies")
    loans = relationship("Loan", back_populates="copy")

    __table_args__ = (
        UniqueConstraint("book_id", "copy_number", name="uq_copy_book_sequence"),
        Index("idx_copy_book_status", "book_id", "status"),
        CheckConstraint("id LIKE 'copy_%'", name="check_copy_id_format"),
        CheckConstraint("copy_number >= 1", name="check_copy_number_positive"),
    )

    def __repr__(self) -> str:
        return f"<BookCopy(id='{self.id}', book='{self.book_id}', status='{self.status}')>"


class Loan(Base):
    """Loans. Open while ``return_date`` is null."""

    __tablename__ = "loans"

    id = Column(String(50), primary_key=True)
    copy_id = Column(String(50), ForeignKey("book_copies.id"), nullable=False)
    member_id = Column(String(50), ForeignKey("members.id"), nullable=False)
    librarian_id = Column(String(50), nullable=True)
    loan_date = Column(DateTime, nullable=False)
    due_date = Column(Date, nullable=False)
    return_date = Column(DateTime, nullable=True)
    fine_amount = Column(Float, nullable=False, default=0.0)
    fine_payment_date = Column(DateTime, nullable=True)
    renewal_count = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    copy = relationship("BookCopy", back_populates="loans")
    member = relationship("Member", back_populates="loans")

    __table_args__ = (
        Index("idx_loan_member", "member_id"),
        Index("idx_loan_due_date", "due_date"),
        Index(
            "uq_loan_open_copy",
            "copy_id",
            unique=True,
            sqlite_where=text("return_date IS NULL"),
            postgresql_where=text("return_date IS NULL"),
        ),
        CheckConstraint("id LIKE 'loan_%'", name="check_loan_id_format"),
        CheckConstraint("fine_amount >= 0", name="check_loan_fine_non_negative"),
        CheckConstraint("renewal_count >= 0", name="check_loan_renewal_non_negative"),
        CheckConstraint(
            "fine_payment_date IS NULL OR return_date IS NOT NULL",
            name="check_loan_paid_only_when_returned",
        ),
    )

    def __repr__(self) -> str:
        return f"<Loan(id='{self.id}', copy='{self.copy_id}', member='{self.member_id}')>"


class Reservation(Base):
    """Hold requests against a book."""

    __tablename__ = "reservations"

    id = Column(String(50), primary_key=True)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    member_id = Column(String(50), ForeignKey("members.id"), nullable=False)
    reservation_date = Column(DateTime, nullable=False)
    expiry_date = Column(Date, nullable=False)
    status = Column(
        Enum(ReservationStatus), nullable=False, default=ReservationStatus.PENDING
    )
    assigned_copy_id = Column(String(50), ForeignKey("book_copies.id"), nullable=True)
    approved_by = Column(String(50), nullable=True)
    approved_date = Column(DateTime, nullable=True)
    fulfilled_date = Column(DateTime, nullable=True)
    loan_id = Column(String(50), ForeignKey("loans.id"), nullable=True)
    notes = Column(Text, nullable=True)

    book = relationship("Book", back_populates="reservations")
    member = relationship("Member", back_populates="reservations")

    __table_args__ = (
        Index("idx_reservation_member", "member_id"),
        Index("idx_reservation_book_status", "book_id", "status"),
        Index(
            "uq_reservation_open_member_book",
            "member_id",
            "book_id",
            unique=True,
            sqlite_where=text("status IN ('PENDING', 'RESERVED')"),
            postgresql_where=text("status IN ('PENDING', 'RESERVED')"),
        ),
        Index(
            "uq_reservation_held_copy",
            "assigned_copy_id",
            unique=True,
            sqlite_where=text("status = 'RESERVED'"),
            postgresql_where=text("status = 'RESERVED'"),
        ),
        CheckConstraint("id LIKE 'reservation_%'", name="check_reservation_id_format"),
    )

    def __repr__(self) -> str:
        return f"<Reservation(id='{self.id}', book='{self.book_id}', status='{self.status}')>"


class LibrarySetting(Base):
    """Key/value policy store written by administrators, read by the engine."""

    __tablename__ = "library_settings"

    key = Column(Enum(SettingKey), primary_key=True)
    value = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<LibrarySetting(key='{self.key}', value='{self.value}')>"
