"""
Reservation model.

A reservation is a hold request against a book, not a copy. It only holds a
physical copy while RESERVED, and that copy is recorded in
``assigned_copy_id`` so disapproval and cancellation release the right unit.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    RESERVED = "RESERVED"
    CANCELLED = "CANCELLED"
    FULFILLED = "FULFILLED"
    EXPIRED = "EXPIRED"


# Reservations that count toward quotas and block duplicates.
OPEN_RESERVATION_STATUSES = (ReservationStatus.PENDING, ReservationStatus.RESERVED)


class Reservation(BaseModel):
    id: str = Field(
        ..., pattern=r"^reservation_[a-zA-Z0-9]+$", examples=["reservation_b2e9d7a0c4f1"]
    )
    book_id: str
    member_id: str
    reservation_date: datetime
    expiry_date: date
    status: ReservationStatus = Field(default=ReservationStatus.PENDING)
    assigned_copy_id: str | None = None
    approved_by: str | None = None
    approved_date: datetime | None = None
    fulfilled_date: datetime | None = None
    loan_id: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def validate_copy_assignment(self) -> "Reservation":
        """Only a RESERVED reservation holds a copy."""
        if self.status == ReservationStatus.RESERVED and self.assigned_copy_id is None:
            raise ValueError("A RESERVED reservation must record its assigned copy")
        if self.status == ReservationStatus.PENDING and self.assigned_copy_id is not None:
            raise ValueError("A PENDING reservation cannot hold a copy")
        return self

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_RESERVATION_STATUSES

    def is_expired(self, today: date) -> bool:
        return self.is_open and self.expiry_date < today

    model_config = ConfigDict(from_attributes=True)
