"""Pydantic models for the circulation engine."""

from .book import Book, BookCreate
from .copy import (
    ALLOWED_TRANSITIONS,
    DEFAULT_LOCATION,
    MANUAL_STATUSES,
    BookCopy,
    CopyCondition,
    CopyStatus,
    CopyStatusSummary,
    RetirementResult,
    is_allowed_transition,
)
from .loan import Loan, LoanState, LoanView
from .member import Member, MemberCreate, MembershipStatus
from .reservation import OPEN_RESERVATION_STATUSES, Reservation, ReservationStatus
from .settings import CirculationPolicy, SettingKey

__all__ = [
    "ALLOWED_TRANSITIONS",
    "DEFAULT_LOCATION",
    "MANUAL_STATUSES",
    "OPEN_RESERVATION_STATUSES",
    "Book",
    "BookCopy",
    "BookCreate",
    "CirculationPolicy",
    "CopyCondition",
    "CopyStatus",
    "CopyStatusSummary",
    "Loan",
    "LoanState",
    "LoanView",
    "Member",
    "MemberCreate",
    "MembershipStatus",
    "Reservation",
    "ReservationStatus",
    "RetirementResult",
    "SettingKey",
    "is_allowed_transition",
]
