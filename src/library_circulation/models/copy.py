"""
Copy models: the physical units of a book and their status state machine.

A copy's ``status`` is the single source of truth for whether that unit can
be lent right now. Status only changes along the edges listed in
``ALLOWED_TRANSITIONS``; the Copy Inventory enforces them with a
compare-and-swap update so that two requests can never both take the same
AVAILABLE copy.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CopyStatus(str, Enum):
    """Status of a physical copy."""

    AVAILABLE = "AVAILABLE"
    BORROWED = "BORROWED"
    RESERVED = "RESERVED"
    IN_REPAIR = "IN_REPAIR"
    DAMAGED = "DAMAGED"
    LOST = "LOST"
    RETIRED = "RETIRED"


class CopyCondition(str, Enum):
    """Physical condition recorded by librarians."""

    NEW = "NEW"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    DAMAGED = "DAMAGED"


# Statuses a librarian may set by hand; only reachable from (and back to) AVAILABLE.
MANUAL_STATUSES = frozenset({CopyStatus.IN_REPAIR, CopyStatus.DAMAGED, CopyStatus.LOST})

ALLOWED_TRANSITIONS: dict[CopyStatus, frozenset[CopyStatus]] = {
    CopyStatus.AVAILABLE: frozenset(
        {CopyStatus.BORROWED, CopyStatus.RESERVED, CopyStatus.RETIRED} | MANUAL_STATUSES
    ),
    CopyStatus.BORROWED: frozenset({CopyStatus.AVAILABLE}),
    CopyStatus.RESERVED: frozenset({CopyStatus.AVAILABLE, CopyStatus.BORROWED}),
    CopyStatus.IN_REPAIR: frozenset({CopyStatus.AVAILABLE}),
    CopyStatus.DAMAGED: frozenset({CopyStatus.AVAILABLE}),
    CopyStatus.LOST: frozenset({CopyStatus.AVAILABLE}),
    CopyStatus.RETIRED: frozenset(),
}

DEFAULT_LOCATION = "Main Library"


def is_allowed_transition(from_status: CopyStatus, to_status: CopyStatus) -> bool:
    """Check whether ``from_status -> to_status`` is an edge of the copy state machine."""
    return to_status in ALLOWED_TRANSITIONS.get(CopyStatus(from_status), frozenset())


class BookCopy(BaseModel):
    """A single physical copy of a book."""

    id: str = Field(..., pattern=r"^copy_[a-zA-Z0-9]+$", examples=["copy_3f2a9c1d0b7e"])
    book_id: str = Field(..., description="Owning book")
    copy_number: int = Field(..., ge=1, description="Sequence number within the book, from 1")
    status: CopyStatus = Field(default=CopyStatus.AVAILABLE)
    condition: CopyCondition = Field(default=CopyCondition.GOOD)
    location: str = Field(default=DEFAULT_LOCATION, max_length=200)
    acquisition_date: date
    last_borrowed_date: datetime | None = None
    notes: str | None = None

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "copy_3f2a9c1d0b7e",
                "book_id": "book_91c04e7d2a11",
                "copy_number": 2,
                "status": "AVAILABLE",
                "condition": "GOOD",
                "location": "Main Library",
                "acquisition_date": "2024-03-01",
            }
        },
    )


class RetirementResult(BaseModel):
    """Outcome of retiring every AVAILABLE copy of a book."""

    book_id: str
    retired_count: int = Field(..., ge=0)
    retired_copy_ids: list[str] = Field(default_factory=list)
    unavailable_copy_ids: list[str] = Field(
        default_factory=list,
        description="Copies left untouched because they were not AVAILABLE",
    )


class CopyStatusSummary(BaseModel):
    """Per-status copy counts for one book."""

    book_id: str
    total: int
    counts: dict[CopyStatus, int]

    @property
    def available(self) -> int:
        return self.counts.get(CopyStatus.AVAILABLE, 0)
