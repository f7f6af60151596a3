"""
Loan model.

A loan is OPEN while ``return_date`` is null and RETURNED afterwards; there
are no other stored states. ACTIVE and OVERDUE are display classifications
derived from the due date on a given day.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LoanState(str, Enum):
    """Display classification of a loan on a given day."""

    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    RETURNED = "RETURNED"


class Loan(BaseModel):
    """One lending event of one copy to one member."""

    id: str = Field(..., pattern=r"^loan_[a-zA-Z0-9]+$", examples=["loan_0c7d8e3b41f2"])
    copy_id: str
    member_id: str
    librarian_id: str | None = Field(default=None, description="Who authorized the loan")
    loan_date: datetime
    due_date: date
    return_date: datetime | None = None
    fine_amount: float = Field(default=0.0, ge=0, description="Frozen at return; 0 while open")
    fine_payment_date: datetime | None = None
    renewal_count: int = Field(default=0, ge=0)
    notes: str | None = None

    @property
    def is_open(self) -> bool:
        return self.return_date is None

    @property
    def fine_paid(self) -> bool:
        return self.fine_payment_date is not None

    def days_overdue(self, today: date) -> int:
        """Whole days past due as of ``today`` (or as of the return date once closed)."""
        end = self.return_date.date() if self.return_date is not None else today
        return max(0, (end - self.due_date).days)

    def state(self, today: date) -> LoanState:
        if not self.is_open:
            return LoanState.RETURNED
        if self.due_date < today:
            return LoanState.OVERDUE
        return LoanState.ACTIVE

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "loan_0c7d8e3b41f2",
                "copy_id": "copy_3f2a9c1d0b7e",
                "member_id": "member_5be1f0a2c9d4",
                "loan_date": "2024-03-01T10:30:00",
                "due_date": "2024-03-15",
                "return_date": None,
                "fine_amount": 0.0,
                "renewal_count": 0,
            }
        },
    )


class LoanView(BaseModel):
    """A loan as shown to callers, with its live classification and fine."""

    loan: Loan
    state: LoanState
    days_overdue: int
    fine: float = Field(..., description="Accrued fine if open, finalized fine if returned")
