"""
Loan tools: borrow, return, renew and fine payment.

Each handler validates its arguments with a Pydantic input model, runs one
engine operation in its own session, and turns the outcome into an MCP tool
result. Business refusals (suspended member, quota, no copy, ...) come back
as ``isError`` results with the engine's error code; they are logged at
INFO because they are normal outcomes, not faults.
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.session import get_session
from ..errors import CirculationError
from ..models.copy import CopyCondition
from .base import build_engine, invalid_input, rejected, success_response, unexpected

BOOK_ID = r"^book_[a-zA-Z0-9]+$"
MEMBER_ID = r"^member_[a-zA-Z0-9]+$"
LOAN_ID = r"^loan_[a-zA-Z0-9]+$"


# =============================================================================
# BORROW
# =============================================================================


class BorrowBookInput(BaseModel):
    """Input schema for the borrow_book tool."""

    book_id: str = Field(..., description="Book to borrow a copy of", pattern=BOOK_ID)
    member_id: str = Field(..., description="Borrowing member", pattern=MEMBER_ID)
    loan_period_days: int | None = Field(
        default=None,
        description="Loan length in days; the library default when omitted",
        ge=1,
        le=365,
    )
    librarian_id: str | None = Field(
        default=None, description="Librarian authorizing the loan", max_length=50
    )
    notes: str | None = Field(default=None, max_length=500)


async def borrow_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Lend the first available copy of a book to a member."""
    try:
        params = BorrowBookInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("borrow_book", e)

    try:
        with get_session() as session:
            engine = build_engine(session)
            loan = engine.borrow(
                params.book_id,
                params.member_id,
                loan_period_days=params.loan_period_days,
                librarian_id=params.librarian_id,
                notes=params.notes,
            )
    except (CirculationError, ValueError) as e:
        return rejected("borrow_book", e)
    except Exception as e:
        return unexpected("borrow_book", e)

    message = (
        f"Lent copy {loan.copy_id} to member {loan.member_id}. "
        f"Due date: {loan.due_date.strftime('%B %d, %Y')}"
    )
    return success_response(message, {"loan": loan.model_dump(mode="json")})


# =============================================================================
# RETURN
# =============================================================================


class ReturnLoanInput(BaseModel):
    """Input schema for the return_loan tool."""

    loan_id: str = Field(..., description="Loan being closed", pattern=LOAN_ID)
    return_date: date | None = Field(
        default=None, description="Date the copy came back; today when omitted"
    )
    condition: CopyCondition | None = Field(
        default=None, description="Condition of the copy as returned"
    )


async def return_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Close a loan, finalize its fine and release the copy."""
    try:
        params = ReturnLoanInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("return_loan", e)

    try:
        with get_session() as session:
            loan = build_engine(session).return_loan(
                params.loan_id, params.return_date, params.condition
            )
    except (CirculationError, ValueError) as e:
        return rejected("return_loan", e)
    except Exception as e:
        return unexpected("return_loan", e)

    message = f"Loan {loan.id} returned."
    if loan.fine_amount > 0:
        message += f" Fine due: ${loan.fine_amount:.2f}"
    else:
        message += " No fine due."
    return success_response(message, {"loan": loan.model_dump(mode="json")})


# =============================================================================
# RENEW
# =============================================================================


class RenewLoanInput(BaseModel):
    """Input schema for the renew_loan tool."""

    loan_id: str = Field(..., pattern=LOAN_ID)
    new_due_date: date | None = Field(
        default=None,
        description="Requested due date; one loan period past the current due date when omitted",
    )


async def renew_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = RenewLoanInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("renew_loan", e)

    try:
        with get_session() as session:
            loan = build_engine(session).renew(params.loan_id, params.new_due_date)
    except (CirculationError, ValueError) as e:
        return rejected("renew_loan", e)
    except Exception as e:
        return unexpected("renew_loan", e)

    message = (
        f"Loan {loan.id} renewed until {loan.due_date.strftime('%B %d, %Y')} "
        f"(renewal {loan.renewal_count})"
    )
    return success_response(message, {"loan": loan.model_dump(mode="json")})


# =============================================================================
# PAY FINE
# =============================================================================


class PayFineInput(BaseModel):
    """Input schema for the pay_fine tool."""

    loan_id: str = Field(..., pattern=LOAN_ID)


async def pay_fine_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = PayFineInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("pay_fine", e)

    try:
        with get_session() as session:
            loan = build_engine(session).pay_fine(params.loan_id)
    except (CirculationError, ValueError) as e:
        return rejected("pay_fine", e)
    except Exception as e:
        return unexpected("pay_fine", e)

    return success_response(
        f"Recorded payment of ${loan.fine_amount:.2f} for loan {loan.id}",
        {"loan": loan.model_dump(mode="json")},
    )


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

borrow_book = {
    "name": "borrow_book",
    "description": (
        "Lend a book to a member. Picks the lowest-numbered available copy. Refused if the "
        "member is not active, already holds the maximum number of loans, or no copy is free."
    ),
    "inputSchema": BorrowBookInput.model_json_schema(),
    "handler": borrow_book_handler,
}

return_loan = {
    "name": "return_loan",
    "description": (
        "Return a borrowed copy. Freezes the overdue fine (days late times the daily rate) "
        "and makes the copy available again."
    ),
    "inputSchema": ReturnLoanInput.model_json_schema(),
    "handler": return_loan_handler,
}

renew_loan = {
    "name": "renew_loan",
    "description": (
        "Extend an open loan's due date. Refused when the loan is overdue or has reached "
        "the renewal limit."
    ),
    "inputSchema": RenewLoanInput.model_json_schema(),
    "handler": renew_loan_handler,
}

pay_fine = {
    "name": "pay_fine",
    "description": "Record that the finalized fine on a returned loan has been paid.",
    "inputSchema": PayFineInput.model_json_schema(),
    "handler": pay_fine_handler,
}
