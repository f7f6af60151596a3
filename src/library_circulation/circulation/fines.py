"""
Fine Ledger.

Two distinct fine values exist for a loan:

- the *accrued* fine of an open loan, recomputed from today on every read and
  never stored;
- the *finalized* fine, computed from the return date and written into
  ``loans.fine_amount`` exactly once, when the loan is returned.
"""

from datetime import date, datetime

from sqlalchemy.orm import Session

from ..database.loan_repository import LoanRepository
from ..database.session import atomic, safe_flush
from ..errors import AlreadyPaidError, NoFineOwedError
from ..models.loan import Loan
from ..models.settings import CirculationPolicy
from .base import CirculationService, Clock


def overdue_fine(due_date: date, as_of: date, fine_per_day: float) -> float:
    """``max(0, as_of - due_date)`` whole days times the daily rate, in cents."""
    days = max(0, (as_of - due_date).days)
    return round(days * fine_per_day, 2)


class FineLedger(CirculationService):
    def __init__(
        self,
        session: Session,
        policy: CirculationPolicy,
        clock: Clock = datetime.now,
        allocation_attempts: int = 3,
    ):
        super().__init__(session, policy, clock, allocation_attempts)
        self.loans = LoanRepository(session)

    def accrued_fine(self, loan: Loan, today: date | None = None) -> float:
        """Live fine for an open loan; a returned loan reports its finalized fine."""
        if not loan.is_open:
            return loan.fine_amount
        return overdue_fine(loan.due_date, today or self.today(), self.policy.fine_per_day)

    def finalize_fine(self, loan: Loan, return_date: datetime | date) -> float:
        """Fine owed for a loan returned on ``return_date``; the caller stores it."""
        if isinstance(return_date, datetime):
            return_date = return_date.date()
        return overdue_fine(loan.due_date, return_date, self.policy.fine_per_day)

    def pay_fine(self, loan_id: str) -> Loan:
        """
        Record payment of a returned loan's finalized fine.

        Raises:
            LoanNotFoundError: unknown loan
            NoFineOwedError: the loan is still open or its fine is zero
            AlreadyPaidError: payment was already recorded
        """
        with atomic(self.session, "pay fine"):
            row = self.loans.get_row(loan_id)
            if row.return_date is None:
                raise NoFineOwedError(loan_id, "the loan has not been returned yet")
            if row.fine_payment_date is not None:
                raise AlreadyPaidError(loan_id)
            if row.fine_amount <= 0:
                raise NoFineOwedError(loan_id)

            row.fine_payment_date = self.now()
            safe_flush(self.session, "pay fine")
            return Loan.model_validate(row, from_attributes=True)

    def unpaid_fines(self, member_id: str) -> list[Loan]:
        return self.loans.unpaid_for_member(member_id)

    def outstanding_total(self, member_id: str) -> float:
        return round(sum(loan.fine_amount for loan in self.unpaid_fines(member_id)), 2)
