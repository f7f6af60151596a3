"""
Loan Lifecycle: borrow, return and renew.

A loan goes OPEN -> RETURNED and nothing else. Borrowing writes the loan row
and moves the copy AVAILABLE -> BORROWED in the same transaction; if the
copy was taken by a concurrent request in between, the whole attempt is
rolled back and re-run from the admission checks.
"""

from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from ..database.book_repository import BookRepository
from ..database.copy_repository import CopyRepository
from ..database.loan_repository import LoanRepository
from ..database.session import atomic, safe_flush
from ..errors import (
    AlreadyReturnedError,
    BookNotFoundError,
    ConflictError,
    DuplicateError,
    InvalidReturnDateError,
    NoCopyAvailableError,
    RenewalDeniedError,
)
from ..models.copy import CopyCondition, CopyStatus
from ..models.loan import Loan
from ..models.settings import CirculationPolicy
from .base import CirculationService, Clock
from .fines import FineLedger
from .membership import MembershipGate


class LoanLifecycle(CirculationService):
    def __init__(
        self,
        session: Session,
        policy: CirculationPolicy,
        clock: Clock = datetime.now,
        allocation_attempts: int = 3,
    ):
        super().__init__(session, policy, clock, allocation_attempts)
        self.gate = MembershipGate(session, policy)
        self.ledger = FineLedger(session, policy, clock, allocation_attempts)
        self.books = BookRepository(session)
        self.copies = CopyRepository(session)
        self.loans = LoanRepository(session)

    def loan_period(self, loan_period_days: int | None) -> int:
        period = self.policy.loan_period_days if loan_period_days is None else loan_period_days
        if period < 1:
            raise ValueError("Loan period must be at least one day")
        return period

    def borrow(
        self,
        book_id: str,
        member_id: str,
        loan_period_days: int | None = None,
        librarian_id: str | None = None,
        notes: str | None = None,
    ) -> Loan:
        """
        Lend the lowest-numbered AVAILABLE copy of a book to a member.

        Checks run in order and stop at the first failure: member exists and
        is ACTIVE, member is under the loan quota, book exists, a copy is
        available.

        Raises:
            MemberNotFoundError, MemberSuspendedError, QuotaExceededError,
            BookNotFoundError, NoCopyAvailableError
            ConflictError: every attempt lost its copy to a concurrent request
        """
        period = self.loan_period(loan_period_days)
        return self.run_allocation(
            "borrow",
            lambda: self._borrow_once(book_id, member_id, period, librarian_id, notes),
        )

    def _borrow_once(
        self,
        book_id: str,
        member_id: str,
        period: int,
        librarian_id: str | None,
        notes: str | None,
    ) -> Loan:
        self.gate.admit_borrower(member_id)
        if not self.books.book_exists(book_id):
            raise BookNotFoundError(book_id)

        copy = self.copies.find_available_copy(book_id)
        if copy is None:
            raise NoCopyAvailableError(book_id)

        now = self.now()
        loan = self.open_loan(copy.id, member_id, now, period, librarian_id, notes)
        self.gate.confirm_loan_quota(member_id)
        self.copies.transition_status(copy.id, CopyStatus.AVAILABLE, CopyStatus.BORROWED)
        self.copies.record_borrowed(copy.id, now)
        return loan

    def open_loan(
        self,
        copy_id: str,
        member_id: str,
        now: datetime,
        period: int,
        librarian_id: str | None = None,
        notes: str | None = None,
    ) -> Loan:
        """Insert the loan row; an existing open loan on the copy is a lost race."""
        try:
            row = self.loans.create(
                copy_id=copy_id,
                member_id=member_id,
                loan_date=now,
                due_date=now.date() + timedelta(days=period),
                librarian_id=librarian_id,
                notes=notes,
            )
        except DuplicateError as e:
            raise ConflictError(copy_id, CopyStatus.AVAILABLE.value, CopyStatus.BORROWED.value) from e
        return Loan.model_validate(row, from_attributes=True)

    def return_loan(
        self,
        loan_id: str,
        return_date: datetime | date | None = None,
        condition: CopyCondition | None = None,
    ) -> Loan:
        """
        Close a loan, freeze its fine and put the copy back on the shelf.

        Raises:
            LoanNotFoundError: unknown loan
            AlreadyReturnedError: the loan was already closed; nothing changes
            InvalidReturnDateError: ``return_date`` is before the loan date
        """
        with atomic(self.session, "return loan"):
            row = self.loans.get_row(loan_id)
            if row.return_date is not None:
                raise AlreadyReturnedError(loan_id)

            when = _as_datetime(return_date) if return_date is not None else self.now()
            if when.date() < row.loan_date.date():
                raise InvalidReturnDateError(
                    loan_id, when.date().isoformat(), row.loan_date.date().isoformat()
                )

            loan = Loan.model_validate(row, from_attributes=True)
            row.fine_amount = self.ledger.finalize_fine(loan, when)
            row.return_date = when
            safe_flush(self.session, "return loan")

            self.copies.transition_status(row.copy_id, CopyStatus.BORROWED, CopyStatus.AVAILABLE)
            if condition is not None:
                self.copies.update_condition(row.copy_id, condition)

            return Loan.model_validate(row, from_attributes=True)

    def renew(self, loan_id: str, new_due_date: date | None = None) -> Loan:
        """
        Extend an open loan's due date.

        Without ``new_due_date`` the loan is extended by one loan period from
        its current due date.

        Raises:
            LoanNotFoundError: unknown loan
            AlreadyReturnedError: the loan is closed
            RenewalDeniedError: overdue beyond the grace period, renewal limit
                reached, or the new due date is not later than the current one
        """
        with atomic(self.session, "renew loan"):
            row = self.loans.get_row(loan_id)
            if row.return_date is not None:
                raise AlreadyReturnedError(loan_id)

            days_overdue = (self.today() - row.due_date).days
            if days_overdue > self.policy.renewal_grace_days:
                raise RenewalDeniedError(loan_id, f"the loan is {days_overdue} days overdue")
            if row.renewal_count >= self.policy.max_renewal_count:
                raise RenewalDeniedError(
                    loan_id, f"renewal limit ({self.policy.max_renewal_count}) reached"
                )

            due = new_due_date or row.due_date + timedelta(days=self.policy.loan_period_days)
            if due <= row.due_date:
                raise RenewalDeniedError(loan_id, "the new due date must be after the current one")

            row.due_date = due
            row.renewal_count += 1
            safe_flush(self.session, "renew loan")
            return Loan.model_validate(row, from_attributes=True)


def _as_datetime(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time())
