"""
CirculationEngine: the single entry point the outer layers call.

The engine owns no state of its own. It binds one session, one policy
snapshot and one clock to the lifecycle services and exposes their
operations plus the read queries the UI needs. Construct one per request:

```python
with session_scope() as session:
    engine = CirculationEngine(session)
    loan = engine.borrow(book_id, member_id)
```
"""

from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from ..config import get_config
from ..database.book_repository import BookRepository
from ..database.copy_repository import CopyRepository
from ..database.loan_repository import LoanRepository
from ..database.member_repository import MemberRepository
from ..database.reservation_repository import ReservationRepository
from ..database.session import atomic
from ..database.settings_repository import SettingsRepository
from ..errors import BookNotFoundError, MemberNotFoundError
from ..models.copy import BookCopy, CopyCondition, CopyStatus, CopyStatusSummary, RetirementResult
from ..models.loan import Loan, LoanView
from ..models.reservation import Reservation
from ..models.settings import CirculationPolicy
from .base import Clock
from .fines import FineLedger
from .loans import LoanLifecycle
from .reservations import ReservationLifecycle


class CirculationEngine:
    """
    Facade over the circulation services for one session.

    Args:
        session: Session every operation runs in; each write commits on its own
        policy: Fixed policy values; read from ``library_settings`` when omitted
        clock: Source of "now"; ``datetime.now`` when omitted
        allocation_attempts: Retry budget for borrow/approve; from config when omitted
    """

    def __init__(
        self,
        session: Session,
        policy: CirculationPolicy | None = None,
        clock: Clock | None = None,
        allocation_attempts: int | None = None,
    ):
        self.session = session
        self.policy = policy or SettingsRepository(session).get_policy()
        self.clock = clock or datetime.now
        attempts = allocation_attempts or get_config().allocation_attempts

        self.ledger = FineLedger(session, self.policy, self.clock, attempts)
        self.lending = LoanLifecycle(session, self.policy, self.clock, attempts)
        self.holds = ReservationLifecycle(session, self.policy, self.clock, attempts)

        self.books = BookRepository(session)
        self.members = MemberRepository(session)
        self.copies = CopyRepository(session)
        self.loans = LoanRepository(session)
        self.reservations = ReservationRepository(session)

    def today(self) -> date:
        return self.clock().date()

    # -------------------------------------------------------------------------
    # Loans
    # -------------------------------------------------------------------------

    def borrow(
        self,
        book_id: str,
        member_id: str,
        loan_period_days: int | None = None,
        librarian_id: str | None = None,
        notes: str | None = None,
    ) -> Loan:
        return self.lending.borrow(book_id, member_id, loan_period_days, librarian_id, notes)

    def return_loan(
        self,
        loan_id: str,
        return_date: datetime | date | None = None,
        condition: CopyCondition | None = None,
    ) -> Loan:
        return self.lending.return_loan(loan_id, return_date, condition)

    def renew(self, loan_id: str, new_due_date: date | None = None) -> Loan:
        return self.lending.renew(loan_id, new_due_date)

    # -------------------------------------------------------------------------
    # Reservations
    # -------------------------------------------------------------------------

    def reserve(
        self,
        book_id: str,
        member_id: str,
        expiry_days: int | None = None,
        notes: str | None = None,
    ) -> Reservation:
        return self.holds.reserve(book_id, member_id, expiry_days, notes)

    def approve(self, reservation_id: str, librarian_id: str | None = None) -> Reservation:
        return self.holds.approve(reservation_id, librarian_id)

    def disapprove(self, reservation_id: str) -> Reservation:
        return self.holds.disapprove(reservation_id)

    def cancel(self, reservation_id: str) -> Reservation:
        return self.holds.cancel(reservation_id)

    def fulfill(
        self,
        reservation_id: str,
        loan_period_days: int | None = None,
        librarian_id: str | None = None,
    ) -> Reservation:
        return self.holds.fulfill(reservation_id, loan_period_days, librarian_id)

    def expire_reservations(self, today: date | None = None) -> list[str]:
        return self.holds.expire_stale(today)

    # -------------------------------------------------------------------------
    # Fines
    # -------------------------------------------------------------------------

    def pay_fine(self, loan_id: str) -> Loan:
        return self.ledger.pay_fine(loan_id)

    def accrued_fine(self, loan_id: str) -> float:
        return self.ledger.accrued_fine(self.loans.get(loan_id), self.today())

    def unpaid_fines(self, member_id: str) -> list[Loan]:
        self._require_member(member_id)
        return self.ledger.unpaid_fines(member_id)

    def outstanding_total(self, member_id: str) -> float:
        self._require_member(member_id)
        return self.ledger.outstanding_total(member_id)

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    def retire_available_copies(self, book_id: str) -> RetirementResult:
        with atomic(self.session, "retire copies"):
            return self.copies.retire_available_copies(book_id)

    def add_copy(self, book_id: str, location: str | None = None) -> BookCopy:
        with atomic(self.session, "add copy"):
            return self.copies.add_copy(book_id, location, self.today())

    def set_copy_status(self, copy_id: str, status: CopyStatus) -> BookCopy:
        with atomic(self.session, "set copy status"):
            return self.copies.set_manual_status(copy_id, status)

    def update_copy_condition(self, copy_id: str, condition: CopyCondition) -> BookCopy:
        with atomic(self.session, "update copy condition"):
            return self.copies.update_condition(copy_id, condition)

    # -------------------------------------------------------------------------
    # Read queries
    # -------------------------------------------------------------------------

    def view(self, loan: Loan) -> LoanView:
        """Attach today's classification and fine to a loan."""
        today = self.today()
        return LoanView(
            loan=loan,
            state=loan.state(today),
            days_overdue=loan.days_overdue(today),
            fine=self.ledger.accrued_fine(loan, today),
        )

    def open_loans(self, member_id: str) -> list[LoanView]:
        self._require_member(member_id)
        return [self.view(loan) for loan in self.loans.open_for_member(member_id)]

    def member_loan_history(self, member_id: str, days_back: int = 0) -> list[LoanView]:
        """
        Every loan the member has taken, open or returned, newest first.

        Args:
            member_id: Member whose loans to list
            days_back: Only loans made in the last ``days_back`` days; 0 means all
        """
        if days_back < 0:
            raise ValueError("days_back cannot be negative")
        self._require_member(member_id)
        since = None
        if days_back:
            since = datetime.combine(self.today() - timedelta(days=days_back), time())
        return [self.view(loan) for loan in self.loans.history_for_member(member_id, since)]

    def open_reservations(self, member_id: str) -> list[Reservation]:
        self._require_member(member_id)
        return self.reservations.open_for_member(member_id)

    def book_copies(self, book_id: str) -> list[BookCopy]:
        self._require_book(book_id)
        return self.copies.list_copies(book_id)

    def copy_summary(self, book_id: str) -> CopyStatusSummary:
        self._require_book(book_id)
        return self.copies.status_counts(book_id)

    def book_loans(self, book_id: str, open_only: bool = True) -> list[LoanView]:
        self._require_book(book_id)
        return [self.view(loan) for loan in self.loans.for_book(book_id, open_only)]

    def book_reservations(self, book_id: str, open_only: bool = True) -> list[Reservation]:
        self._require_book(book_id)
        return self.reservations.for_book(book_id, open_only)

    def overdue_loans(self) -> list[LoanView]:
        return [self.view(loan) for loan in self.loans.overdue(self.today())]

    def _require_member(self, member_id: str) -> None:
        if not self.members.exists(member_id):
            raise MemberNotFoundError(member_id)

    def _require_book(self, book_id: str) -> None:
        if not self.books.book_exists(book_id):
            raise BookNotFoundError(book_id)
