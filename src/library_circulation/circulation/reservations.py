"""
Reservation Lifecycle.

    PENDING --approve--> RESERVED --fulfill--> FULFILLED
       ^                    |
       +----disapprove------+
    PENDING | RESERVED --cancel--> CANCELLED
    PENDING | RESERVED --expire_stale--> EXPIRED

A PENDING reservation is only a request and never holds a copy. Approval
takes the lowest-numbered AVAILABLE copy into RESERVED and records it on the
reservation; every later transition releases or lends that recorded copy.

Reservation status writes are compare-and-swap updates like the copy ones:
a reservation that another request moved after it was read is reported as
``InvalidReservationStateError`` and the whole operation rolls back.
"""

from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from ..database.book_repository import BookRepository
from ..database.copy_repository import CopyRepository
from ..database.reservation_repository import ReservationRepository
from ..database.session import atomic
from ..errors import (
    BookNotFoundError,
    ConflictError,
    DuplicateError,
    DuplicateReservationError,
    InvalidReservationStateError,
    NoCopyAvailableError,
    ReservationNotFoundError,
)
from ..models.copy import CopyStatus
from ..models.reservation import Reservation, ReservationStatus
from ..models.settings import CirculationPolicy
from .base import CirculationService, Clock
from .loans import LoanLifecycle
from .membership import MembershipGate


class ReservationLifecycle(CirculationService):
    def __init__(
        self,
        session: Session,
        policy: CirculationPolicy,
        clock: Clock = datetime.now,
        allocation_attempts: int = 3,
    ):
        super().__init__(session, policy, clock, allocation_attempts)
        self.gate = MembershipGate(session, policy)
        self.lending = LoanLifecycle(session, policy, clock, allocation_attempts)
        self.books = BookRepository(session)
        self.copies = CopyRepository(session)
        self.reservations = ReservationRepository(session)

    def _to_model(self, row) -> Reservation:
        return Reservation.model_validate(row, from_attributes=True)

    def _require(self, reservation_id: str, action: str, *allowed: ReservationStatus):
        row = self.reservations.get_row(reservation_id)
        if row.status not in allowed:
            raise InvalidReservationStateError(reservation_id, row.status.value, action)
        return row

    def reserve(
        self,
        book_id: str,
        member_id: str,
        expiry_days: int | None = None,
        notes: str | None = None,
    ) -> Reservation:
        """
        Place a PENDING hold request. No copy is touched.

        Raises:
            MemberNotFoundError, MemberSuspendedError, QuotaExceededError,
            BookNotFoundError, DuplicateReservationError
        """
        days = self.policy.reservation_expiry_days if expiry_days is None else expiry_days
        if days < 1:
            raise ValueError("Reservation expiry must be at least one day")

        with atomic(self.session, "reserve"):
            self.gate.admit_reserver(member_id)
            if not self.books.book_exists(book_id):
                raise BookNotFoundError(book_id)
            if self.reservations.has_open(member_id, book_id):
                raise DuplicateReservationError(member_id, book_id)

            now = self.now()
            try:
                row = self.reservations.create(
                    book_id=book_id,
                    member_id=member_id,
                    reservation_date=now,
                    expiry_date=now.date() + timedelta(days=days),
                    notes=notes,
                )
            except DuplicateError as e:
                raise DuplicateReservationError(member_id, book_id) from e
            self.gate.confirm_reservation_quota(member_id)
            return self._to_model(row)


    def approve(self, reservation_id: str, librarian_id: str | None = None) -> Reservation:
        """
        Hold a copy for a PENDING reservation.

        Raises:
            ReservationNotFoundError, InvalidReservationStateError,
            NoCopyAvailableError
            ConflictError: every attempt lost its copy to a concurrent request
        """
        return self.run_allocation(
            "approve reservation", lambda: self._approve_once(reservation_id, librarian_id)
        )

    def _approve_once(self, reservation_id: str, librarian_id: str | None) -> Reservation:
        row = self._require(reservation_id, "approve", ReservationStatus.PENDING)
        copy = self.copies.find_available_copy(row.book_id)
        if copy is None:
            raise NoCopyAvailableError(row.book_id)

        try:
            row = self._move(
                row,
                "approve",
                ReservationStatus.RESERVED,
                assigned_copy_id=copy.id,
                approved_by=librarian_id,
                approved_date=self.now(),
            )
        except DuplicateError as e:
            raise ConflictError(copy.id, CopyStatus.AVAILABLE.value) from e

        self.copies.transition_status(copy.id, CopyStatus.AVAILABLE, CopyStatus.RESERVED)
        return self._to_model(row)

    def disapprove(self, reservation_id: str) -> Reservation:
        """Undo an approval: release the held copy and return to PENDING."""
        with atomic(self.session, "disapprove reservation"):
            row = self._require(reservation_id, "disapprove", ReservationStatus.RESERVED)
            copy_id = row.assigned_copy_id
            row = self._move(
                row,
                "disapprove",
                ReservationStatus.PENDING,
                assigned_copy_id=None,
                approved_by=None,
                approved_date=None,
            )
            self.copies.transition_status(copy_id, CopyStatus.RESERVED, CopyStatus.AVAILABLE)
            return self._to_model(row)

    def cancel(self, reservation_id: str) -> Reservation:
        """Cancel an open reservation, releasing its copy if one is held."""
        with atomic(self.session, "cancel reservation"):
            row = self._require(
                reservation_id, "cancel", ReservationStatus.PENDING, ReservationStatus.RESERVED
            )
            held = row.assigned_copy_id if row.status == ReservationStatus.RESERVED else None
            row = self._move(row, "cancel", ReservationStatus.CANCELLED)
            if held is not None:
                self.copies.transition_status(held, CopyStatus.RESERVED, CopyStatus.AVAILABLE)
            return self._to_model(row)

    def fulfill(
        self,
        reservation_id: str,
        loan_period_days: int | None = None,
        librarian_id: str | None = None,
    ) -> Reservation:
        """
        Turn a RESERVED reservation into a loan of the held copy.

        The member must still be ACTIVE and under the loan quota. The loan,
        the copy move RESERVED -> BORROWED and the FULFILLED status commit
        together.
        """
        period = self.lending.loan_period(loan_period_days)
        with atomic(self.session, "fulfill reservation"):
            row = self._require(reservation_id, "fulfill", ReservationStatus.RESERVED)
            member_id = row.member_id
            copy_id = row.assigned_copy_id
            self.gate.admit_borrower(member_id)

            now = self.now()
            loan = self.lending.open_loan(copy_id, member_id, now, period, librarian_id, row.notes)
            self.gate.confirm_loan_quota(member_id)
            row = self._move(
                row, "fulfill", ReservationStatus.FULFILLED, fulfilled_date=now, loan_id=loan.id
            )
            self.copies.transition_status(copy_id, CopyStatus.RESERVED, CopyStatus.BORROWED)
            self.copies.record_borrowed(copy_id, now)
            return self._to_model(row)

    def expire_stale(self, today: date | None = None) -> list[str]:
        """
        Mark open reservations past their expiry date EXPIRED and release held copies.

        Nothing else calls this; expiry is applied only when a caller sweeps.
        A reservation that changed status after the sweep listed it is left alone.
        """
        today = today or self.today()
        expired: list[str] = []
        with atomic(self.session, "expire reservations"):
            for row in self.reservations.stale_rows(today):
                observed = row.status
                held = row.assigned_copy_id
                moved = self.reservations.transition_status(
                    row.id, observed, ReservationStatus.EXPIRED
                )
                if moved is None:
                    continue
                if observed == ReservationStatus.RESERVED:
                    self.copies.transition_status(held, CopyStatus.RESERVED, CopyStatus.AVAILABLE)
                expired.append(row.id)
        return expired

    def _move(self, row, action: str, to: ReservationStatus, **values):
        """Write ``to`` only if the reservation still has the status it was read with."""
        moved = self.reservations.transition_status(row.id, row.status, to, **values)
        if moved is not None:
            return moved

        actual = self.reservations.current_status(row.id)
        if actual is None:
            raise ReservationNotFoundError(row.id)
        raise InvalidReservationStateError(row.id, actual.value, action)
