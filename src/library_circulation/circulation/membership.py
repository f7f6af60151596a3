"""
Membership Gate.

Read-only admission checks run before any copy is touched. Composed checks
short-circuit in a fixed order: the member must exist, then be ACTIVE, then
be under quota.
"""

from sqlalchemy.orm import Session

from ..database.loan_repository import LoanRepository
from ..database.member_repository import MemberRepository
from ..database.reservation_repository import ReservationRepository
from ..errors import MemberSuspendedError, QuotaExceededError
from ..models.member import MembershipStatus
from ..models.settings import CirculationPolicy


class MembershipGate:
    def __init__(self, session: Session, policy: CirculationPolicy):
        self.policy = policy
        self.members = MemberRepository(session)
        self.loans = LoanRepository(session)
        self.reservations = ReservationRepository(session)

    def assert_active(self, member_id: str) -> None:
        """
        Raises:
            MemberNotFoundError: unknown member
            MemberSuspendedError: status is SUSPENDED, EXPIRED or DELETED
        """
        status = self.members.get_status(member_id)
        if status != MembershipStatus.ACTIVE:
            raise MemberSuspendedError(member_id, status.value)

    def count_open_loans(self, member_id: str) -> int:
        return self.loans.count_open_for_member(member_id)

    def count_open_reservations(self, member_id: str) -> int:
        return self.reservations.count_open_for_member(member_id)

    def assert_under_loan_quota(self, member_id: str) -> None:
        limit = self.policy.max_loans_per_member
        current = self.count_open_loans(member_id)
        if current >= limit:
            raise QuotaExceededError(member_id, "loan", limit, current)

    def assert_under_reservation_quota(self, member_id: str) -> None:
        limit = self.policy.max_reservations_per_member
        current = self.count_open_reservations(member_id)
        if current >= limit:
            raise QuotaExceededError(member_id, "reservation", limit, current)

    def confirm_loan_quota(self, member_id: str) -> None:
        """
        Re-count once this transaction's loan row is flushed.

        Another borrow for the same member may have committed since
        ``admit_borrower`` ran; the count then exceeds the limit and the
        caller's transaction is rolled back by the raised error.
        """
        limit = self.policy.max_loans_per_member
        current = self.count_open_loans(member_id)
        if current > limit:
            raise QuotaExceededError(member_id, "loan", limit, current - 1)

    def confirm_reservation_quota(self, member_id: str) -> None:
        limit = self.policy.max_reservations_per_member
        current = self.count_open_reservations(member_id)
        if current > limit:
            raise QuotaExceededError(member_id, "reservation", limit, current - 1)

    def admit_borrower(self, member_id: str) -> None:
        self.assert_active(member_id)
        self.assert_under_loan_quota(member_id)

    def admit_reserver(self, member_id: str) -> None:
        self.assert_active(member_id)
        self.assert_under_reservation_quota(member_id)
