"""
Error taxonomy for the circulation engine.

Every failure the engine can report is a subclass of ``CirculationError`` and
carries a stable ``code`` string so the MCP layer can return a
machine-readable error next to the human-readable message. The engine raises
these and never logs or swallows them; logging happens in the tool handlers.
"""


class CirculationError(Exception):
    """Base class for all circulation failures."""

    code = "circulation_error"


class StoreError(CirculationError):
    """The backing store failed (connection loss, locked database, bad SQL)."""

    code = "store_error"


class DuplicateError(CirculationError):
    """A unique constraint was violated while creating a record."""

    code = "duplicate"


# =============================================================================
# NOT FOUND
# =============================================================================


class NotFoundError(CirculationError):
    """Raised when a referenced entity does not exist."""

    code = "not_found"
    entity = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class BookNotFoundError(NotFoundError):
    code = "book_not_found"
    entity = "Book"


class MemberNotFoundError(NotFoundError):
    code = "member_not_found"
    entity = "Member"


class CopyNotFoundError(NotFoundError):
    code = "copy_not_found"
    entity = "Copy"


class LoanNotFoundError(NotFoundError):
    code = "loan_not_found"
    entity = "Loan"


class ReservationNotFoundError(NotFoundError):
    code = "reservation_not_found"
    entity = "Reservation"


# =============================================================================
# ADMISSION CONTROL
# =============================================================================


class MemberSuspendedError(CirculationError):
    """The member's status is anything other than ACTIVE."""

    code = "member_suspended"

    def __init__(self, member_id: str, status: str):
        self.member_id = member_id
        self.status = status
        super().__init__(f"Member {member_id} cannot transact: membership is {status}")


class QuotaExceededError(CirculationError):
    """The member already holds as many loans or reservations as policy allows."""

    code = "quota_exceeded"

    def __init__(self, member_id: str, kind: str, limit: int, current: int):
        self.member_id = member_id
        self.kind = kind
        self.limit = limit
        self.current = current
        super().__init__(
            f"Member {member_id} has reached the maximum number of {kind}s ({limit})"
        )


class NoCopyAvailableError(CirculationError):
    code = "no_copy_available"

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(f"No copy of book {book_id} is available")


class DuplicateReservationError(CirculationError):
    code = "duplicate_reservation"

    def __init__(self, member_id: str, book_id: str):
        self.member_id = member_id
        self.book_id = book_id
        super().__init__(
            f"Member {member_id} already has an open reservation for book {book_id}"
        )


# =============================================================================
# STATE MACHINE
# =============================================================================


class ConflictError(CirculationError):
    """A compare-and-swap status transition found an unexpected current status."""

    code = "conflict"

    def __init__(self, copy_id: str, expected: str, actual: str | None = None):
        self.copy_id = copy_id
        self.expected = expected
        self.actual = actual
        detail = f" (found {actual})" if actual else ""
        super().__init__(f"Copy {copy_id} is no longer {expected}{detail}")


class InvalidTransitionError(CirculationError):
    """The requested copy status change is not an edge of the copy state machine."""

    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Copy cannot move from {from_status} to {to_status}")


class InvalidReservationStateError(CirculationError):
    code = "invalid_reservation_state"

    def __init__(self, reservation_id: str, status: str, action: str):
        self.reservation_id = reservation_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} reservation {reservation_id} while it is {status}")


class AlreadyReturnedError(CirculationError):
    code = "already_returned"

    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id} has already been returned")


class InvalidReturnDateError(CirculationError):
    code = "invalid_return_date"

    def __init__(self, loan_id: str, return_date: str, loan_date: str):
        self.loan_id = loan_id
        self.return_date = return_date
        self.loan_date = loan_date
        super().__init__(
            f"Loan {loan_id} cannot be returned on {return_date}: it was lent on {loan_date}"
        )


class RenewalDeniedError(CirculationError):
    code = "renewal_denied"

    def __init__(self, loan_id: str, reason: str):
        self.loan_id = loan_id
        self.reason = reason
        super().__init__(f"Loan {loan_id} cannot be renewed: {reason}")


# =============================================================================
# FINES
# =============================================================================


class AlreadyPaidError(CirculationError):
    code = "already_paid"

    def __init__(self, loan_id: str):
        self.loan_id = loan_id
        super().__init__(f"The fine on loan {loan_id} has already been paid")


class NoFineOwedError(CirculationError):
    code = "no_fine_owed"

    def __init__(self, loan_id: str, reason: str = "no fine is owed"):
        self.loan_id = loan_id
        super().__init__(f"Loan {loan_id}: {reason}")
