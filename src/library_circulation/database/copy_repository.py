"""
Copy Inventory.

Holds each copy's status and answers "which unit of this book can be lent
right now". All status writes go through ``transition_status``, a
compare-and-swap ``UPDATE ... WHERE status = :expected``: if another
transaction moved the copy first, zero rows match and the caller gets a
``ConflictError`` instead of double-allocating the unit.
"""

from datetime import date, datetime

from sqlalchemy import func, select, update

from ..errors import BookNotFoundError, ConflictError, CopyNotFoundError, InvalidTransitionError
from ..models.copy import (
    DEFAULT_LOCATION,
    MANUAL_STATUSES,
    BookCopy,
    CopyCondition,
    CopyStatus,
    CopyStatusSummary,
    RetirementResult,
    is_allowed_transition,
)
from .repository import BaseRepository
from .schema import Book as BookDB
from .schema import BookCopy as BookCopyDB
from .schema import new_id
from .session import safe_flush, safe_query


class CopyRepository(BaseRepository[BookCopyDB, BookCopy]):
    not_found_error = CopyNotFoundError

    @property
    def model_class(self) -> type[BookCopyDB]:
        return BookCopyDB

    @property
    def response_schema(self) -> type[BookCopy]:
        return BookCopy

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    def find_available_copy(self, book_id: str) -> BookCopy | None:
        """Return the AVAILABLE copy with the lowest ``copy_number``, or ``None``."""
        query = (
            select(BookCopyDB)
            .where(BookCopyDB.book_id == book_id, BookCopyDB.status == CopyStatus.AVAILABLE)
            .order_by(BookCopyDB.copy_number)
            .limit(1)
        )
        db_obj = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to find an available copy",
        )
        return self._to_response_model(db_obj) if db_obj else None

    def current_status(self, copy_id: str) -> CopyStatus | None:
        query = select(BookCopyDB.status).where(BookCopyDB.id == copy_id)
        status = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to read copy status",
        )
        return CopyStatus(status) if status is not None else None

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    def transition_status(self, copy_id: str, expected: CopyStatus, to: CopyStatus) -> None:
        """
        Move a copy from ``expected`` to ``to`` if and only if it is still ``expected``.

        Raises:
            InvalidTransitionError: ``expected -> to`` is not a state machine edge
            CopyNotFoundError: no such copy
            ConflictError: the copy's current status is not ``expected``
        """
        expected = CopyStatus(expected)
        to = CopyStatus(to)
        if not is_allowed_transition(expected, to):
            raise InvalidTransitionError(expected.value, to.value)

        stmt = (
            update(BookCopyDB)
            .where(BookCopyDB.id == copy_id, BookCopyDB.status == expected)
            .values(status=to)
        )
        result = safe_query(
            self.session, lambda s: s.execute(stmt), "Failed to update copy status"
        )
        if result.rowcount == 1:
            return

        actual = self.current_status(copy_id)
        if actual is None:
            raise CopyNotFoundError(copy_id)
        raise ConflictError(copy_id, expected.value, actual.value)

    def record_borrowed(self, copy_id: str, when: datetime) -> None:
        safe_query(
            self.session,
            lambda s: s.execute(
                update(BookCopyDB)
                .where(BookCopyDB.id == copy_id)
                .values(last_borrowed_date=when)
            ),
            "Failed to stamp copy borrow date",
        )

    def set_manual_status(self, copy_id: str, to: CopyStatus) -> BookCopy:
        """
        Librarian edit between AVAILABLE and IN_REPAIR, DAMAGED or LOST.

        Never allowed while the copy is BORROWED or RESERVED; those moves are
        owned by the loan and reservation lifecycles.
        """
        to = CopyStatus(to)
        current = self.current_status(copy_id)
        if current is None:
            raise CopyNotFoundError(copy_id)
        if to not in MANUAL_STATUSES and not (
            to == CopyStatus.AVAILABLE and current in MANUAL_STATUSES
        ):
            raise InvalidTransitionError(current.value, to.value)

        self.transition_status(copy_id, current, to)
        return self.get(copy_id)

    def retire_available_copies(self, book_id: str) -> RetirementResult:
        """
        Retire every AVAILABLE copy of a book, one compare-and-swap per copy.

        Copies that are lent, held or otherwise not AVAILABLE are reported in
        ``unavailable_copy_ids`` and left as they are. Copies already RETIRED
        are ignored.
        """
        if not self.session.get(BookDB, book_id):
            raise BookNotFoundError(book_id)

        retired: list[str] = []
        unavailable: list[str] = []
        for copy in self.list_copies(book_id):
            if copy.status == CopyStatus.RETIRED:
                continue
            if copy.status != CopyStatus.AVAILABLE:
                unavailable.append(copy.id)
                continue
            try:
                self.transition_status(copy.id, CopyStatus.AVAILABLE, CopyStatus.RETIRED)
            except ConflictError:
                unavailable.append(copy.id)
            else:
                retired.append(copy.id)

        return RetirementResult(
            book_id=book_id,
            retired_count=len(retired),
            retired_copy_ids=retired,
            unavailable_copy_ids=unavailable,
        )

    # -------------------------------------------------------------------------
    # Inventory maintenance
    # -------------------------------------------------------------------------

    def add_copy(
        self,
        book_id: str,
        location: str | None = None,
        acquired: date | None = None,
    ) -> BookCopy:
        """Append a copy with the next sequence number, AVAILABLE and GOOD."""
        if not self.session.get(BookDB, book_id):
            raise BookNotFoundError(book_id)

        highest = safe_query(
            self.session,
            lambda s: s.execute(
                select(func.max(BookCopyDB.copy_number)).where(BookCopyDB.book_id == book_id)
            ).scalar(),
            "Failed to read copy numbers",
        )
        copy = BookCopyDB(
            id=new_id("copy"),
            book_id=book_id,
            copy_number=(highest or 0) + 1,
            status=CopyStatus.AVAILABLE,
            condition=CopyCondition.GOOD,
            location=location or DEFAULT_LOCATION,
            acquisition_date=acquired or date.today(),
        )
        self.session.add(copy)
        safe_flush(self.session, "add copy")
        return self._to_response_model(copy)

    def update_condition(self, copy_id: str, condition: CopyCondition) -> BookCopy:
        copy = self.get_row(copy_id)
        copy.condition = CopyCondition(condition)
        safe_flush(self.session, "update copy condition")
        return self._to_response_model(copy)

    def list_copies(self, book_id: str) -> list[BookCopy]:
        query = (
            select(BookCopyDB)
            .where(BookCopyDB.book_id == book_id)
            .order_by(BookCopyDB.copy_number)
        )
        rows = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to list copies",
        )
        return [self._to_response_model(row) for row in rows]

    def status_counts(self, book_id: str) -> CopyStatusSummary:
        query = (
            select(BookCopyDB.status, func.count())
            .where(BookCopyDB.book_id == book_id)
            .group_by(BookCopyDB.status)
        )
        rows = safe_query(
            self.session, lambda s: s.execute(query).all(), "Failed to count copies"
        )
        counts = {CopyStatus(status): count for status, count in rows}
        return CopyStatusSummary(book_id=book_id, total=sum(counts.values()), counts=counts)
