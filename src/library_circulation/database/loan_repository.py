"""Row access for loans. Lifecycle rules live in ``circulation.loans``."""

from datetime import date, datetime

from sqlalchemy import func, select

from ..errors import LoanNotFoundError
from ..models.loan import Loan
from .repository import BaseRepository
from .schema import BookCopy as BookCopyDB
from .schema import Loan as LoanDB
from .schema import new_id
from .session import safe_flush, safe_query


class LoanRepository(BaseRepository[LoanDB, Loan]):
    not_found_error = LoanNotFoundError

    @property
    def model_class(self) -> type[LoanDB]:
        return LoanDB

    @property
    def response_schema(self) -> type[Loan]:
        return Loan

    def create(
        self,
        copy_id: str,
        member_id: str,
        loan_date: datetime,
        due_date: date,
        librarian_id: str | None = None,
        notes: str | None = None,
    ) -> LoanDB:
        """Insert an open loan and flush it; the caller owns the transaction."""
        loan = LoanDB(
            id=new_id("loan"),
            copy_id=copy_id,
            member_id=member_id,
            librarian_id=librarian_id,
            loan_date=loan_date,
            due_date=due_date,
            return_date=None,
            fine_amount=0.0,
            renewal_count=0,
            notes=notes,
        )
        self.session.add(loan)
        safe_flush(self.session, "create loan")
        return loan

    def count_open_for_member(self, member_id: str) -> int:
        query = (
            select(func.count())
            .select_from(LoanDB)
            .where(LoanDB.member_id == member_id, LoanDB.return_date.is_(None))
        )
        return safe_query(
            self.session, lambda s: s.execute(query).scalar() or 0, "Failed to count open loans"
        )

    def open_for_member(self, member_id: str) -> list[Loan]:
        query = (
            select(LoanDB)
            .where(LoanDB.member_id == member_id, LoanDB.return_date.is_(None))
            .order_by(LoanDB.due_date, LoanDB.loan_date)
        )
        return self._all(query, "Failed to list open loans")

    def history_for_member(self, member_id: str, since: datetime | None = None) -> list[Loan]:
        """Open and returned loans, newest first; ``since`` bounds the loan date."""
        query = (
            select(LoanDB)
            .where(LoanDB.member_id == member_id)
            .order_by(LoanDB.loan_date.desc())
        )
        if since is not None:
            query = query.where(LoanDB.loan_date >= since)
        return self._all(query, "Failed to list loan history")

    def open_for_copy(self, copy_id: str) -> Loan | None:
        query = select(LoanDB).where(LoanDB.copy_id == copy_id, LoanDB.return_date.is_(None))
        db_obj = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to find open loan for copy",
        )
        return self._to_response_model(db_obj) if db_obj else None

    def for_book(self, book_id: str, open_only: bool = False) -> list[Loan]:
        query = (
            select(LoanDB)
            .join(BookCopyDB, BookCopyDB.id == LoanDB.copy_id)
            .where(BookCopyDB.book_id == book_id)
            .order_by(LoanDB.loan_date.desc())
        )
        if open_only:
            query = query.where(LoanDB.return_date.is_(None))
        return self._all(query, "Failed to list loans for book")

    def overdue(self, today: date) -> list[Loan]:
        query = (
            select(LoanDB)
            .where(LoanDB.return_date.is_(None), LoanDB.due_date < today)
            .order_by(LoanDB.due_date)
        )
        return self._all(query, "Failed to list overdue loans")

    def unpaid_for_member(self, member_id: str) -> list[Loan]:
        """Returned loans with a finalized fine that has not been paid."""
        query = (
            select(LoanDB)
            .where(
                LoanDB.member_id == member_id,
                LoanDB.return_date.is_not(None),
                LoanDB.fine_amount > 0,
                LoanDB.fine_payment_date.is_(None),
            )
            .order_by(LoanDB.return_date)
        )
        return self._all(query, "Failed to list unpaid fines")

    def _all(self, query, error_msg: str) -> list[Loan]:
        rows = safe_query(self.session, lambda s: s.execute(query).scalars().all(), error_msg)
        return [self._to_response_model(row) for row in rows]
