"""Row access for reservations. Lifecycle rules live in ``circulation.reservations``."""

from datetime import date, datetime

from sqlalchemy import func, select, update

from ..errors import ReservationNotFoundError
from ..models.reservation import OPEN_RESERVATION_STATUSES, Reservation, ReservationStatus
from .repository import BaseRepository
from .schema import Reservation as ReservationDB
from .schema import new_id
from .session import safe_execute, safe_flush, safe_query


class ReservationRepository(BaseRepository[ReservationDB, Reservation]):
    not_found_error = ReservationNotFoundError

    @property
    def model_class(self) -> type[ReservationDB]:
        return ReservationDB

    @property
    def response_schema(self) -> type[Reservation]:
        return Reservation

    def create(
        self,
        book_id: str,
        member_id: str,
        reservation_date: datetime,
        expiry_date: date,
        notes: str | None = None,
    ) -> ReservationDB:
        reservation = ReservationDB(
            id=new_id("reservation"),
            book_id=book_id,
            member_id=member_id,
            reservation_date=reservation_date,
            expiry_date=expiry_date,
            status=ReservationStatus.PENDING,
            notes=notes,
        )
        self.session.add(reservation)
        safe_flush(self.session, "create reservation")
        return reservation

    def transition_status(
        self,
        reservation_id: str,
        expected: ReservationStatus,
        to: ReservationStatus,
        **values,
    ) -> ReservationDB | None:
        """
        Move a reservation from ``expected`` to ``to`` if and only if it is still ``expected``.

        ``values`` are written in the same statement. Returns the refreshed row,
        or ``None`` when the status had already changed.

        Raises:
            DuplicateError: the new values collide with a unique index
        """
        stmt = (
            update(ReservationDB)
            .where(ReservationDB.id == reservation_id, ReservationDB.status == expected)
            .values(status=to, **values)
            .execution_options(synchronize_session=False)
        )
        result = safe_execute(self.session, stmt, "update reservation status")
        if result.rowcount != 1:
            return None
        return safe_query(
            self.session,
            lambda s: s.get(ReservationDB, reservation_id, populate_existing=True),
            "Failed to reload reservation",
        )

    def current_status(self, reservation_id: str) -> ReservationStatus | None:
        query = select(ReservationDB.status).where(ReservationDB.id == reservation_id)
        status = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to read reservation status",
        )
        return ReservationStatus(status) if status is not None else None

    def count_open_for_member(self, member_id: str) -> int:
        query = (
            select(func.count())
            .select_from(ReservationDB)
            .where(
                ReservationDB.member_id == member_id,
                ReservationDB.status.in_(OPEN_RESERVATION_STATUSES),
            )
        )
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar() or 0,
            "Failed to count open reservations",
        )

    def has_open(self, member_id: str, book_id: str) -> bool:
        query = (
            select(func.count())
            .select_from(ReservationDB)
            .where(
                ReservationDB.member_id == member_id,
                ReservationDB.book_id == book_id,
                ReservationDB.status.in_(OPEN_RESERVATION_STATUSES),
            )
        )
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check reservations"
        )
        return bool(count)

    def open_for_member(self, member_id: str) -> list[Reservation]:
        query = (
            select(ReservationDB)
            .where(
                ReservationDB.member_id == member_id,
                ReservationDB.status.in_(OPEN_RESERVATION_STATUSES),
            )
            .order_by(ReservationDB.reservation_date)
        )
        return self._all(query, "Failed to list member reservations")

    def for_book(self, book_id: str, open_only: bool = False) -> list[Reservation]:
        query = (
            select(ReservationDB)
            .where(ReservationDB.book_id == book_id)
            .order_by(ReservationDB.reservation_date)
        )
        if open_only:
            query = query.where(ReservationDB.status.in_(OPEN_RESERVATION_STATUSES))
        return self._all(query, "Failed to list book reservations")

    def stale_rows(self, today: date) -> list[ReservationDB]:
        """Open reservations whose expiry date has passed."""
        query = (
            select(ReservationDB)
            .where(
                ReservationDB.status.in_(OPEN_RESERVATION_STATUSES),
                ReservationDB.expiry_date < today,
            )
            .order_by(ReservationDB.expiry_date)
        )
        return list(
            safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to list stale reservations",
            )
        )

    def _all(self, query, error_msg: str) -> list[Reservation]:
        rows = safe_query(self.session, lambda s: s.execute(query).scalars().all(), error_msg)
        return [self._to_response_model(row) for row in rows]
