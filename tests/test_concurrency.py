"""Two requests working on the same rows at once.

Each test drives the engine on the regular test session and lets a second,
independent session (``rival_session``) commit in the middle of the first
operation, the way a concurrent MCP request would. Results are read back
with column queries so no cached ORM state hides what was committed.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from library_circulation.circulation.engine import CirculationEngine
from library_circulation.database.schema import BookCopy as BookCopyDB
from library_circulation.database.schema import Loan as LoanDB
from library_circulation.database.schema import Reservation as ReservationDB
from library_circulation.errors import InvalidReservationStateError, QuotaExceededError
from library_circulation.models.copy import CopyStatus
from library_circulation.models.reservation import OPEN_RESERVATION_STATUSES, ReservationStatus
from library_circulation.models.settings import CirculationPolicy

from tests.conftest import FIXED_NOW


def copy_status(session, copy_id):
    return session.execute(select(BookCopyDB.status).where(BookCopyDB.id == copy_id)).scalar_one()


def reservation_status(session, reservation_id):
    return session.execute(
        select(ReservationDB.status).where(ReservationDB.id == reservation_id)
    ).scalar_one()


def open_loan_count(session, member_id):
    return session.execute(
        select(func.count())
        .select_from(LoanDB)
        .where(LoanDB.member_id == member_id, LoanDB.return_date.is_(None))
    ).scalar()


def open_reservation_count(session, member_id):
    return session.execute(
        select(func.count())
        .select_from(ReservationDB)
        .where(
            ReservationDB.member_id == member_id,
            ReservationDB.status.in_(OPEN_RESERVATION_STATUSES),
        )
    ).scalar()


@pytest.fixture
def rival_factory(rival_session, clock):
    """Engine on the second session, optionally with policy overrides."""

    def _build(**overrides) -> CirculationEngine:
        return CirculationEngine(
            rival_session,
            policy=CirculationPolicy(**overrides),
            clock=clock,
            allocation_attempts=3,
        )

    return _build


class TestReservationRaces:
    def test_cancel_loses_to_approval_committed_after_read(
        self, engine, rival_factory, book, member, test_db_session, monkeypatch
    ):
        rival = rival_factory()
        reservation = engine.reserve(book.id, member.id)
        (copy,) = engine.book_copies(book.id)
        read_reservation = engine.holds._require

        def approve_after_read(reservation_id, action, *allowed):
            row = read_reservation(reservation_id, action, *allowed)
            rival.approve(reservation_id)
            return row

        monkeypatch.setattr(engine.holds, "_require", approve_after_read)

        with pytest.raises(InvalidReservationStateError) as exc_info:
            engine.cancel(reservation.id)

        assert exc_info.value.status == "RESERVED"
        assert reservation_status(test_db_session, reservation.id) == ReservationStatus.RESERVED
        assert copy_status(test_db_session, copy.id) == CopyStatus.RESERVED

        # The held copy can still be released through the reservation.
        monkeypatch.setattr(engine.holds, "_require", read_reservation)
        cancelled = engine.cancel(reservation.id)

        assert cancelled.status == ReservationStatus.CANCELLED
        assert copy_status(test_db_session, copy.id) == CopyStatus.AVAILABLE

    def test_fulfill_loses_to_cancel_committed_after_read(
        self, engine, rival_factory, book, member, test_db_session, monkeypatch
    ):
        rival = rival_factory()
        reservation = engine.approve(engine.reserve(book.id, member.id).id)
        read_reservation = engine.holds._require

        def cancel_after_read(reservation_id, action, *allowed):
            row = read_reservation(reservation_id, action, *allowed)
            rival.cancel(reservation_id)
            return row

        monkeypatch.setattr(engine.holds, "_require", cancel_after_read)

        with pytest.raises(InvalidReservationStateError) as exc_info:
            engine.fulfill(reservation.id)

        assert exc_info.value.status == "CANCELLED"
        assert reservation_status(test_db_session, reservation.id) == ReservationStatus.CANCELLED
        assert copy_status(test_db_session, reservation.assigned_copy_id) == CopyStatus.AVAILABLE
        assert open_loan_count(test_db_session, member.id) == 0

    def test_expiry_sweep_skips_reservation_cancelled_after_listing(
        self, engine, rival_factory, make_book, member, test_db_session, monkeypatch
    ):
        rival = rival_factory()
        held = engine.approve(engine.reserve(make_book().id, member.id).id)
        pending = engine.reserve(make_book().id, member.id)
        list_stale = engine.holds.reservations.stale_rows

        def cancel_after_listing(today):
            rows = list_stale(today)
            rival.cancel(held.id)
            return rows

        monkeypatch.setattr(engine.holds.reservations, "stale_rows", cancel_after_listing)

        expired = engine.expire_reservations(today=FIXED_NOW.date() + timedelta(days=8))

        assert expired == [pending.id]
        assert reservation_status(test_db_session, held.id) == ReservationStatus.CANCELLED
        assert reservation_status(test_db_session, pending.id) == ReservationStatus.EXPIRED
        assert copy_status(test_db_session, held.assigned_copy_id) == CopyStatus.AVAILABLE


class TestQuotaRaces:
    def test_borrow_committed_after_admission_counts_against_quota(
        self, engine_factory, rival_factory, make_book, member, test_db_session, monkeypatch
    ):
        engine = engine_factory(max_loans_per_member=1)
        rival = rival_factory(max_loans_per_member=1)
        wanted, elsewhere = make_book(), make_book()
        (wanted_copy,) = engine.book_copies(wanted.id)
        admit = engine.lending.gate.admit_borrower

        def borrow_elsewhere_after_admission(member_id):
            admit(member_id)
            rival.borrow(elsewhere.id, member_id)

        monkeypatch.setattr(engine.lending.gate, "admit_borrower", borrow_elsewhere_after_admission)

        with pytest.raises(QuotaExceededError) as exc_info:
            engine.borrow(wanted.id, member.id)

        assert exc_info.value.kind == "loan"
        assert exc_info.value.limit == 1
        assert open_loan_count(test_db_session, member.id) == 1
        assert copy_status(test_db_session, wanted_copy.id) == CopyStatus.AVAILABLE

    def test_reservation_committed_after_admission_counts_against_quota(
        self, engine_factory, rival_factory, make_book, member, test_db_session, monkeypatch
    ):
        engine = engine_factory(max_reservations_per_member=1)
        rival = rival_factory(max_reservations_per_member=1)
        wanted, elsewhere = make_book(), make_book()
        admit = engine.holds.gate.admit_reserver

        def reserve_elsewhere_after_admission(member_id):
            admit(member_id)
            rival.reserve(elsewhere.id, member_id)

        monkeypatch.setattr(engine.holds.gate, "admit_reserver", reserve_elsewhere_after_admission)

        with pytest.raises(QuotaExceededError) as exc_info:
            engine.reserve(wanted.id, member.id)

        assert exc_info.value.kind == "reservation"
        assert open_reservation_count(test_db_session, member.id) == 1
