"""Tests for the reservation tools."""

from library_circulation.database.schema import BookCopy as BookCopyDB
from library_circulation.database.schema import Reservation as ReservationDB
from library_circulation.models.copy import CopyStatus
from library_circulation.models.member import MembershipStatus
from library_circulation.tools.reservations import (
    approve_reservation_handler,
    cancel_reservation_handler,
    disapprove_reservation_handler,
    expire_reservations_handler,
    fulfill_reservation_handler,
    reserve_book_handler,
)


async def place(book, member):
    result = await reserve_book_handler({"book_id": book.id, "member_id": member.id})
    return result["data"]["reservation"]["id"]


class TestReserveBookTool:
    async def test_reserve_success(self, book, member, mock_get_session):
        result = await reserve_book_handler(
            {"book_id": book.id, "member_id": member.id, "expiry_days": 10}
        )

        assert not result.get("isError")
        assert "awaiting librarian approval" in result["content"][0]["text"]
        reservation = result["data"]["reservation"]
        assert reservation["status"] == "PENDING"
        assert reservation["assigned_copy_id"] is None

    async def test_suspended_member(self, book, make_member, mock_get_session):
        member = make_member(MembershipStatus.SUSPENDED)

        result = await reserve_book_handler({"book_id": book.id, "member_id": member.id})

        assert result["isError"] is True
        assert result["error"]["code"] == "member_suspended"
        assert mock_get_session.query(ReservationDB).count() == 0

    async def test_duplicate(self, book, member, mock_get_session):
        await place(book, member)

        result = await reserve_book_handler({"book_id": book.id, "member_id": member.id})

        assert result["error"]["code"] == "duplicate_reservation"

    async def test_expiry_out_of_range(self, book, member, mock_get_session):
        result = await reserve_book_handler(
            {"book_id": book.id, "member_id": member.id, "expiry_days": 0}
        )

        assert result["error"]["code"] == "invalid_input"


class TestApprovalTools:
    async def test_approve_then_disapprove(self, book, member, mock_get_session):
        reservation_id = await place(book, member)

        approved = await approve_reservation_handler(
            {"reservation_id": reservation_id, "librarian_id": "librarian_01"}
        )
        copy_id = approved["data"]["reservation"]["assigned_copy_id"]
        assert approved["data"]["reservation"]["status"] == "RESERVED"
        assert mock_get_session.get(BookCopyDB, copy_id).status == CopyStatus.RESERVED

        result = await disapprove_reservation_handler({"reservation_id": reservation_id})

        assert result["data"]["reservation"]["status"] == "PENDING"
        assert result["data"]["reservation"]["assigned_copy_id"] is None
        assert mock_get_session.get(BookCopyDB, copy_id).status == CopyStatus.AVAILABLE

    async def test_approve_without_free_copy(self, engine, book, make_member, mock_get_session):
        engine.borrow(book.id, make_member().id)
        reservation_id = await place(book, make_member())

        result = await approve_reservation_handler({"reservation_id": reservation_id})

        assert result["isError"] is True
        assert result["error"]["code"] == "no_copy_available"

    async def test_disapprove_pending(self, book, member, mock_get_session):
        reservation_id = await place(book, member)

        result = await disapprove_reservation_handler({"reservation_id": reservation_id})

        assert result["error"]["code"] == "invalid_reservation_state"

    async def test_unknown_reservation(self, mock_get_session):
        result = await approve_reservation_handler({"reservation_id": "reservation_missing01"})

        assert result["error"]["code"] == "reservation_not_found"


class TestCancelAndFulfillTools:
    async def test_cancel_held_reservation(self, book, member, mock_get_session):
        reservation_id = await place(book, member)
        approved = await approve_reservation_handler({"reservation_id": reservation_id})
        copy_id = approved["data"]["reservation"]["assigned_copy_id"]

        result = await cancel_reservation_handler({"reservation_id": reservation_id})

        assert result["data"]["reservation"]["status"] == "CANCELLED"
        assert mock_get_session.get(BookCopyDB, copy_id).status == CopyStatus.AVAILABLE

    async def test_fulfill(self, book, member, mock_get_session):
        reservation_id = await place(book, member)
        await approve_reservation_handler({"reservation_id": reservation_id})

        result = await fulfill_reservation_handler(
            {"reservation_id": reservation_id, "loan_period_days": 7}
        )

        assert not result.get("isError")
        reservation = result["data"]["reservation"]
        assert reservation["status"] == "FULFILLED"
        assert reservation["loan_id"] in result["content"][0]["text"]
        copy = mock_get_session.get(BookCopyDB, reservation["assigned_copy_id"])
        assert copy.status == CopyStatus.BORROWED

    async def test_fulfill_pending(self, book, member, mock_get_session):
        reservation_id = await place(book, member)

        result = await fulfill_reservation_handler({"reservation_id": reservation_id})

        assert result["error"]["code"] == "invalid_reservation_state"


class TestExpireReservationsTool:
    async def test_expires_old_requests(self, engine, book, member, mock_get_session):
        # Placed through the fixed-clock engine, long past its expiry today.
        old = engine.reserve(book.id, member.id)

        result = await expire_reservations_handler({})

        assert result["data"]["expired_reservation_ids"] == [old.id]
        assert "Expired 1 reservation(s)" in result["content"][0]["text"]

    async def test_nothing_to_expire(self, book, member, mock_get_session):
        await place(book, member)

        result = await expire_reservations_handler({})

        assert result["data"]["expired_reservation_ids"] == []
