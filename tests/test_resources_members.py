"""Tests for member resources: loans, reservations and fines."""

import pytest
from fastmcp.exceptions import ResourceError

from library_circulation.resources.members import (
    member_fines_handler,
    member_history_handler,
    member_loans_handler,
    member_reservations_handler,
)


class TestMemberLoansResource:
    async def test_open_loans(self, engine, make_book, member, mock_get_session):
        loan = engine.borrow(make_book().id, member.id)

        result = await member_loans_handler(member.id)

        assert result["member_id"] == member.id
        assert result["count"] == 1
        view = result["loans"][0]
        assert view["loan"]["id"] == loan.id
        assert view["state"] == "OVERDUE"
        assert view["fine"] == view["days_overdue"] * 1.00

    async def test_member_without_loans(self, member, mock_get_session):
        result = await member_loans_handler(member.id)

        assert result == {"member_id": member.id, "count": 0, "loans": []}

    async def test_unknown_member(self, mock_get_session):
        with pytest.raises(ResourceError, match="Member member_missing0001 not found"):
            await member_loans_handler("member_missing0001")


class TestMemberReservationsResource:
    async def test_pending_and_reserved(self, engine, make_book, member, mock_get_session):
        pending = engine.reserve(make_book().id, member.id)
        held = engine.approve(engine.reserve(make_book().id, member.id).id)

        result = await member_reservations_handler(member.id)

        assert result["count"] == 2
        statuses = {r["id"]: r["status"] for r in result["reservations"]}
        assert statuses == {pending.id: "PENDING", held.id: "RESERVED"}


class TestMemberFinesResource:
    async def test_unpaid_fines(self, engine, make_book, member, clock, mock_get_session):
        late = engine.borrow(make_book().id, member.id)
        paid = engine.borrow(make_book().id, member.id)
        clock.advance(days=18)
        engine.return_loan(late.id)
        engine.return_loan(paid.id)
        engine.pay_fine(paid.id)

        result = await member_fines_handler(member.id)

        assert result["total_outstanding"] == 4.00
        assert result["fines"] == [
            {
                "loan_id": late.id,
                "copy_id": late.copy_id,
                "due_date": "2024-03-15",
                "return_date": "2024-03-19T10:30:00",
                "amount": 4.00,
            }
        ]

    async def test_unknown_member(self, mock_get_session):
        with pytest.raises(ResourceError):
            await member_fines_handler("member_missing0001")


class TestMemberHistoryResource:
    async def test_open_and_returned(self, engine, make_book, member, clock, mock_get_session):
        returned = engine.borrow(make_book().id, member.id)
        clock.advance(days=1)
        engine.return_loan(returned.id)
        still_out = engine.borrow(make_book().id, member.id)

        result = await member_history_handler(member.id)

        assert result["member_id"] == member.id
        assert result["count"] == 2
        assert result["open_count"] == 1
        assert [view["loan"]["id"] for view in result["loans"]] == [still_out.id, returned.id]
        assert result["loans"][1]["state"] == "RETURNED"

    async def test_unknown_member(self, mock_get_session):
        with pytest.raises(ResourceError, match="Member member_missing0001 not found"):
            await member_history_handler("member_missing0001")
