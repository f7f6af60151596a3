"""Tests for book and overdue-loan resources.

Resources are read-only: they return plain JSON-ready dicts and raise
``ResourceError`` for unknown ids.
"""

import pytest
from fastmcp.exceptions import ResourceError

from library_circulation.resources import all_resources
from library_circulation.resources.books import (
    book_copies_handler,
    book_loans_handler,
    book_reservations_handler,
    overdue_loans_handler,
)


class TestBookCopiesResource:
    async def test_lists_copies_with_counts(self, engine, make_book, member, mock_get_session):
        book = make_book(copies=3)
        engine.borrow(book.id, member.id)

        result = await book_copies_handler(book.id)

        assert result["book_id"] == book.id
        assert result["total"] == 3
        assert result["counts"] == {"AVAILABLE": 2, "BORROWED": 1}
        assert [c["copy_number"] for c in result["copies"]] == [1, 2, 3]
        assert result["copies"][0]["status"] == "BORROWED"

    async def test_unknown_book(self, mock_get_session):
        with pytest.raises(ResourceError, match="Book book_missing0001 not found"):
            await book_copies_handler("book_missing0001")


class TestBookLoansResource:
    async def test_open_loans_only(self, engine, make_book, make_member, mock_get_session):
        book = make_book(copies=2)
        returned = engine.borrow(book.id, make_member().id)
        still_out = engine.borrow(book.id, make_member().id)
        engine.return_loan(returned.id)

        result = await book_loans_handler(book.id)

        assert result["count"] == 1
        assert result["loans"][0]["loan"]["id"] == still_out.id
        assert result["loans"][0]["state"] in ("ACTIVE", "OVERDUE")


class TestBookReservationsResource:
    async def test_open_reservations(self, engine, book, make_member, mock_get_session):
        kept = engine.reserve(book.id, make_member().id)
        dropped = engine.reserve(book.id, make_member().id)
        engine.cancel(dropped.id)

        result = await book_reservations_handler(book.id)

        assert result["count"] == 1
        assert result["reservations"][0]["id"] == kept.id


class TestOverdueLoansResource:
    async def test_reports_accrued_total(self, engine, make_book, member, mock_get_session):
        # The fixed-clock engine lends in 2024, so both loans are overdue today.
        engine.borrow(make_book().id, member.id)
        engine.borrow(make_book().id, member.id)

        result = await overdue_loans_handler()

        assert result["count"] == 2
        assert all(view["state"] == "OVERDUE" for view in result["loans"])
        assert result["total_accrued"] == pytest.approx(
            sum(view["fine"] for view in result["loans"])
        )

    async def test_empty(self, mock_get_session):
        result = await overdue_loans_handler()

        assert result == {"count": 0, "total_accrued": 0, "loans": []}


class TestResourceRegistration:
    def test_uris(self):
        uris = {r.get("uri_template", r.get("uri")) for r in all_resources}

        assert uris == {
            "library://members/{member_id}/loans",
            "library://members/{member_id}/reservations",
            "library://members/{member_id}/fines",
            "library://members/{member_id}/history",
            "library://books/{book_id}/copies",
            "library://books/{book_id}/loans",
            "library://books/{book_id}/reservations",
            "library://loans/overdue",
        }
        for resource in all_resources:
            assert resource["mime_type"] == "application/json"
            assert callable(resource["handler"])
