"""Tests for the inventory tools."""

from library_circulation.tools.circulation import borrow_book_handler
from library_circulation.tools.inventory import (
    add_copy_handler,
    retire_available_copies_handler,
    set_copy_status_handler,
)


class TestAddCopyTool:
    async def test_adds_next_copy(self, make_book, mock_get_session):
        book = make_book(copies=2)

        result = await add_copy_handler({"book_id": book.id, "location": "East Wing"})

        assert not result.get("isError")
        copy = result["data"]["copy"]
        assert copy["copy_number"] == 3
        assert copy["status"] == "AVAILABLE"
        assert copy["location"] == "East Wing"
        assert "Added copy #3" in result["content"][0]["text"]

    async def test_unknown_book(self, mock_get_session):
        result = await add_copy_handler({"book_id": "book_missing0001"})

        assert result["error"]["code"] == "book_not_found"


class TestRetireTool:
    async def test_borrowed_copy_is_reported_not_retired(self, make_book, member, mock_get_session):
        book = make_book(copies=2)
        borrowed = await borrow_book_handler({"book_id": book.id, "member_id": member.id})

        result = await retire_available_copies_handler({"book_id": book.id})

        retirement = result["data"]["retirement"]
        assert retirement["retired_count"] == 1
        assert retirement["unavailable_copy_ids"] == [borrowed["data"]["loan"]["copy_id"]]
        assert "Retired 1 copies" in result["content"][0]["text"]
        assert "not available for retirement" in result["content"][0]["text"]


class TestSetCopyStatusTool:
    async def test_send_to_repair_and_back(self, engine, book, mock_get_session):
        (copy,) = engine.book_copies(book.id)

        result = await set_copy_status_handler({"copy_id": copy.id, "status": "IN_REPAIR"})
        assert result["data"]["copy"]["status"] == "IN_REPAIR"
        assert "is now IN_REPAIR" in result["content"][0]["text"]

        result = await set_copy_status_handler({"copy_id": copy.id, "status": "AVAILABLE"})
        assert result["data"]["copy"]["status"] == "AVAILABLE"

    async def test_borrowed_copy_is_refused(self, engine, book, member, mock_get_session):
        loan = engine.borrow(book.id, member.id)

        result = await set_copy_status_handler({"copy_id": loan.copy_id, "status": "LOST"})

        assert result["isError"] is True
        assert result["error"]["code"] == "invalid_transition"

    async def test_unknown_status(self, mock_get_session):
        result = await set_copy_status_handler({"copy_id": "copy_abc123", "status": "MISSING"})

        assert result["error"]["code"] == "invalid_input"
