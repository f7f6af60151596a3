"""Book Resources - circulation state of a title.

Resources:
- library://books/{book_id}/copies - every copy with its status, plus per-status counts
- library://books/{book_id}/loans - open loans against the book's copies
- library://books/{book_id}/reservations - open reservations for the book
- library://loans/overdue - every open loan past its due date
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..circulation.engine import CirculationEngine
from ..database.session import session_scope
from ..errors import NotFoundError

logger = logging.getLogger(__name__)


async def book_copies_handler(book_id: str) -> dict[str, Any]:
    try:
        logger.debug("MCP Resource Request - books/%s/copies", book_id)
        with session_scope() as session:
            engine = CirculationEngine(session)
            copies = engine.book_copies(book_id)
            summary = engine.copy_summary(book_id)
            return {
                "book_id": book_id,
                "total": summary.total,
                "counts": {status.value: count for status, count in summary.counts.items()},
                "copies": [copy.model_dump(mode="json") for copy in copies],
            }
    except NotFoundError as e:
        raise ResourceError(str(e)) from e
    except Exception as e:
        logger.exception("Error in books/%s/copies resource", book_id)
        raise ResourceError(f"Failed to retrieve copies: {e!s}") from e


async def book_loans_handler(book_id: str) -> dict[str, Any]:
    try:
        logger.debug("MCP Resource Request - books/%s/loans", book_id)
        with session_scope() as session:
            views = CirculationEngine(session).book_loans(book_id)
            return {
                "book_id": book_id,
                "count": len(views),
                "loans": [view.model_dump(mode="json") for view in views],
            }
    except NotFoundError as e:
        raise ResourceError(str(e)) from e
    except Exception as e:
        logger.exception("Error in books/%s/loans resource", book_id)
        raise ResourceError(f"Failed to retrieve loans: {e!s}") from e


async def book_reservations_handler(book_id: str) -> dict[str, Any]:
    try:
        logger.debug("MCP Resource Request - books/%s/reservations", book_id)
        with session_scope() as session:
            reservations = CirculationEngine(session).book_reservations(book_id)
            return {
                "book_id": book_id,
                "count": len(reservations),
                "reservations": [r.model_dump(mode="json") for r in reservations],
            }
    except NotFoundError as e:
        raise ResourceError(str(e)) from e
    except Exception as e:
        logger.exception("Error in books/%s/reservations resource", book_id)
        raise ResourceError(f"Failed to retrieve reservations: {e!s}") from e


async def overdue_loans_handler() -> dict[str, Any]:
    try:
        with session_scope() as session:
            views = CirculationEngine(session).overdue_loans()
            return {
                "count": len(views),
                "total_accrued": round(sum(view.fine for view in views), 2),
                "loans": [view.model_dump(mode="json") for view in views],
            }
    except Exception as e:
        logger.exception("Error in loans/overdue resource")
        raise ResourceError(f"Failed to retrieve overdue loans: {e!s}") from e


book_resources: list[dict[str, Any]] = [
    {
        "uri_template": "library://books/{book_id}/copies",
        "name": "Book Copies",
        "description": "Status, condition and location of every copy of a book",
        "mime_type": "application/json",
        "handler": book_copies_handler,
    },
    {
        "uri_template": "library://books/{book_id}/loans",
        "name": "Book Loans",
        "description": "Open loans against a book's copies",
        "mime_type": "application/json",
        "handler": book_loans_handler,
    },
    {
        "uri_template": "library://books/{book_id}/reservations",
        "name": "Book Reservations",
        "description": "Pending and approved reservations for a book",
        "mime_type": "application/json",
        "handler": book_reservations_handler,
    },
    {
        "uri": "library://loans/overdue",
        "name": "Overdue Loans",
        "description": "Every open loan past its due date with the fine accrued so far",
        "mime_type": "application/json",
        "handler": overdue_loans_handler,
    },
]
