"""Member Resources - what a member currently has out, on hold and owes.

Resources:
- library://members/{member_id}/loans - open loans with live overdue fines
- library://members/{member_id}/reservations - PENDING and RESERVED holds
- library://members/{member_id}/fines - unpaid finalized fines and their total
- library://members/{member_id}/history - every loan, open or returned, newest first
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..circulation.engine import CirculationEngine
from ..database.session import session_scope
from ..errors import NotFoundError

logger = logging.getLogger(__name__)


async def member_loans_handler(member_id: str) -> dict[str, Any]:
    try:
        logger.debug("MCP Resource Request - members/%s/loans", member_id)
        with session_scope() as session:
            views = CirculationEngine(session).open_loans(member_id)
            return {
                "member_id": member_id,
                "count": len(views),
                "loans": [view.model_dump(mode="json") for view in views],
            }
    except NotFoundError as e:
        raise ResourceError(str(e)) from e
    except Exception as e:
        logger.exception("Error in members/%s/loans resource", member_id)
        raise ResourceError(f"Failed to retrieve loans: {e!s}") from e


async def member_reservations_handler(member_id: str) -> dict[str, Any]:
    try:
        logger.debug("MCP Resource Request - members/%s/reservations", member_id)
        with session_scope() as session:
            reservations = CirculationEngine(session).open_reservations(member_id)
            return {
                "member_id": member_id,
                "count": len(reservations),
                "reservations": [r.model_dump(mode="json") for r in reservations],
            }
    except NotFoundError as e:
        raise ResourceError(str(e)) from e
    except Exception as e:
        logger.exception("Error in members/%s/reservations resource", member_id)
        raise ResourceError(f"Failed to retrieve reservations: {e!s}") from e


async def member_fines_handler(member_id: str) -> dict[str, Any]:
    """Unpaid fines are returned loans whose fine is above zero and not yet paid."""
    try:
        logger.debug("MCP Resource Request - members/%s/fines", member_id)
        with session_scope() as session:
            engine = CirculationEngine(session)
            unpaid = engine.unpaid_fines(member_id)
            return {
                "member_id": member_id,
                "total_outstanding": engine.outstanding_total(member_id),
                "fines": [
                    {
                        "loan_id": loan.id,
                        "copy_id": loan.copy_id,
                        "due_date": loan.due_date.isoformat(),
                        "return_date": loan.return_date.isoformat() if loan.return_date else None,
                        "amount": loan.fine_amount,
                    }
                    for loan in unpaid
                ],
            }
    except NotFoundError as e:
        raise ResourceError(str(e)) from e
    except Exception as e:
        logger.exception("Error in members/%s/fines resource", member_id)
        raise ResourceError(f"Failed to retrieve fines: {e!s}") from e


async def member_history_handler(member_id: str) -> dict[str, Any]:
    """All of a member's loans, newest first, open ones with their live fine."""
    try:
        logger.debug("MCP Resource Request - members/%s/history", member_id)
        with session_scope() as session:
            views = CirculationEngine(session).member_loan_history(member_id)
            return {
                "member_id": member_id,
                "count": len(views),
                "open_count": sum(1 for view in views if view.loan.is_open),
                "loans": [view.model_dump(mode="json") for view in views],
            }
    except NotFoundError as e:
        raise ResourceError(str(e)) from e
    except Exception as e:
        logger.exception("Error in members/%s/history resource", member_id)
        raise ResourceError(f"Failed to retrieve loan history: {e!s}") from e


member_resources: list[dict[str, Any]] = [
    {
        "uri_template": "library://members/{member_id}/loans",
        "name": "Member Loans",
        "description": "Open loans for a member, each classified ACTIVE or OVERDUE with its accrued fine",
        "mime_type": "application/json",
        "handler": member_loans_handler,
    },
    {
        "uri_template": "library://members/{member_id}/reservations",
        "name": "Member Reservations",
        "description": "Pending and approved reservations held by a member",
        "mime_type": "application/json",
        "handler": member_reservations_handler,
    },
    {
        "uri_template": "library://members/{member_id}/fines",
        "name": "Member Fines",
        "description": "Unpaid fines on a member's returned loans",
        "mime_type": "application/json",
        "handler": member_fines_handler,
    },
    {
        "uri_template": "library://members/{member_id}/history",
        "name": "Member Loan History",
        "description": "Every loan a member has taken, open or returned, newest first",
        "mime_type": "application/json",
        "handler": member_history_handler,
    },
]
