"""
Reservation tools.

``reserve_book`` is the member-facing request; approve, disapprove and
fulfill are librarian actions; cancel is available to both. Only approval
and fulfilment move a copy, and only the copy recorded on the reservation.
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.session import get_session
from ..errors import CirculationError
from .base import build_engine, invalid_input, rejected, success_response, unexpected

RESERVATION_ID = r"^reservation_[a-zA-Z0-9]+$"


class ReserveBookInput(BaseModel):
    """Input schema for the reserve_book tool."""

    book_id: str = Field(..., pattern=r"^book_[a-zA-Z0-9]+$")
    member_id: str = Field(..., pattern=r"^member_[a-zA-Z0-9]+$")
    expiry_days: int | None = Field(
        default=None,
        description="Days until the request lapses; the library default when omitted",
        ge=1,
        le=90,
    )
    notes: str | None = Field(default=None, max_length=500)


class ReservationActionInput(BaseModel):
    """Input schema for tools that act on one existing reservation."""

    reservation_id: str = Field(..., pattern=RESERVATION_ID)


class ApproveReservationInput(ReservationActionInput):
    librarian_id: str | None = Field(default=None, max_length=50)


class FulfillReservationInput(ReservationActionInput):
    loan_period_days: int | None = Field(default=None, ge=1, le=365)
    librarian_id: str | None = Field(default=None, max_length=50)


async def reserve_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = ReserveBookInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("reserve_book", e)

    try:
        with get_session() as session:
            reservation = build_engine(session).reserve(
                params.book_id, params.member_id, params.expiry_days, params.notes
            )
    except (CirculationError, ValueError) as e:
        return rejected("reserve_book", e)
    except Exception as e:
        return unexpected("reserve_book", e)

    message = (
        f"Reservation {reservation.id} placed for book {reservation.book_id}; "
        f"awaiting librarian approval. Expires {reservation.expiry_date.strftime('%B %d, %Y')}"
    )
    return success_response(message, {"reservation": reservation.model_dump(mode="json")})


async def approve_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = ApproveReservationInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("approve_reservation", e)

    try:
        with get_session() as session:
            reservation = build_engine(session).approve(params.reservation_id, params.librarian_id)
    except (CirculationError, ValueError) as e:
        return rejected("approve_reservation", e)
    except Exception as e:
        return unexpected("approve_reservation", e)

    return success_response(
        f"Reservation {reservation.id} approved; copy {reservation.assigned_copy_id} is on hold",
        {"reservation": reservation.model_dump(mode="json")},
    )


async def disapprove_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = ReservationActionInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("disapprove_reservation", e)

    try:
        with get_session() as session:
            reservation = build_engine(session).disapprove(params.reservation_id)
    except (CirculationError, ValueError) as e:
        return rejected("disapprove_reservation", e)
    except Exception as e:
        return unexpected("disapprove_reservation", e)

    return success_response(
        f"Reservation {reservation.id} returned to pending; its copy is available again",
        {"reservation": reservation.model_dump(mode="json")},
    )


async def cancel_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = ReservationActionInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("cancel_reservation", e)

    try:
        with get_session() as session:
            reservation = build_engine(session).cancel(params.reservation_id)
    except (CirculationError, ValueError) as e:
        return rejected("cancel_reservation", e)
    except Exception as e:
        return unexpected("cancel_reservation", e)

    return success_response(
        f"Reservation {reservation.id} cancelled",
        {"reservation": reservation.model_dump(mode="json")},
    )


async def fulfill_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = FulfillReservationInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("fulfill_reservation", e)

    try:
        with get_session() as session:
            reservation = build_engine(session).fulfill(
                params.reservation_id, params.loan_period_days, params.librarian_id
            )
    except (CirculationError, ValueError) as e:
        return rejected("fulfill_reservation", e)
    except Exception as e:
        return unexpected("fulfill_reservation", e)

    return success_response(
        f"Reservation {reservation.id} fulfilled as loan {reservation.loan_id}",
        {"reservation": reservation.model_dump(mode="json")},
    )


class ExpireReservationsInput(BaseModel):
    """The sweep takes no arguments; it expires everything past its date today."""


async def expire_reservations_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        ExpireReservationsInput.model_validate(arguments or {})
    except ValidationError as e:
        return invalid_input("expire_reservations", e)

    try:
        with get_session() as session:
            expired = build_engine(session).expire_reservations()
    except (CirculationError, ValueError) as e:
        return rejected("expire_reservations", e)
    except Exception as e:
        return unexpected("expire_reservations", e)

    return success_response(
        f"Expired {len(expired)} reservation(s)", {"expired_reservation_ids": expired}
    )


reserve_book = {
    "name": "reserve_book",
    "description": (
        "Request a hold on a book. Creates a pending reservation without touching any copy; "
        "a librarian approves it to put a copy on hold."
    ),
    "inputSchema": ReserveBookInput.model_json_schema(),
    "handler": reserve_book_handler,
}

approve_reservation = {
    "name": "approve_reservation",
    "description": "Approve a pending reservation by putting the first available copy on hold.",
    "inputSchema": ApproveReservationInput.model_json_schema(),
    "handler": approve_reservation_handler,
}

disapprove_reservation = {
    "name": "disapprove_reservation",
    "description": "Undo an approval: release the held copy and set the reservation back to pending.",
    "inputSchema": ReservationActionInput.model_json_schema(),
    "handler": disapprove_reservation_handler,
}

cancel_reservation = {
    "name": "cancel_reservation",
    "description": "Cancel a pending or approved reservation, releasing any held copy.",
    "inputSchema": ReservationActionInput.model_json_schema(),
    "handler": cancel_reservation_handler,
}

fulfill_reservation = {
    "name": "fulfill_reservation",
    "description": "Lend the held copy of an approved reservation to its member.",
    "inputSchema": FulfillReservationInput.model_json_schema(),
    "handler": fulfill_reservation_handler,
}

expire_reservations = {
    "name": "expire_reservations",
    "description": "Expire every open reservation past its expiry date and release held copies.",
    "inputSchema": ExpireReservationsInput.model_json_schema(),
    "handler": expire_reservations_handler,
}
