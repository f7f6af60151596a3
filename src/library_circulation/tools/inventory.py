"""
Inventory tools for librarians: add copies, retire copies, manual status edits.

Manual status edits only move a copy between AVAILABLE and IN_REPAIR,
DAMAGED or LOST. Lent and held copies are refused.
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.session import get_session
from ..errors import CirculationError
from ..models.copy import CopyStatus
from .base import build_engine, invalid_input, rejected, success_response, unexpected


class AddCopyInput(BaseModel):
    book_id: str = Field(..., pattern=r"^book_[a-zA-Z0-9]+$")
    location: str | None = Field(
        default=None, description="Shelf location; Main Library when omitted", max_length=200
    )


class RetireCopiesInput(BaseModel):
    book_id: str = Field(..., pattern=r"^book_[a-zA-Z0-9]+$")


class SetCopyStatusInput(BaseModel):
    copy_id: str = Field(..., pattern=r"^copy_[a-zA-Z0-9]+$")
    status: CopyStatus = Field(
        ..., description="AVAILABLE, IN_REPAIR, DAMAGED or LOST", examples=["IN_REPAIR"]
    )


async def add_copy_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = AddCopyInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("add_copy", e)

    try:
        with get_session() as session:
            copy = build_engine(session).add_copy(params.book_id, params.location)
    except (CirculationError, ValueError) as e:
        return rejected("add_copy", e)
    except Exception as e:
        return unexpected("add_copy", e)

    return success_response(
        f"Added copy #{copy.copy_number} ({copy.id}) of book {copy.book_id} at {copy.location}",
        {"copy": copy.model_dump(mode="json")},
    )


async def retire_available_copies_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = RetireCopiesInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("retire_available_copies", e)

    try:
        with get_session() as session:
            result = build_engine(session).retire_available_copies(params.book_id)
    except (CirculationError, ValueError) as e:
        return rejected("retire_available_copies", e)
    except Exception as e:
        return unexpected("retire_available_copies", e)

    message = f"Retired {result.retired_count} copies of book {result.book_id}."
    if result.unavailable_copy_ids:
        message += (
            f" {len(result.unavailable_copy_ids)} copies were not available for retirement: "
            + ", ".join(result.unavailable_copy_ids)
        )
    return success_response(message, {"retirement": result.model_dump(mode="json")})


async def set_copy_status_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = SetCopyStatusInput.model_validate(arguments)
    except ValidationError as e:
        return invalid_input("set_copy_status", e)

    try:
        with get_session() as session:
            copy = build_engine(session).set_copy_status(params.copy_id, params.status)
    except (CirculationError, ValueError) as e:
        return rejected("set_copy_status", e)
    except Exception as e:
        return unexpected("set_copy_status", e)

    return success_response(
        f"Copy {copy.id} is now {copy.status.value}", {"copy": copy.model_dump(mode="json")}
    )


add_copy = {
    "name": "add_copy",
    "description": "Add a new copy of an existing book with the next copy number.",
    "inputSchema": AddCopyInput.model_json_schema(),
    "handler": add_copy_handler,
}

retire_available_copies = {
    "name": "retire_available_copies",
    "description": (
        "Retire every available copy of a book. Borrowed, held or damaged copies are left "
        "alone and listed in the result."
    ),
    "inputSchema": RetireCopiesInput.model_json_schema(),
    "handler": retire_available_copies_handler,
}

set_copy_status = {
    "name": "set_copy_status",
    "description": (
        "Mark an available copy as in repair, damaged or lost, or put such a copy back "
        "into circulation."
    ),
    "inputSchema": SetCopyStatusInput.model_json_schema(),
    "handler": set_copy_status_handler,
}
