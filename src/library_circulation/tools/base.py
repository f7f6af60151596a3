"""
Response helpers shared by the circulation tools.

MCP tool results carry human-readable ``content`` for the model and
structured ``data`` for follow-up calls. Failures set ``isError`` and, for
engine errors, an ``error.code`` taken from the error class so clients can
branch without parsing text.
"""

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..circulation.engine import CirculationEngine
from ..config import get_config
from ..errors import CirculationError

logger = logging.getLogger(__name__)


def build_engine(session: Session) -> CirculationEngine:
    """Engine for one tool call; policy is read from the settings table."""
    return CirculationEngine(session, allocation_attempts=get_config().allocation_attempts)


def error_response(message: str, code: str | None = None, **details: Any) -> dict[str, Any]:
    response: dict[str, Any] = {
        "isError": True,
        "content": [{"type": "text", "text": message}],
    }
    if code is not None:
        response["error"] = {"code": code, **details}
    return response


def success_response(message: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "content": [{"type": "text", "text": message}],
        "data": data,
    }


def invalid_input(tool: str, error: ValidationError) -> dict[str, Any]:
    logger.warning("Invalid %s parameters: %s", tool, error)
    return error_response(f"Invalid {tool} parameters: {error}", "invalid_input")


def rejected(tool: str, error: CirculationError | ValueError) -> dict[str, Any]:
    """A business rule or argument check refused the operation."""
    logger.info("%s rejected: %s", tool, error)
    if isinstance(error, CirculationError):
        return error_response(str(error), error.code)
    return error_response(str(error), "invalid_input")


def unexpected(tool: str, error: Exception) -> dict[str, Any]:
    logger.exception("Unexpected error in %s tool", tool)
    return error_response(f"An unexpected error occurred: {error!s}", "internal_error")
