"""Persistence layer: schema, sessions and repositories."""

from .book_repository import BookRepository
from .copy_repository import CopyRepository
from .loan_repository import LoanRepository
from .member_repository import MemberRepository
from .reservation_repository import ReservationRepository
from .schema import Base
from .session import (
    DatabaseManager,
    atomic,
    get_db_manager,
    get_session,
    reset_db_manager,
    session_scope,
)
from .settings_repository import SettingsRepository

__all__ = [
    "Base",
    "BookRepository",
    "CopyRepository",
    "DatabaseManager",
    "LoanRepository",
    "MemberRepository",
    "ReservationRepository",
    "SettingsRepository",
    "atomic",
    "get_db_manager",
    "get_session",
    "reset_db_manager",
    "session_scope",
]
