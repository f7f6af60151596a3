"""Test configuration and fixtures for the library circulation server.

1. Isolated test databases - each test gets its own SQLite file
2. Configuration isolation - env config points at the test's tmp directory
3. Fixed clock - engine operations see a controllable "now"
4. Factories - books with copies and members in any status
"""

import os
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from library_circulation.circulation.engine import CirculationEngine
from library_circulation.config import ServerConfig, reset_config
from library_circulation.database.book_repository import BookRepository
from library_circulation.database.member_repository import MemberRepository
from library_circulation.database.schema import Base
from library_circulation.database.session import reset_db_manager
from library_circulation.models.book import Book, BookCreate
from library_circulation.models.member import Member, MemberCreate, MembershipStatus
from library_circulation.models.settings import CirculationPolicy

FIXED_NOW = datetime(2024, 3, 1, 10, 30)


class FakeClock:
    """Callable clock the engine reads "now" from; tests move it by hand."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.current += timedelta(days=days, hours=hours)


# === Environment Fixtures ===


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch) -> Generator[None, None, None]:
    """Keep every test's config (and the database directory it creates) under tmp_path."""
    monkeypatch.setenv("LIBRARY_CIRCULATION_DATABASE_PATH", str(tmp_path / "config" / "circulation.db"))
    reset_config()
    yield
    reset_config()
    reset_db_manager()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Provide an environment without LIBRARY_CIRCULATION_* variables."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("LIBRARY_CIRCULATION_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# === Test Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_circulation.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def test_db_session(test_database_url: str) -> Generator[Session, None, None]:
    """Session on a fresh file database with all tables created."""
    engine = create_engine(
        test_database_url,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)

    session_local = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )
    session = session_local()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def rival_session(test_db_session: Session, test_database_url: str) -> Generator[Session, None, None]:
    """An independent session on the same database file, as a concurrent request would hold."""
    engine = create_engine(
        test_database_url,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    session = sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


# === Configuration Fixtures ===


@pytest.fixture
def test_config(test_db_path: Path) -> Generator[ServerConfig, None, None]:
    reset_config()

    config = ServerConfig(
        server_name="test-library-circulation",
        server_version="0.0.1-test",
        database_path=test_db_path,
        debug=True,
        log_level="DEBUG",
    )

    yield config

    reset_config()


# === Engine Fixtures ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture
def policy() -> CirculationPolicy:
    return CirculationPolicy()


@pytest.fixture
def engine(test_db_session: Session, policy: CirculationPolicy, clock: FakeClock) -> CirculationEngine:
    return CirculationEngine(test_db_session, policy=policy, clock=clock, allocation_attempts=3)


@pytest.fixture
def engine_factory(
    test_db_session: Session, clock: FakeClock
) -> Callable[..., CirculationEngine]:
    """Build an engine with policy overrides, e.g. ``engine_factory(max_loans_per_member=1)``."""

    def _build(**overrides) -> CirculationEngine:
        return CirculationEngine(
            test_db_session,
            policy=CirculationPolicy(**overrides),
            clock=clock,
            allocation_attempts=3,
        )

    return _build


# === Test Data Fixtures ===


@pytest.fixture
def make_book(test_db_session: Session) -> Callable[..., Book]:
    """Create a committed book with ``copies`` AVAILABLE copies."""
    counter = {"n": 0}

    def _make(copies: int = 1, title: str | None = None) -> Book:
        counter["n"] += 1
        book = BookRepository(test_db_session).create_with_copies(
            BookCreate(title=title or f"Test Book {counter['n']}", copies=copies)
        )
        test_db_session.commit()
        return book

    return _make


@pytest.fixture
def make_member(test_db_session: Session) -> Callable[..., Member]:
    """Create a committed member with the given membership status."""
    counter = {"n": 0}

    def _make(status: MembershipStatus = MembershipStatus.ACTIVE) -> Member:
        counter["n"] += 1
        member = MemberRepository(test_db_session).create(
            MemberCreate(
                name=f"Member {counter['n']}",
                email=f"member{counter['n']}@example.com",
                membership_status=status,
            )
        )
        test_db_session.commit()
        return member

    return _make


@pytest.fixture
def book(make_book) -> Book:
    return make_book(copies=1)


@pytest.fixture
def member(make_member) -> Member:
    return make_member()


# === MCP Handler Fixtures ===


@pytest.fixture
def mock_get_session(test_db_session: Session, monkeypatch) -> Session:
    """Point tool and resource handlers at the test session.

    Handlers open their own session per call; patching the module-level
    ``get_session``/``session_scope`` lets them see the test data.
    """

    @contextmanager
    def _mock_get_session():
        yield test_db_session

    for module in ("circulation", "reservations", "inventory"):
        monkeypatch.setattr(f"library_circulation.tools.{module}.get_session", _mock_get_session)
    for module in ("members", "books"):
        monkeypatch.setattr(
            f"library_circulation.resources.{module}.session_scope", _mock_get_session
        )

    return test_db_session
