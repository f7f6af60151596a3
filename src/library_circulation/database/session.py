"""
Database session management for the circulation engine.

Every engine operation is one short unit of work on a SQLAlchemy ``Session``:
it either commits everything it changed or rolls all of it back. The helpers
at the bottom of this module translate SQLAlchemy failures into the engine's
error taxonomy so nothing above this layer sees a raw driver exception.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from ..errors import DuplicateError, StoreError
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseManager:
    """
    Owns the engine and session factory for one database.

    File-backed SQLite gets a regular connection pool so that separate
    sessions run in separate transactions; in-memory SQLite needs a single
    shared connection or every session would see an empty database.
    """

    def __init__(self, database_url: str | None = None):
        if database_url is None:
            config = get_config()
            database_url = config.get_database_url()
            logger.info("Using SQLite database at: %s", config.database_path)

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def is_memory(self) -> bool:
        return self.database_url in ("sqlite://", "sqlite:///:memory:")

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if self.database_url.startswith("sqlite"):
                kwargs = {"connect_args": {"check_same_thread": False}, "echo": False}
                if self.is_memory:
                    kwargs["poolclass"] = StaticPool
                self._engine = create_engine(self.database_url, **kwargs)

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope: commit on success, roll back on error.

        ```python
        with db_manager.session_scope() as session:
            CirculationEngine(session).borrow(book_id, member_id)
        ```
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except Exception:
            logger.debug("Rolling back session after error", exc_info=True)
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """Create all tables, optionally dropping existing ones first."""
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Health check: run ``SELECT 1``."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager instance.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - Singleton pattern for database manager

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Dispose the global manager so the next call builds a fresh one."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def get_session() -> Session:
    """Open a new session; callers use it as a context manager."""
    return get_db_manager().create_session()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    with get_db_manager().session_scope() as session:
        yield session


# Error-translating helpers used by repositories and the engine


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Run a read against the session, translating driver failures to ``StoreError``.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Prefix for the ``StoreError`` message
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        raise StoreError(f"{error_msg}: {e!s}") from e


def safe_flush(session: Session, operation: str) -> None:
    """
    Flush pending changes so constraint violations surface inside the operation.

    Raises:
        DuplicateError: a unique index or constraint rejected the write
        StoreError: any other database failure
    """
    try:
        session.flush()
    except IntegrityError as e:
        raise DuplicateError(f"Database operation '{operation}' violated a constraint") from e
    except SQLAlchemyError as e:
        raise StoreError(f"Database operation '{operation}' failed: {e!s}") from e


def safe_execute(session: Session, statement, operation: str):
    """
    Execute a write statement and return its result.

    Raises:
        DuplicateError: a unique index or constraint rejected the write
        StoreError: any other database failure
    """
    try:
        return session.execute(statement)
    except IntegrityError as e:
        raise DuplicateError(f"Database operation '{operation}' violated a constraint") from e
    except SQLAlchemyError as e:
        raise StoreError(f"Database operation '{operation}' failed: {e!s}") from e


def safe_commit(session: Session, operation: str) -> None:
    """Commit, rolling back and translating the error on failure."""
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise DuplicateError(f"Database operation '{operation}' violated a constraint") from e
    except SQLAlchemyError as e:
        session.rollback()
        raise StoreError(f"Database operation '{operation}' failed: {e!s}") from e


@contextmanager
def atomic(session: Session, operation: str) -> Generator[Session, None, None]:
    """
    Run the body as one unit of work.

    Commits when the body finishes, rolls back if it raises. Nothing the body
    wrote survives a failure, which is what keeps a borrow from leaving a
    loan row behind when its copy transition fails.
    """
    try:
        yield session
    except BaseException:
        session.rollback()
        raise
    safe_commit(session, operation)
