"""Tests for demo data seeding and server start-up preparation."""

from sqlalchemy import func, select

from library_circulation import server
from library_circulation.config import ServerConfig
from library_circulation.database.schema import Book as BookDB
from library_circulation.database.schema import BookCopy as BookCopyDB
from library_circulation.database.schema import Loan as LoanDB
from library_circulation.database.session import get_db_manager, reset_db_manager
from library_circulation.database.settings_repository import SettingsRepository
from library_circulation.models.copy import CopyStatus
from library_circulation.models.settings import SettingKey
from library_circulation.seed import is_empty, seed_database


def count(session, model):
    return session.execute(select(func.count()).select_from(model)).scalar()


class TestSeedDatabase:
    def test_small_library(self, test_db_session):
        assert is_empty(test_db_session)

        summary = seed_database(test_db_session, num_books=5, num_members=6, num_loans=4)

        assert not is_empty(test_db_session)
        assert len(summary.book_ids) == 5
        assert len(summary.member_ids) == 6
        assert summary.settings_added == len(SettingKey)
        assert len(summary.loan_ids) <= 4
        assert count(test_db_session, LoanDB) == len(summary.loan_ids)

    def test_loans_hold_their_copies(self, test_db_session):
        seed_database(test_db_session, num_books=4, num_members=6, num_loans=6)

        for loan in test_db_session.execute(select(LoanDB)).scalars():
            copy = test_db_session.get(BookCopyDB, loan.copy_id)
            assert copy.status == CopyStatus.BORROWED

    def test_books_have_copies(self, test_db_session):
        summary = seed_database(test_db_session, num_books=3, num_members=1, num_loans=0)

        for book_id in summary.book_ids:
            copies = test_db_session.execute(
                select(func.count()).select_from(BookCopyDB).where(BookCopyDB.book_id == book_id)
            ).scalar()
            assert 1 <= copies <= 4


class TestPrepareDatabase:
    def test_creates_schema_and_settings(self, test_database_url, monkeypatch):
        reset_db_manager()
        manager = get_db_manager(test_database_url)
        monkeypatch.setattr(server, "config", ServerConfig(seed_on_startup=False))

        server.prepare_database()

        with manager.session_scope() as session:
            assert SettingsRepository(session).seed_defaults() == 0
            assert is_empty(session)

    def test_seeds_empty_database_once(self, test_database_url, monkeypatch):
        reset_db_manager()
        manager = get_db_manager(test_database_url)
        monkeypatch.setattr(server, "config", ServerConfig(seed_on_startup=True))

        server.prepare_database()
        with manager.session_scope() as session:
            books = count(session, BookDB)
        server.prepare_database()

        with manager.session_scope() as session:
            assert books > 0
            assert count(session, BookDB) == books

    def test_server_registers_name(self):
        assert server.mcp.name == "library-circulation"
