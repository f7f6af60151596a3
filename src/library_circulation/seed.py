"""
Demo data for the circulation server.

Generates a small, reproducible library with Faker: titles with one to four
copies each, members (a few of them suspended or expired), default policy
settings, and some loans placed through the engine itself so every seeded
loan went through the same admission checks as a real one.
"""

import logging
import random
from dataclasses import dataclass, field

from faker import Faker
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .circulation.engine import CirculationEngine
from .database.book_repository import BookRepository
from .database.member_repository import MemberRepository
from .database.schema import Book as BookDB
from .database.session import atomic
from .database.settings_repository import SettingsRepository
from .errors import CirculationError
from .models.book import BookCreate
from .models.member import MemberCreate, MembershipStatus

logger = logging.getLogger(__name__)

CATEGORIES = ["Fiction", "Science", "History", "Biography", "Children", "Reference", "Poetry"]


@dataclass
class SeedSummary:
    book_ids: list[str] = field(default_factory=list)
    member_ids: list[str] = field(default_factory=list)
    loan_ids: list[str] = field(default_factory=list)
    settings_added: int = 0


def is_empty(session: Session) -> bool:
    return not session.execute(select(func.count()).select_from(BookDB)).scalar()


def seed_database(
    session: Session,
    num_books: int = 25,
    num_members: int = 12,
    num_loans: int = 10,
    seed: int = 42,
) -> SeedSummary:
    """Populate the database; returns the ids it created."""
    fake = Faker()
    Faker.seed(seed)
    rng = random.Random(seed)
    summary = SeedSummary()

    with atomic(session, "seed catalog"):
        summary.settings_added = SettingsRepository(session).seed_defaults()

        books = BookRepository(session)
        for _ in range(num_books):
            book = books.create_with_copies(
                BookCreate(
                    title=fake.catch_phrase().title(),
                    isbn=fake.unique.isbn13(separator=""),
                    authors=fake.name(),
                    publication_year=rng.randint(1900, 2024),
                    category=rng.choice(CATEGORIES),
                    publisher=fake.company(),
                    copies=rng.randint(1, 4),
                ),
                acquired=fake.date_between(start_date="-5y", end_date="today"),
            )
            summary.book_ids.append(book.id)

        members = MemberRepository(session)
        for index in range(num_members):
            # Roughly one in six members cannot transact.
            status = MembershipStatus.ACTIVE
            if index % 6 == 5:
                status = rng.choice([MembershipStatus.SUSPENDED, MembershipStatus.EXPIRED])
            member = members.create(
                MemberCreate(
                    name=fake.name(),
                    email=fake.unique.email(),
                    membership_status=status,
                    membership_date=fake.date_between(start_date="-3y", end_date="today"),
                )
            )
            summary.member_ids.append(member.id)

    engine = CirculationEngine(session)
    for _ in range(num_loans):
        try:
            loan = engine.borrow(rng.choice(summary.book_ids), rng.choice(summary.member_ids))
        except CirculationError as e:
            logger.debug("Seed loan skipped: %s", e)
            continue
        summary.loan_ids.append(loan.id)

    logger.info(
        "Seeded %d books, %d members, %d loans",
        len(summary.book_ids),
        len(summary.member_ids),
        len(summary.loan_ids),
    )
    return summary
