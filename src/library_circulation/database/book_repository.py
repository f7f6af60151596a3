"""
Catalog collaborator.

The engine only asks ``book_exists``; ``create_with_copies`` exists so that
seeding and tests can put titles on the shelf.
"""

from datetime import date

from sqlalchemy import select

from ..errors import BookNotFoundError, DuplicateError
from ..models.book import Book, BookCreate
from ..models.copy import DEFAULT_LOCATION, CopyCondition, CopyStatus
from .repository import BaseRepository
from .schema import Book as BookDB
from .schema import BookCopy as BookCopyDB
from .schema import new_id
from .session import safe_flush, safe_query


class BookRepository(BaseRepository[BookDB, Book]):
    not_found_error = BookNotFoundError

    @property
    def model_class(self) -> type[BookDB]:
        return BookDB

    @property
    def response_schema(self) -> type[Book]:
        return Book

    def book_exists(self, book_id: str) -> bool:
        return self.exists(book_id)

    def get_by_isbn(self, isbn: str) -> Book | None:
        query = select(BookDB).where(BookDB.isbn == isbn)
        db_obj = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get book by ISBN",
        )
        return self._to_response_model(db_obj) if db_obj else None

    def create_with_copies(self, data: BookCreate, acquired: date | None = None) -> Book:
        """
        Add a book and ``data.copies`` copies numbered from 1.

        Flushes but does not commit.

        Raises:
            DuplicateError: ISBN already cataloged
        """
        if data.isbn and self.get_by_isbn(data.isbn) is not None:
            raise DuplicateError(f"A book with ISBN {data.isbn} already exists")

        book = BookDB(
            id=new_id("book"),
            title=data.title,
            isbn=data.isbn,
            authors=data.authors,
            publication_year=data.publication_year,
            category=data.category,
            publisher=data.publisher,
        )
        self.session.add(book)

        for number in range(1, data.copies + 1):
            self.session.add(
                BookCopyDB(
                    id=new_id("copy"),
                    book_id=book.id,
                    copy_number=number,
                    status=CopyStatus.AVAILABLE,
                    condition=CopyCondition.GOOD,
                    location=data.location or DEFAULT_LOCATION,
                    acquisition_date=acquired or date.today(),
                )
            )

        safe_flush(self.session, "create book")
        return self._to_response_model(book)
