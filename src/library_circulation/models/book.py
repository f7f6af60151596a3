"""Book model: catalog identity referenced by copies and reservations."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Book(BaseModel):
    """
    A cataloged title.

    Circulation never changes a book; it only checks that one exists and
    counts its copies.
    """

    id: str = Field(..., pattern=r"^book_[a-zA-Z0-9]+$", examples=["book_91c04e7d2a11"])
    title: str = Field(..., min_length=1, max_length=500)
    isbn: str | None = Field(
        default=None,
        description="ISBN-10 or ISBN-13 without hyphens",
        pattern=r"^(\d{9}[\dX]|\d{13})$",
    )
    authors: str | None = Field(default=None, max_length=500, description="Display string")
    publication_year: int | None = Field(default=None, ge=1450, le=2100)
    category: str | None = Field(default=None, max_length=100)
    publisher: str | None = Field(default=None, max_length=200)
    created_at: datetime | None = None

    @field_validator("isbn", mode="before")
    @classmethod
    def normalize_isbn(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return str(v).replace("-", "").replace(" ", "").upper()

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)


class BookCreate(BaseModel):
    """Input for adding a book together with its initial copies."""

    title: str = Field(..., min_length=1, max_length=500)
    isbn: str | None = Field(default=None, pattern=r"^(\d{9}[\dX]|\d{13})$")
    authors: str | None = None
    publication_year: int | None = Field(default=None, ge=1450, le=2100)
    category: str | None = None
    publisher: str | None = None
    copies: int = Field(default=1, ge=0, le=100, description="Number of copies to create")
    location: str | None = None

    @field_validator("isbn", mode="before")
    @classmethod
    def normalize_isbn(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return str(v).replace("-", "").replace(" ", "").upper()
