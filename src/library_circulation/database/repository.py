"""
Base repository for the circulation engine.

Repositories wrap a ``Session`` and return Pydantic models, never ORM rows,
to anything outside the ``database`` package. They do not commit; the
circulation services own transaction boundaries through
``session.atomic`` so that several repository calls can form one unit of
work.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from .schema import Base
from .session import safe_query

ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class BaseRepository(ABC, Generic[ModelType, ResponseSchemaType]):
    """Common lookups shared by every entity repository."""

    # Raised by ``get_row`` when the id is unknown.
    not_found_error: type[NotFoundError] = NotFoundError

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def find_row(self, id: str) -> ModelType | None:
        return safe_query(
            self.session,
            lambda s: s.get(self.model_class, str(id)),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def get_row(self, id: str) -> ModelType:
        """Fetch the ORM row or raise this repository's ``NotFoundError``."""
        db_obj = self.find_row(id)
        if db_obj is None:
            raise self.not_found_error(str(id))
        return db_obj

    def get(self, id: str) -> ResponseSchemaType:
        return self._to_response_model(self.get_row(id))

    def exists(self, id: str) -> bool:
        query = (
            select(func.count()).select_from(self.model_class).where(self.model_class.id == str(id))
        )
        count = safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to check existence"
        )
        return bool(count)
