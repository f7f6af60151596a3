"""Shared plumbing for the circulation services."""

from collections.abc import Callable
from datetime import date, datetime
from typing import TypeVar

from sqlalchemy.orm import Session

from ..database.session import atomic
from ..errors import ConflictError
from ..models.settings import CirculationPolicy

Clock = Callable[[], datetime]

T = TypeVar("T")


class CirculationService:
    """
    Base for services that run engine operations against one session.

    Args:
        session: Session the service reads and writes through
        policy: Policy snapshot; every admission decision reads from it
        clock: Source of "now", injectable so tests control dates
        allocation_attempts: Tries for operations that race for a copy
    """

    def __init__(
        self,
        session: Session,
        policy: CirculationPolicy,
        clock: Clock = datetime.now,
        allocation_attempts: int = 3,
    ):
        self.session = session
        self.policy = policy
        self.clock = clock
        self.allocation_attempts = max(1, allocation_attempts)

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.clock().date()

    def run_allocation(self, operation: str, attempt: Callable[[], T]) -> T:
        """
        Run ``attempt`` as one unit of work, retrying after a lost copy race.

        Each try starts from a rolled-back session, so admission checks and
        the copy search are evaluated again against current state. After the
        last try the ``ConflictError`` propagates.
        """
        remaining = self.allocation_attempts
        while True:
            try:
                with atomic(self.session, operation):
                    return attempt()
            except ConflictError:
                remaining -= 1
                if remaining == 0:
                    raise
