"""The circulation engine and the lifecycle services behind it."""

from .engine import CirculationEngine
from .fines import FineLedger, overdue_fine
from .loans import LoanLifecycle
from .membership import MembershipGate
from .reservations import ReservationLifecycle

__all__ = [
    "CirculationEngine",
    "FineLedger",
    "LoanLifecycle",
    "MembershipGate",
    "ReservationLifecycle",
    "overdue_fine",
]
