"""
MCP tools for the circulation server.

Tools are the write side: every one of them runs exactly one engine
operation. Each entry in ``all_tools`` is a dict with ``name``,
``description``, ``inputSchema`` and ``handler``; ``server.py`` registers
them with FastMCP.
"""

from .circulation import borrow_book, pay_fine, renew_loan, return_loan
from .inventory import add_copy, retire_available_copies, set_copy_status
from .reservations import (
    approve_reservation,
    cancel_reservation,
    disapprove_reservation,
    expire_reservations,
    fulfill_reservation,
    reserve_book,
)

all_tools = [
    borrow_book,
    return_loan,
    renew_loan,
    pay_fine,
    reserve_book,
    approve_reservation,
    disapprove_reservation,
    cancel_reservation,
    fulfill_reservation,
    expire_reservations,
    add_copy,
    retire_available_copies,
    set_copy_status,
]

__all__ = [
    "add_copy",
    "all_tools",
    "approve_reservation",
    "borrow_book",
    "cancel_reservation",
    "disapprove_reservation",
    "expire_reservations",
    "fulfill_reservation",
    "pay_fine",
    "renew_loan",
    "reserve_book",
    "retire_available_copies",
    "return_loan",
    "set_copy_status",
]
