"""
Vestor Core Module

Ticket model, unlock arithmetic, registry, ledger and lifecycle controller.
"""

from .registry import VestingRegistry
from .ticket import TicketStatus, VestingTicket
from .token_ledger import FundsTransfer, InMemoryTokenLedger
from .unlock import available_amount, has_cliffed, unlocked_amount
from .vesting_program import VestingProgram

__all__ = [
    "VestingProgram",
    "VestingRegistry",
    "VestingTicket",
    "TicketStatus",
    "FundsTransfer",
    "InMemoryTokenLedger",
    "has_cliffed",
    "unlocked_amount",
    "available_amount",
]
