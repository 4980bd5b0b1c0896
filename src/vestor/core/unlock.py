"""
Unlock calculator for linearly vesting tickets.

Pure functions over a ticket's schedule fields and a caller-supplied unix
timestamp. Nothing here reads the clock or mutates the ticket.
"""

from __future__ import annotations

from typing import Any

from vestor.core.checked_math import checked_add, checked_mul, checked_sub, require_u64
from vestor.core.constants import SECONDS_PER_DAY
from vestor.core.ticket import VestingTicket


def cliff_timestamp(ticket: VestingTicket) -> int:
    return checked_add(ticket.created_at, checked_mul(ticket.cliff_days, SECONDS_PER_DAY))


def fully_vested_timestamp(ticket: VestingTicket) -> int:
    return checked_add(ticket.created_at, checked_mul(ticket.vesting_days, SECONDS_PER_DAY))


def has_cliffed(ticket: VestingTicket, now: int) -> bool:
    """
    Return True once the cliff has passed.

    A zero cliff has always passed. Otherwise the boundary is inclusive:
    at exactly ``created_at + cliff_days * 86400`` the cliff has passed.
    """
    if ticket.cliff_days == 0:
        return True
    return require_u64(now, "now") >= cliff_timestamp(ticket)


def unlocked_amount(ticket: VestingTicket, now: int) -> int:
    """
    Amount of the grant unlocked at ``now``, ignoring the cliff and claims.

    ``floor(elapsed * total_amount / vesting_seconds)``, capped at
    ``total_amount`` once the vesting period is over. A zero-day vesting
    period unlocks everything at creation.

    Raises:
        ArithmeticFaultError: If ``now`` precedes ``created_at`` or the
            vesting period overflows u64 seconds
    """
    elapsed = checked_sub(require_u64(now, "now"), ticket.created_at)
    vesting_seconds = checked_mul(ticket.vesting_days, SECONDS_PER_DAY)
    if vesting_seconds == 0 or elapsed >= vesting_seconds:
        return ticket.total_amount
    # The product is exact; the quotient is below total_amount here
    return elapsed * ticket.total_amount // vesting_seconds


def available_amount(ticket: VestingTicket, now: int) -> int:
    """
    Unlocked amount not yet claimed; 0 before the cliff.

    Raises:
        ArithmeticFaultError: If more has been claimed than is unlocked
    """
    if not has_cliffed(ticket, now):
        return 0
    return checked_sub(unlocked_amount(ticket, now), ticket.claimed_amount)


def vesting_progress(ticket: VestingTicket, now: int) -> dict[str, Any]:
    """Read-only snapshot of where a ticket stands at ``now``."""
    cliffed = has_cliffed(ticket, now)
    unlocked = unlocked_amount(ticket, now)
    available = 0 if ticket.revoked else available_amount(ticket, now)
    return {
        "ticket_id": ticket.ticket_id,
        "status": ticket.status.value,
        "now": now,
        "has_cliffed": cliffed,
        "cliff_at": cliff_timestamp(ticket),
        "fully_vested_at": fully_vested_timestamp(ticket),
        "total_amount": ticket.total_amount,
        "unlocked_amount": unlocked,
        "claimed_amount": ticket.claimed_amount,
        "available_amount": available,
        "remaining_balance": ticket.remaining_balance,
    }
