"""
Vesting Ticket

One record per grant: who granted it, who may claim it, the schedule it
unlocks on, and how much has moved out of its vault so far.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any

from vestor.core.checked_math import require_u64
from vestor.core.vesting_exceptions import ArithmeticFaultError, CorruptedStateError


class TicketStatus(Enum):
    """Reported lifecycle status of a ticket."""
    ACTIVE = "active"
    COMPLETED = "completed"  # active with nothing left in the vault
    REVOKED = "revoked"


_STRING_FIELDS = ("ticket_id", "asset_id", "vault_id", "grantor", "beneficiary")
_BOOL_FIELDS = ("irrevocable", "revoked")
_U64_FIELDS = (
    "sequence",
    "cliff_days",
    "vesting_days",
    "total_amount",
    "created_at",
    "claimed_amount",
    "remaining_balance",
    "last_claimed_at",
    "claim_count",
    "revoked_at",
)


@dataclass
class VestingTicket:
    """
    A single linearly-vesting grant.

    ``claimed_amount + remaining_balance == total_amount`` holds for as long
    as the ticket is not revoked; after revocation ``remaining_balance`` is 0
    and ``revoked`` never goes back to False.
    """

    ticket_id: str
    sequence: int
    asset_id: str
    vault_id: str
    grantor: str
    beneficiary: str
    cliff_days: int
    vesting_days: int
    total_amount: int
    created_at: int
    irrevocable: bool = False
    claimed_amount: int = 0
    remaining_balance: int = 0
    last_claimed_at: int = 0
    claim_count: int = 0
    revoked: bool = False
    revoked_at: int = 0

    @property
    def status(self) -> TicketStatus:
        if self.revoked:
            return TicketStatus.REVOKED
        if self.remaining_balance == 0:
            return TicketStatus.COMPLETED
        return TicketStatus.ACTIVE

    def is_consistent(self) -> bool:
        """Check the balance invariant for the ticket's current state."""
        if self.revoked:
            return self.remaining_balance == 0 and self.claimed_amount <= self.total_amount
        return (
            0 <= self.claimed_amount <= self.total_amount
            and self.claimed_amount + self.remaining_balance == self.total_amount
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VestingTicket":
        if not isinstance(data, dict):
            raise CorruptedStateError(f"Ticket record must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        try:
            ticket = cls(**{key: value for key, value in data.items() if key in known})
        except TypeError as exc:
            raise CorruptedStateError(f"Ticket record is malformed: {exc}") from exc

        for name in _STRING_FIELDS:
            if not isinstance(getattr(ticket, name), str):
                raise CorruptedStateError(f"Ticket field {name} must be a string", details={"field": name})
        for name in _BOOL_FIELDS:
            if not isinstance(getattr(ticket, name), bool):
                raise CorruptedStateError(f"Ticket field {name} must be a boolean", details={"field": name})
        for name in _U64_FIELDS:
            try:
                require_u64(getattr(ticket, name), name)
            except ArithmeticFaultError as exc:
                raise CorruptedStateError(
                    f"Ticket field {name} is invalid: {exc.message}", details={"field": name}
                ) from exc

        if not ticket.is_consistent():
            raise CorruptedStateError(
                f"Ticket {ticket.ticket_id} violates the balance invariant",
                details={"ticket_id": ticket.ticket_id},
            )
        return ticket
