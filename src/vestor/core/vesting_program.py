"""
Vestor - Vesting lifecycle controller

Implements ``initialize``, ``create``, ``claim`` and ``revoke`` over a
registry, a ticket table and a funds-transfer collaborator.

Every operation validates all of its preconditions and computes the new
ticket values before asking the collaborator to move funds, and only writes
them back once the transfer succeeded. A failure at any step leaves the
registry, the ticket and the vault balances exactly as they were.
"""

from __future__ import annotations

import logging
import time
from threading import RLock
from typing import Any, Callable

from vestor.core.checked_math import checked_add, checked_sub, require_u64
from vestor.core.derivation import derive_ticket_address, derive_vault_address
from vestor.core.registry import VestingRegistry
from vestor.core.ticket import VestingTicket
from vestor.core.token_ledger import FundsTransfer
from vestor.core.unlock import available_amount, fully_vested_timestamp, vesting_progress
from vestor.core.vesting_exceptions import (
    ArithmeticFaultError,
    CorruptedStateError,
    InvalidAmountError,
    InvalidScheduleError,
    NothingToClaimError,
    TicketBalanceEmptyError,
    TicketIrrevocableError,
    TicketNotFoundError,
    TicketRevokedError,
    TransferFailedError,
    UnauthorizedCallerError,
    VestingError,
    VestingValidationError,
    get_error_context,
)

logger = logging.getLogger(__name__)


class VestingProgram:
    """
    Lifecycle controller for vesting tickets.

    Operations on one ticket are serialized by a per-ticket lock; creations
    are serialized by the registry lock, which covers reading and advancing
    the sequence counter. Operations on distinct tickets do not block each
    other.

    Attributes:
        registry: Sequence counter and vault authority anchor
        ledger: Funds-transfer collaborator holding the asset
        tickets: Ticket table keyed by ticket id
    """

    def __init__(
        self,
        registry: VestingRegistry,
        ledger: FundsTransfer,
        tickets: dict[str, VestingTicket] | None = None,
        time_provider: Callable[[], int] | None = None,
    ) -> None:
        self.registry = registry
        self.ledger = ledger
        self.tickets: dict[str, VestingTicket] = dict(tickets or {})
        self._time_provider = time_provider or (lambda: int(time.time()))
        self._ticket_locks: dict[str, RLock] = {}
        self._locks_guard = RLock()

    @classmethod
    def initialize(
        cls,
        registry_id: str,
        ledger: FundsTransfer,
        nonce: int = 0,
        time_provider: Callable[[], int] | None = None,
    ) -> "VestingProgram":
        """Create a program with an empty ticket table and sequence 1."""
        registry = VestingRegistry(registry_id, nonce)
        logger.info(
            "Vesting registry %s initialized",
            registry_id,
            extra={"event": "vesting.initialize", "registry_id": registry_id, "asset_id": ledger.asset_id},
        )
        return cls(registry, ledger, time_provider=time_provider)

    def _current_time(self) -> int:
        timestamp = self._time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc

    def _resolve_now(self, now: int | None) -> int:
        return require_u64(self._current_time() if now is None else now, "now")

    def _ticket_lock(self, ticket_id: str) -> RLock:
        # Locks exist only for stored tickets
        self._require_ticket(ticket_id)
        with self._locks_guard:
            lock = self._ticket_locks.get(ticket_id)
            if lock is None:
                lock = self._ticket_locks[ticket_id] = RLock()
            return lock

    def _require_ticket(self, ticket_id: str) -> VestingTicket:
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found.", details={"ticket_id": ticket_id})
        return ticket

    def _reject(self, operation: str, exc: VestingError) -> VestingError:
        logger.warning(
            "%s rejected: %s",
            operation,
            exc.message,
            extra={"event": f"vesting.{operation}.rejected", **get_error_context(exc)},
        )
        return exc

    def _transfer(self, operation: str, source: str, destination: str, amount: int, authorized_by: Any) -> None:
        try:
            self.ledger.transfer(source, destination, amount, authorized_by)
        except TransferFailedError as exc:
            raise self._reject(operation, exc)
        except VestingError:
            raise
        except Exception as exc:
            failure = TransferFailedError(
                f"Funds transfer failed: {exc}", source=source, destination=destination, amount=amount
            )
            raise self._reject(operation, failure) from exc

    # ==================== create ====================

    def create(
        self,
        grantor: str,
        beneficiary: str,
        cliff_days: int,
        vesting_days: int,
        amount: int,
        irrevocable: bool = False,
        now: int | None = None,
    ) -> VestingTicket:
        """
        Escrow ``amount`` from the grantor and open a new ticket.

        Args:
            grantor: Address funding the grant; authorizes the escrow debit
            beneficiary: Address entitled to claim
            cliff_days: Days before anything can be claimed
            vesting_days: Days over which the grant unlocks linearly
            amount: Total grant in base units
            irrevocable: Forbid revocation for the life of the ticket
            now: Creation timestamp, defaults to the time provider

        Returns:
            The stored ticket

        Raises:
            InvalidAmountError: amount is zero or negative
            InvalidScheduleError: vesting_days < cliff_days or negative days
            ArithmeticFaultError: a value does not fit in u64
            TransferFailedError: the grantor's account could not be debited
        """
        if not grantor or not beneficiary:
            raise self._reject("create", VestingValidationError("Grantor and beneficiary are required."))
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise self._reject(
                "create",
                InvalidAmountError("Amount must be greater than zero.", details={"amount": amount}),
            )
        for name, value in (("cliff_days", cliff_days), ("vesting_days", vesting_days)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise self._reject(
                    "create",
                    InvalidScheduleError(f"{name} must be a non-negative integer.", details={name: value}),
                )
        if vesting_days < cliff_days:
            raise self._reject(
                "create",
                InvalidScheduleError(
                    "Vesting period should be equal or longer than the cliff.",
                    details={"cliff_days": cliff_days, "vesting_days": vesting_days},
                ),
            )
        require_u64(amount, "amount")
        created_at = self._resolve_now(now)

        with self.registry.lock:
            sequence = self.registry.next_sequence
            ticket_id = derive_ticket_address(self.registry.registry_id, sequence)
            if ticket_id in self.tickets:
                raise CorruptedStateError(
                    f"Ticket {ticket_id} already exists for sequence {sequence}",
                    details={"sequence": sequence},
                )
            vault_id = derive_vault_address(ticket_id)
            ticket = VestingTicket(
                ticket_id=ticket_id,
                sequence=sequence,
                asset_id=self.ledger.asset_id,
                vault_id=vault_id,
                grantor=grantor,
                beneficiary=beneficiary,
                cliff_days=cliff_days,
                vesting_days=vesting_days,
                total_amount=amount,
                created_at=created_at,
                irrevocable=bool(irrevocable),
                remaining_balance=amount,
            )
            # Schedule end must be representable before any funds move
            fully_vested_timestamp(ticket)

            opened = self.ledger.open_account(vault_id, self.registry.authority)
            try:
                self._transfer("create", grantor, vault_id, amount, authorized_by=grantor)
            except VestingError:
                if opened:
                    self.ledger.close_account(vault_id)
                raise

            self.tickets[ticket_id] = ticket
            self.registry.advance_sequence(sequence)

        logger.info(
            "Ticket %s created: %s for %s over %s days (cliff %s)",
            ticket_id,
            amount,
            beneficiary,
            vesting_days,
            cliff_days,
            extra={
                "event": "vesting.create.success",
                "ticket_id": ticket_id,
                "sequence": sequence,
                "grantor": grantor,
                "beneficiary": beneficiary,
                "amount": amount,
                "irrevocable": ticket.irrevocable,
            },
        )
        return ticket

    # ==================== claim ====================

    def claim(self, ticket_id: str, caller: str, now: int | None = None) -> int:
        """
        Release everything unlocked and unclaimed to the beneficiary.

        Returns:
            The amount transferred, always greater than zero

        Raises:
            UnauthorizedCallerError: caller is not the beneficiary
            TicketRevokedError: the ticket was revoked
            TicketBalanceEmptyError: the vault has nothing left
            NothingToClaimError: nothing is available yet (or any more)
            TransferFailedError: the vault could not be debited
        """
        with self._ticket_lock(ticket_id):
            ticket = self._require_ticket(ticket_id)
            if caller != ticket.beneficiary:
                raise self._reject(
                    "claim",
                    UnauthorizedCallerError(
                        "Only the beneficiary may claim this ticket.", details={"ticket_id": ticket_id}
                    ),
                )
            if ticket.revoked:
                raise self._reject(
                    "claim", TicketRevokedError("Ticket has been revoked.", details={"ticket_id": ticket_id})
                )
            if ticket.remaining_balance == 0 or ticket.total_amount == 0:
                raise self._reject(
                    "claim",
                    TicketBalanceEmptyError("Ticket has no remaining balance.", details={"ticket_id": ticket_id}),
                )

            claimed_at = self._resolve_now(now)
            amount = available_amount(ticket, claimed_at)
            if amount == 0:
                raise self._reject(
                    "claim",
                    NothingToClaimError(
                        "Nothing is available to claim yet.",
                        details={"ticket_id": ticket_id, "now": claimed_at},
                    ),
                )

            claimed_amount = checked_add(ticket.claimed_amount, amount)
            remaining_balance = checked_sub(ticket.remaining_balance, amount)
            claim_count = checked_add(ticket.claim_count, 1)
            if claimed_amount > ticket.total_amount:
                raise ArithmeticFaultError(
                    "Claimed amount would exceed the grant",
                    details={"ticket_id": ticket_id, "claimed_amount": claimed_amount},
                )

            self._transfer(
                "claim", ticket.vault_id, ticket.beneficiary, amount, authorized_by=self.registry.authority
            )

            ticket.claimed_amount = claimed_amount
            ticket.remaining_balance = remaining_balance
            ticket.last_claimed_at = claimed_at
            ticket.claim_count = claim_count

        logger.info(
            "Ticket %s claimed %s (claim #%s)",
            ticket_id,
            amount,
            claim_count,
            extra={
                "event": "vesting.claim.success",
                "ticket_id": ticket_id,
                "amount": amount,
                "claimed_amount": claimed_amount,
                "remaining_balance": remaining_balance,
            },
        )
        return amount

    # ==================== revoke ====================

    def revoke(self, ticket_id: str, caller: str, now: int | None = None) -> int:
        """
        Return the whole remaining balance to the grantor and end the ticket.

        Returns:
            The amount refunded to the grantor

        Raises:
            UnauthorizedCallerError: caller is not the grantor
            TicketRevokedError: the ticket was already revoked
            TicketIrrevocableError: the ticket was created irrevocable
            TicketBalanceEmptyError: the vault has nothing left to return
            TransferFailedError: the vault could not be debited
        """
        with self._ticket_lock(ticket_id):
            ticket = self._require_ticket(ticket_id)
            if caller != ticket.grantor:
                raise self._reject(
                    "revoke",
                    UnauthorizedCallerError(
                        "Only the grantor may revoke this ticket.", details={"ticket_id": ticket_id}
                    ),
                )
            if ticket.revoked:
                raise self._reject(
                    "revoke", TicketRevokedError("Ticket has been revoked.", details={"ticket_id": ticket_id})
                )
            if ticket.irrevocable:
                raise self._reject(
                    "revoke", TicketIrrevocableError("Ticket is irrevocable.", details={"ticket_id": ticket_id})
                )
            if ticket.remaining_balance == 0:
                raise self._reject(
                    "revoke",
                    TicketBalanceEmptyError("Ticket has no remaining balance.", details={"ticket_id": ticket_id}),
                )

            revoked_at = self._resolve_now(now)
            refund = ticket.remaining_balance

            self._transfer("revoke", ticket.vault_id, ticket.grantor, refund, authorized_by=self.registry.authority)

            ticket.revoked = True
            ticket.revoked_at = revoked_at
            ticket.remaining_balance = 0

        logger.info(
            "Ticket %s revoked, %s returned to %s",
            ticket_id,
            refund,
            ticket.grantor,
            extra={"event": "vesting.revoke.success", "ticket_id": ticket_id, "refund": refund},
        )
        return refund

    # ==================== queries ====================

    def get_ticket(self, ticket_id: str) -> VestingTicket:
        return self._require_ticket(ticket_id)

    def list_tickets(self, grantor: str | None = None, beneficiary: str | None = None) -> list[VestingTicket]:
        """Tickets in creation order, optionally filtered by party."""
        with self.registry.lock:
            snapshot = list(self.tickets.values())
        matches = [
            ticket
            for ticket in snapshot
            if (grantor is None or ticket.grantor == grantor)
            and (beneficiary is None or ticket.beneficiary == beneficiary)
        ]
        return sorted(matches, key=lambda ticket: ticket.sequence)

    def get_vesting_status(self, ticket_id: str, now: int | None = None) -> dict[str, Any]:
        ticket = self._require_ticket(ticket_id)
        return vesting_progress(ticket, self._resolve_now(now))
