"""
Vestor - Funds transfer collaborator

Defines the interface the lifecycle controller uses to move the vested asset,
and an in-memory ledger implementing it. Every account has one owner; a
transfer only succeeds when ``authorized_by`` is that owner.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Protocol, runtime_checkable

from vestor.core.checked_math import checked_add, require_u64
from vestor.core.derivation import VaultAuthority
from vestor.core.vesting_exceptions import ArithmeticFaultError, CorruptedStateError, TransferFailedError

logger = logging.getLogger(__name__)

Authority = str | VaultAuthority


@runtime_checkable
class FundsTransfer(Protocol):
    """
    Protocol for the service that custodies and moves the vested asset.

    Implementations must be all-or-nothing: a failed transfer leaves every
    balance unchanged and raises TransferFailedError.
    """

    asset_id: str

    def open_account(self, account_id: str, owner: Authority) -> bool:
        """Designate ``account_id`` as controlled by ``owner``; True if newly opened."""
        ...

    def close_account(self, account_id: str) -> None:
        """Forget an empty account opened by ``open_account``."""
        ...

    def transfer(self, source: str, destination: str, amount: int, authorized_by: Authority) -> None:
        """Move ``amount`` from ``source`` to ``destination``."""
        ...

    def balance_of(self, account_id: str) -> int:
        """Get the balance held by ``account_id``."""
        ...


class InMemoryTokenLedger:
    """
    Single-asset ledger keeping balances and account owners in memory.

    Accounts that were never opened explicitly are owned by their own id,
    which is how user wallets behave: the grantor authorizes debits from
    the grantor's account by presenting its own address.
    """

    def __init__(self, asset_id: str) -> None:
        if not asset_id:
            raise ValueError("Asset id cannot be empty.")
        self.asset_id = asset_id
        self.balances: dict[str, int] = {}
        self.owners: dict[str, str] = {}
        self.total_supply = 0
        self.lock = RLock()
        logger.info("InMemoryTokenLedger initialized for asset %s", asset_id)

    def _owner_of(self, account_id: str) -> str:
        return self.owners.get(account_id, account_id)

    def open_account(self, account_id: str, owner: Authority) -> bool:
        with self.lock:
            owner_address = str(owner)
            existing = self.owners.get(account_id)
            if existing is not None and existing != owner_address:
                raise TransferFailedError(
                    f"Account {account_id} is already owned by another authority.",
                    destination=account_id,
                )
            if existing is not None:
                return False
            self.owners[account_id] = owner_address
            self.balances.setdefault(account_id, 0)
            return True

    def close_account(self, account_id: str) -> None:
        with self.lock:
            if self.balances.get(account_id, 0) != 0:
                raise TransferFailedError(
                    f"Account {account_id} still holds funds and cannot be closed.",
                    source=account_id,
                )
            self.owners.pop(account_id, None)
            self.balances.pop(account_id, None)

    def mint(self, account_id: str, amount: int) -> int:
        """
        Credit newly issued units to an account.

        Returns:
            The account's new balance
        """
        if not account_id:
            raise ValueError("Account id cannot be empty.")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("Mint amount must be a positive integer.")
        with self.lock:
            new_balance = checked_add(self.balances.get(account_id, 0), amount)
            new_supply = checked_add(self.total_supply, amount)
            self.balances[account_id] = new_balance
            self.total_supply = new_supply
        logger.info(
            "Minted %s %s to %s",
            amount,
            self.asset_id,
            account_id,
            extra={"event": "ledger.mint", "account": account_id, "amount": amount},
        )
        return new_balance

    def transfer(self, source: str, destination: str, amount: int, authorized_by: Authority) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise TransferFailedError(
                "Transfer amount must be a positive integer.",
                source=source,
                destination=destination,
                amount=amount,
            )
        if source == destination:
            raise TransferFailedError(
                "Source and destination must differ.", source=source, destination=destination, amount=amount
            )

        with self.lock:
            if str(authorized_by) != self._owner_of(source):
                logger.warning(
                    "Transfer rejected: authority does not own %s",
                    source,
                    extra={"event": "ledger.transfer_unauthorized", "source": source},
                )
                raise TransferFailedError(
                    f"Authority is not permitted to debit {source}.",
                    source=source,
                    destination=destination,
                    amount=amount,
                )

            source_balance = self.balances.get(source, 0)
            if source_balance < amount:
                logger.warning(
                    "Insufficient balance for transfer from %s",
                    source,
                    extra={
                        "event": "ledger.transfer_insufficient",
                        "source": source,
                        "amount": amount,
                        "balance": source_balance,
                    },
                )
                raise TransferFailedError(
                    f"Insufficient balance in {source}: has {source_balance}, needs {amount}.",
                    source=source,
                    destination=destination,
                    amount=amount,
                )

            try:
                destination_balance = checked_add(self.balances.get(destination, 0), amount)
            except ArithmeticFaultError as exc:
                raise TransferFailedError(
                    f"Balance overflow crediting {destination}.",
                    source=source,
                    destination=destination,
                    amount=amount,
                ) from exc
            self.balances[source] = source_balance - amount
            self.balances[destination] = destination_balance

        logger.info(
            "Transferred %s %s from %s to %s",
            amount,
            self.asset_id,
            source,
            destination,
            extra={
                "event": "ledger.transfer",
                "source": source,
                "destination": destination,
                "amount": amount,
            },
        )

    def balance_of(self, account_id: str) -> int:
        return self.balances.get(account_id, 0)

    def to_dict(self) -> dict[str, Any]:
        with self.lock:
            return {
                "asset_id": self.asset_id,
                "total_supply": self.total_supply,
                "balances": dict(self.balances),
                "owners": dict(self.owners),
            }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InMemoryTokenLedger":
        try:
            ledger = cls(data["asset_id"])
            ledger.total_supply = require_u64(data["total_supply"], "total_supply")
            ledger.balances = {
                account: require_u64(balance, "balance") for account, balance in data["balances"].items()
            }
            ledger.owners = dict(data.get("owners", {}))
        except (KeyError, AttributeError, ValueError) as exc:
            raise CorruptedStateError(f"Ledger record is malformed: {exc}") from exc
        if sum(ledger.balances.values()) != ledger.total_supply:
            raise CorruptedStateError("Ledger balances do not add up to total supply")
        return ledger
