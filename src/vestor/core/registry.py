"""
Vesting Registry

Process-wide record shared by every ticket: the sequence counter that mints
ticket ids and the seed from which the vault authority is derived.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any

from vestor.core.checked_math import checked_add, require_u64
from vestor.core.constants import INITIAL_SEQUENCE
from vestor.core.derivation import VaultAuthority, derive_authority, validate_registry_seed
from vestor.core.vesting_exceptions import ArithmeticFaultError, CorruptedStateError

logger = logging.getLogger(__name__)


class VestingRegistry:
    """
    Sequence generator and authority anchor for all tickets.

    The counter starts at 1 and only moves forward. Callers that create a
    ticket must hold ``lock`` across reading the current sequence and
    advancing it, so two creations can never observe the same value.

    Attributes:
        registry_id: Stable identifier mixed into every derived address
        nonce: Single-byte seed for the authority derivation
        lock: Re-entrant lock guarding the counter
    """

    def __init__(self, registry_id: str, nonce: int = 0, next_sequence: int = INITIAL_SEQUENCE) -> None:
        validate_registry_seed(registry_id, nonce)
        require_u64(next_sequence, "next_sequence")
        if next_sequence < INITIAL_SEQUENCE:
            raise CorruptedStateError(
                f"Registry sequence must start at {INITIAL_SEQUENCE}, got {next_sequence}"
            )
        self.registry_id = registry_id
        self.nonce = nonce
        self._next_sequence = next_sequence
        self.lock = RLock()

    @property
    def next_sequence(self) -> int:
        return self._next_sequence

    @property
    def authority(self) -> VaultAuthority:
        # Recomputed on each access; never persisted
        return derive_authority(self.registry_id, self.nonce)

    def advance_sequence(self, expected: int) -> int:
        """
        Advance the counter past ``expected``.

        Args:
            expected: The sequence value the caller captured under ``lock``

        Returns:
            The new next-sequence value

        Raises:
            ArithmeticFaultError: If the counter moved since it was captured
                or would overflow
        """
        with self.lock:
            if expected != self._next_sequence:
                raise ArithmeticFaultError(
                    "Registry sequence moved during creation",
                    details={"expected": expected, "actual": self._next_sequence},
                )
            self._next_sequence = checked_add(self._next_sequence, 1)
            logger.debug(
                "Registry %s sequence advanced to %s",
                self.registry_id,
                self._next_sequence,
                extra={"event": "registry.sequence_advanced", "next_sequence": self._next_sequence},
            )
            return self._next_sequence

    def to_dict(self) -> dict[str, Any]:
        return {
            "registry_id": self.registry_id,
            "nonce": self.nonce,
            "next_sequence": self._next_sequence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VestingRegistry":
        try:
            return cls(
                registry_id=data["registry_id"],
                nonce=data["nonce"],
                next_sequence=data["next_sequence"],
            )
        except KeyError as exc:
            raise CorruptedStateError(f"Registry record missing field {exc}") from exc
