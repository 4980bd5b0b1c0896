"""
Deterministic address derivation.

The registry never stores a signing secret for its vaults. Instead the
authority allowed to debit a vault is derived from the registry id and nonce,
and ticket / vault ids are derived from the registry id and the sequence
number captured at creation. Same inputs always give the same address.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from vestor.core.constants import AUTHORITY_DOMAIN, NONCE_MAX, TICKET_DOMAIN, VAULT_DOMAIN
from vestor.core.vesting_exceptions import InvalidRegistryError


@dataclass(frozen=True)
class VaultAuthority:
    """Capability that authorizes outbound transfers from registry-owned vaults."""

    address: str

    def __str__(self) -> str:
        return self.address


def _digest(domain: bytes, *seeds: bytes) -> str:
    hasher = hashlib.sha256()
    hasher.update(domain)
    for seed in seeds:
        # Length-prefix each seed so ("ab", "c") and ("a", "bc") differ
        hasher.update(len(seed).to_bytes(4, "big"))
        hasher.update(seed)
    return hasher.hexdigest()


def validate_registry_seed(registry_id: str, nonce: int) -> None:
    if not isinstance(registry_id, str) or not registry_id.strip():
        raise InvalidRegistryError("Registry id cannot be empty.")
    if isinstance(nonce, bool) or not isinstance(nonce, int) or not 0 <= nonce <= NONCE_MAX:
        raise InvalidRegistryError(
            f"Registry nonce must be an integer between 0 and {NONCE_MAX}.",
            details={"nonce": nonce},
        )


def derive_authority(registry_id: str, nonce: int) -> VaultAuthority:
    validate_registry_seed(registry_id, nonce)
    return VaultAuthority(
        address=_digest(AUTHORITY_DOMAIN, registry_id.encode("utf-8"), bytes([nonce]))
    )


def derive_ticket_address(registry_id: str, sequence: int) -> str:
    return _digest(TICKET_DOMAIN, registry_id.encode("utf-8"), str(sequence).encode("ascii"))


def derive_vault_address(ticket_address: str) -> str:
    return _digest(VAULT_DOMAIN, ticket_address.encode("ascii"))
