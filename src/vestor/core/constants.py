"""
Vestor Constants

Fixed values shared by the unlock calculator, the lifecycle controller and
the address derivation helpers.

NOTE: Values marked [LAYOUT] change ticket ids or persisted snapshots.
Changing them orphans every ticket created under the old values.
"""

from typing import Final

# =============================================================================
# TIME CONSTANTS (in seconds)
# =============================================================================

SECONDS_PER_DAY: Final[int] = 86400  # 60 * 60 * 24

# =============================================================================
# INTEGER BOUNDS
# =============================================================================

# Amounts, day counts and timestamps are unsigned 64-bit quantities
U64_MAX: Final[int] = 2**64 - 1
NONCE_MAX: Final[int] = 255  # single byte, mixed into the authority derivation

# =============================================================================
# REGISTRY [LAYOUT]
# =============================================================================

INITIAL_SEQUENCE: Final[int] = 1
AUTHORITY_DOMAIN: Final[bytes] = b"vestor/authority"
TICKET_DOMAIN: Final[bytes] = b"vestor/ticket"
VAULT_DOMAIN: Final[bytes] = b"vestor/vault"

# =============================================================================
# PERSISTENCE [LAYOUT]
# =============================================================================

STATE_FILE_NAME: Final[str] = "vestor_state.json"
STATE_FORMAT_VERSION: Final[int] = 1
