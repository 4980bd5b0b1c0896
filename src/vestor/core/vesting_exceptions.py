"""
Vesting-specific exception hierarchy for Vestor.

Provides typed exceptions for the ticket lifecycle so callers can tell a
rejected precondition from a broken invariant or a failed funds movement.
Every class carries a stable ``code`` that the CLI and logs report alongside
the human-readable message.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class VestingError(Exception):
    """Base exception for all vesting errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried
    """

    code = "VestingError"
    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Validation Errors ====================


class VestingValidationError(VestingError):
    """Raised when operation inputs fail validation before any funds move."""
    code = "ValidationFailed"


class InvalidAmountError(VestingValidationError):
    """Raised when a grant amount is zero or negative."""
    code = "AmountMustBeGreaterThanZero"


class InvalidScheduleError(VestingValidationError):
    """Raised when the vesting period is shorter than the cliff."""
    code = "VestingPeriodTooShort"


class InvalidRegistryError(VestingValidationError):
    """Raised when registry configuration (id or nonce) is unusable."""
    code = "InvalidRegistry"


# ==================== Ticket State Errors ====================


class TicketStateError(VestingError):
    """Raised when a ticket's current state forbids the requested operation."""
    code = "TicketStateInvalid"


class TicketRevokedError(TicketStateError):
    """Raised on claim or revoke of a ticket that has already been revoked."""
    code = "TicketRevoked"


class TicketIrrevocableError(TicketStateError):
    """Raised on revoke of a ticket created irrevocable."""
    code = "TicketIrrevocable"


class TicketBalanceEmptyError(TicketStateError):
    """Raised when a ticket has no remaining balance (or no grant) to act on."""
    code = "TicketBalanceEmpty"


class NothingToClaimError(TicketStateError):
    """Raised when a claim finds no unlocked, unclaimed amount."""
    code = "NothingToClaim"
    recoverable = True  # Can retry once more of the grant unlocks


# ==================== Access & Lookup Errors ====================


class UnauthorizedCallerError(VestingError):
    """Raised when the caller is not the party entitled to the operation."""
    code = "Unauthorized"


class TicketNotFoundError(VestingError):
    """Raised when a ticket id does not resolve to a stored ticket."""
    code = "TicketNotFound"


# ==================== Arithmetic Errors ====================


class ArithmeticFaultError(VestingError):
    """Raised when a checked calculation overflows or underflows.

    Signals a broken invariant; the operation is always aborted and the
    value is never clamped or wrapped.
    """
    code = "ArithmeticFault"


# ==================== Funds Transfer Errors ====================


class TransferFailedError(VestingError):
    """Raised when the funds-transfer collaborator cannot move funds."""
    code = "TransferFailed"
    recoverable = True

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        amount: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.source = source
        self.destination = destination
        self.amount = amount


# ==================== Storage Errors ====================


class StorageError(VestingError):
    """Raised when the state snapshot cannot be loaded or saved."""
    code = "StorageFailed"


class CorruptedStateError(StorageError):
    """Raised when a stored snapshot is unreadable or inconsistent."""
    code = "CorruptedState"


# ==================== Utility Functions ====================


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, code, message and any details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, VestingError):
        context["error_code"] = exc.code
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, TransferFailedError):
        if exc.source is not None:
            context["source"] = exc.source
        if exc.destination is not None:
            context["destination"] = exc.destination
        if exc.amount is not None:
            context["amount"] = exc.amount

    return context
