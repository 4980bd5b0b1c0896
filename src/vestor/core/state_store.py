"""
Vestor - State snapshot persistence

Stores the registry, every ticket and the ledger in one JSON document.
Writes go to a temporary file first and replace the snapshot in one step,
so an interrupted save leaves the previous snapshot readable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Callable

from vestor.core.constants import STATE_FILE_NAME, STATE_FORMAT_VERSION
from vestor.core.registry import VestingRegistry
from vestor.core.ticket import VestingTicket
from vestor.core.token_ledger import InMemoryTokenLedger
from vestor.core.vesting_exceptions import CorruptedStateError, StorageError, VestingError
from vestor.core.vesting_program import VestingProgram

logger = logging.getLogger(__name__)


class VestingStateStore:
    """JSON snapshot of a VestingProgram backed by an InMemoryTokenLedger."""

    def __init__(self, data_dir: str) -> None:
        self.data_dir = data_dir
        self.state_file = os.path.join(data_dir, STATE_FILE_NAME)

    def exists(self) -> bool:
        return os.path.exists(self.state_file)

    def save(self, program: VestingProgram) -> None:
        if not isinstance(program.ledger, InMemoryTokenLedger):
            raise StorageError("Only programs backed by InMemoryTokenLedger can be snapshotted.")
        payload: dict[str, Any] = {
            "version": STATE_FORMAT_VERSION,
            "registry": program.registry.to_dict(),
            "tickets": [ticket.to_dict() for ticket in program.list_tickets()],
            "ledger": program.ledger.to_dict(),
        }
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=".vestor_state.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, indent=2, sort_keys=True)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_path, self.state_file)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as exc:
            logger.error(
                "Failed to save state to %s: %s",
                self.state_file,
                type(exc).__name__,
                extra={"event": "state.save_failed", "error": str(exc)},
            )
            raise StorageError(f"Could not write {self.state_file}: {exc}") from exc
        logger.debug(
            "State saved to %s",
            self.state_file,
            extra={"event": "state.saved", "tickets": len(payload["tickets"])},
        )

    def load(self, time_provider: Callable[[], int] | None = None) -> VestingProgram:
        try:
            with open(self.state_file, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except FileNotFoundError as exc:
            raise StorageError(
                f"No vesting state at {self.state_file}; run 'vestor init' first."
            ) from exc
        except (OSError, json.JSONDecodeError) as exc:
            logger.error(
                "Failed to load state from %s: %s",
                self.state_file,
                type(exc).__name__,
                extra={"event": "state.load_failed", "error": str(exc)},
            )
            raise CorruptedStateError(f"Could not read {self.state_file}: {exc}") from exc

        if not isinstance(payload, dict) or payload.get("version") != STATE_FORMAT_VERSION:
            raise CorruptedStateError(f"Unsupported state format in {self.state_file}")

        try:
            registry = VestingRegistry.from_dict(payload["registry"])
            ledger = InMemoryTokenLedger.from_dict(payload["ledger"])
            tickets = [VestingTicket.from_dict(record) for record in payload["tickets"]]
        except (KeyError, TypeError, AttributeError) as exc:
            raise CorruptedStateError(f"State file missing or malformed section {exc}") from exc
        except CorruptedStateError:
            raise
        except VestingError as exc:
            raise CorruptedStateError(f"State file holds invalid values: {exc.message}") from exc

        if any(ticket.sequence >= registry.next_sequence for ticket in tickets):
            raise CorruptedStateError("Ticket sequence is ahead of the registry counter")

        return VestingProgram(
            registry,
            ledger,
            tickets={ticket.ticket_id: ticket for ticket in tickets},
            time_provider=time_provider,
        )
