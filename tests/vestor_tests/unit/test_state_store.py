import json
import os
from unittest.mock import patch

import pytest

from vestor.core.state_store import VestingStateStore
from vestor.core.vesting_exceptions import CorruptedStateError, StorageError
from vestor_tests.conftest import BENEFICIARY, DAY, GRANTOR, START


def test_save_and_load_round_trip(tmp_path, program, clock):
    ticket = program.create(GRANTOR, BENEFICIARY, 1, 10, 1000)
    clock.advance_days(5)
    program.claim(ticket.ticket_id, BENEFICIARY)

    store = VestingStateStore(str(tmp_path))
    store.save(program)
    restored = store.load(time_provider=clock.now)

    restored_ticket = restored.get_ticket(ticket.ticket_id)
    assert restored_ticket == ticket
    assert restored.registry.next_sequence == 2
    assert restored.registry.authority == program.registry.authority
    assert restored.ledger.balance_of(BENEFICIARY) == 500

    # Restored program keeps working with the same vault authority
    clock.advance_days(5)
    assert restored.claim(ticket.ticket_id, BENEFICIARY) == 500


def test_snapshot_does_not_contain_authority(tmp_path, program):
    store = VestingStateStore(str(tmp_path))
    store.save(program)
    with open(store.state_file, encoding="utf-8") as handle:
        payload = json.load(handle)
    assert str(program.registry.authority) not in json.dumps(payload["registry"])


def test_missing_snapshot(tmp_path):
    with pytest.raises(StorageError):
        VestingStateStore(str(tmp_path)).load()


def test_unreadable_snapshot(tmp_path):
    store = VestingStateStore(str(tmp_path))
    with open(store.state_file, "w", encoding="utf-8") as handle:
        handle.write("{not json")
    with pytest.raises(CorruptedStateError):
        store.load()


def test_ticket_ahead_of_registry_is_corrupt(tmp_path, program):
    program.create(GRANTOR, BENEFICIARY, 0, 10, 1000, now=START)
    store = VestingStateStore(str(tmp_path))
    store.save(program)
    with open(store.state_file, encoding="utf-8") as handle:
        payload = json.load(handle)
    payload["registry"]["next_sequence"] = 1
    with open(store.state_file, "w", encoding="utf-8") as handle:
        json.dump(payload, handle)

    with pytest.raises(CorruptedStateError):
        store.load()


def test_inconsistent_ticket_is_corrupt(tmp_path, program):
    program.create(GRANTOR, BENEFICIARY, 0, 10, 1000, now=START)
    store = VestingStateStore(str(tmp_path))
    store.save(program)
    with open(store.state_file, encoding="utf-8") as handle:
        payload = json.load(handle)
    payload["tickets"][0]["claimed_amount"] = 10
    with open(store.state_file, "w", encoding="utf-8") as handle:
        json.dump(payload, handle)

    with pytest.raises(CorruptedStateError):
        store.load()


def test_failed_write_keeps_previous_snapshot(tmp_path, program, clock):
    store = VestingStateStore(str(tmp_path))
    store.save(program)
    program.create(GRANTOR, BENEFICIARY, 0, 10, 1000)

    with patch("vestor.core.state_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(StorageError):
            store.save(program)

    assert store.load().registry.next_sequence == 1
    assert [name for name in os.listdir(tmp_path) if name.endswith(".tmp")] == []


def _rewrite_snapshot(store, mutate):
    with open(store.state_file, encoding="utf-8") as handle:
        payload = json.load(handle)
    mutate(payload)
    with open(store.state_file, "w", encoding="utf-8") as handle:
        json.dump(payload, handle)


@pytest.mark.parametrize(
    "field, value",
    [
        ("claimed_amount", "0"),
        ("remaining_balance", 1000.0),
        ("revoked", "false"),
        ("beneficiary", 42),
        ("created_at", -1),
    ],
)
def test_mistyped_ticket_field_is_corrupt(tmp_path, program, field, value):
    program.create(GRANTOR, BENEFICIARY, 0, 10, 1000, now=START)
    store = VestingStateStore(str(tmp_path))
    store.save(program)
    _rewrite_snapshot(store, lambda payload: payload["tickets"][0].__setitem__(field, value))

    with pytest.raises(CorruptedStateError):
        store.load()


@pytest.mark.parametrize("tickets", [[1], ["ticket"], [None], 7])
def test_non_mapping_ticket_records_are_corrupt(tmp_path, program, tickets):
    store = VestingStateStore(str(tmp_path))
    store.save(program)
    _rewrite_snapshot(store, lambda payload: payload.__setitem__("tickets", tickets))

    with pytest.raises(StorageError):
        store.load()


def test_non_mapping_registry_is_corrupt(tmp_path, program):
    store = VestingStateStore(str(tmp_path))
    store.save(program)
    _rewrite_snapshot(store, lambda payload: payload.__setitem__("registry", [1, 2]))

    with pytest.raises(StorageError):
        store.load()
