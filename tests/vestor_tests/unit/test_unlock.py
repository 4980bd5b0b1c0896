import pytest

from vestor.core.constants import U64_MAX
from vestor.core.ticket import VestingTicket
from vestor.core.unlock import (
    available_amount,
    cliff_timestamp,
    has_cliffed,
    unlocked_amount,
    vesting_progress,
)
from vestor.core.vesting_exceptions import ArithmeticFaultError
from vestor_tests.conftest import DAY, START


def make_ticket(**overrides) -> VestingTicket:
    fields = {
        "ticket_id": "t" * 64,
        "sequence": 1,
        "asset_id": "VEST",
        "vault_id": "v" * 64,
        "grantor": "0xgrantor",
        "beneficiary": "0xbeneficiary",
        "cliff_days": 0,
        "vesting_days": 10,
        "total_amount": 1000,
        "created_at": START,
    }
    fields.update(overrides)
    fields.setdefault("remaining_balance", fields["total_amount"] - fields.get("claimed_amount", 0))
    return VestingTicket(**fields)


class TestUnlockedAmount:
    def test_linear_unlock_worked_example(self):
        ticket = make_ticket()
        assert unlocked_amount(ticket, START) == 0
        assert unlocked_amount(ticket, START + 5 * DAY) == 500
        assert unlocked_amount(ticket, START + 10 * DAY) == 1000

    def test_unlock_rounds_down(self):
        ticket = make_ticket(total_amount=1000, vesting_days=3)
        # One day of three: 333.33 -> 333
        assert unlocked_amount(ticket, START + DAY) == 333
        assert unlocked_amount(ticket, START + 1) == 0

    def test_unlock_is_capped_after_vesting_period(self):
        ticket = make_ticket()
        assert unlocked_amount(ticket, START + 20 * DAY) == 1000
        assert unlocked_amount(ticket, START + 10 * DAY + 1) == 1000

    def test_zero_day_vesting_unlocks_everything(self):
        ticket = make_ticket(vesting_days=0)
        assert unlocked_amount(ticket, START) == 1000

    def test_now_before_creation_is_arithmetic_fault(self):
        ticket = make_ticket()
        with pytest.raises(ArithmeticFaultError):
            unlocked_amount(ticket, START - 1)

    def test_large_amounts_stay_exact(self):
        total = U64_MAX - 1
        ticket = make_ticket(total_amount=total, vesting_days=365)
        half = START + (365 * DAY) // 2
        assert unlocked_amount(ticket, half) == ((365 * DAY) // 2) * total // (365 * DAY)


class TestCliff:
    def test_zero_cliff_has_always_passed(self):
        ticket = make_ticket(cliff_days=0)
        assert has_cliffed(ticket, START)

    def test_cliff_boundary_is_inclusive(self):
        ticket = make_ticket(cliff_days=5)
        assert cliff_timestamp(ticket) == START + 5 * DAY
        assert not has_cliffed(ticket, START)
        assert not has_cliffed(ticket, START + 5 * DAY - 1)
        assert has_cliffed(ticket, START + 5 * DAY)
        assert has_cliffed(ticket, START + 6 * DAY)

    def test_nothing_available_before_cliff(self):
        ticket = make_ticket(cliff_days=5)
        assert available_amount(ticket, START + 4 * DAY) == 0
        # At the cliff the linearly unlocked half becomes claimable at once
        assert available_amount(ticket, START + 5 * DAY) == 500


class TestAvailableAmount:
    def test_subtracts_claimed_amount(self):
        ticket = make_ticket(claimed_amount=200)
        assert available_amount(ticket, START + 5 * DAY) == 300

    def test_claimed_beyond_unlocked_is_arithmetic_fault(self):
        ticket = make_ticket(claimed_amount=600)
        with pytest.raises(ArithmeticFaultError):
            available_amount(ticket, START + 5 * DAY)

    def test_fully_claimed_ticket_has_nothing_available(self):
        ticket = make_ticket(claimed_amount=1000)
        assert available_amount(ticket, START + 30 * DAY) == 0


def test_vesting_progress_summary():
    ticket = make_ticket(cliff_days=2, claimed_amount=100)
    progress = vesting_progress(ticket, START + 5 * DAY)
    assert progress["has_cliffed"] is True
    assert progress["unlocked_amount"] == 500
    assert progress["available_amount"] == 400
    assert progress["cliff_at"] == START + 2 * DAY
    assert progress["fully_vested_at"] == START + 10 * DAY
    assert progress["status"] == "active"
