import pytest

from vestor.core.constants import SECONDS_PER_DAY
from vestor.core.token_ledger import InMemoryTokenLedger
from vestor.core.vesting_program import VestingProgram

START = 1_700_000_000
DAY = SECONDS_PER_DAY
GRANTOR = "0xgrantor"
BENEFICIARY = "0xbeneficiary"
GRANTOR_FUNDS = 1_000_000


class ManualClock:
    def __init__(self, start_time: int):
        self.current_time = start_time

    def now(self) -> int:
        return self.current_time

    def advance(self, seconds: int):
        self.current_time += seconds

    def advance_days(self, days: int):
        self.advance(days * DAY)


@pytest.fixture
def clock():
    return ManualClock(start_time=START)


@pytest.fixture
def ledger():
    ledger = InMemoryTokenLedger("VEST")
    ledger.mint(GRANTOR, GRANTOR_FUNDS)
    return ledger


@pytest.fixture
def program(ledger, clock):
    return VestingProgram.initialize("test-registry", ledger, nonce=7, time_provider=clock.now)
