import pytest

from vestor.core.derivation import derive_authority
from vestor.core.token_ledger import FundsTransfer, InMemoryTokenLedger
from vestor.core.vesting_exceptions import CorruptedStateError, TransferFailedError


@pytest.fixture
def ledger():
    ledger = InMemoryTokenLedger("VEST")
    ledger.mint("alice", 100)
    return ledger


def test_ledger_satisfies_funds_transfer_protocol(ledger):
    assert isinstance(ledger, FundsTransfer)


def test_owner_transfer(ledger):
    ledger.transfer("alice", "bob", 40, authorized_by="alice")
    assert ledger.balance_of("alice") == 60
    assert ledger.balance_of("bob") == 40
    assert ledger.total_supply == 100


def test_transfer_requires_owner_authority(ledger):
    with pytest.raises(TransferFailedError):
        ledger.transfer("alice", "bob", 40, authorized_by="bob")
    assert ledger.balance_of("alice") == 100


def test_vault_only_debited_by_its_authority(ledger):
    authority = derive_authority("registry", 1)
    ledger.open_account("vault", authority)
    ledger.transfer("alice", "vault", 50, authorized_by="alice")

    with pytest.raises(TransferFailedError):
        ledger.transfer("vault", "alice", 10, authorized_by="alice")
    with pytest.raises(TransferFailedError):
        ledger.transfer("vault", "alice", 10, authorized_by="vault")

    ledger.transfer("vault", "bob", 10, authorized_by=authority)
    assert ledger.balance_of("vault") == 40
    assert ledger.balance_of("bob") == 10


def test_reopening_vault_with_other_owner_fails(ledger):
    ledger.open_account("vault", derive_authority("registry", 1))
    ledger.open_account("vault", derive_authority("registry", 1))
    with pytest.raises(TransferFailedError):
        ledger.open_account("vault", derive_authority("registry", 2))


@pytest.mark.parametrize("amount", [0, -1, 1.5])
def test_invalid_transfer_amounts(ledger, amount):
    with pytest.raises(TransferFailedError):
        ledger.transfer("alice", "bob", amount, authorized_by="alice")


def test_insufficient_balance(ledger):
    with pytest.raises(TransferFailedError) as excinfo:
        ledger.transfer("alice", "bob", 101, authorized_by="alice")
    assert excinfo.value.amount == 101
    assert excinfo.value.recoverable is True


def test_mint_validation(ledger):
    with pytest.raises(ValueError):
        ledger.mint("alice", 0)
    with pytest.raises(ValueError):
        ledger.mint("", 5)


def test_ledger_round_trip_and_corruption(ledger):
    ledger.open_account("vault", derive_authority("registry", 1))
    restored = InMemoryTokenLedger.from_dict(ledger.to_dict())
    assert restored.balance_of("alice") == 100
    assert restored.owners == ledger.owners

    broken = ledger.to_dict()
    broken["total_supply"] = 5
    with pytest.raises(CorruptedStateError):
        InMemoryTokenLedger.from_dict(broken)


def test_open_account_reports_new_accounts(ledger):
    authority = derive_authority("registry", 1)
    assert ledger.open_account("vault", authority) is True
    assert ledger.open_account("vault", authority) is False


def test_close_account_removes_empty_account(ledger):
    ledger.open_account("vault", derive_authority("registry", 1))
    ledger.close_account("vault")
    assert "vault" not in ledger.owners
    assert "vault" not in ledger.balances


def test_close_account_refuses_funded_account(ledger):
    authority = derive_authority("registry", 1)
    ledger.open_account("vault", authority)
    ledger.transfer("alice", "vault", 10, authorized_by="alice")

    with pytest.raises(TransferFailedError):
        ledger.close_account("vault")
    assert ledger.owners["vault"] == str(authority)
    assert ledger.balance_of("vault") == 10
