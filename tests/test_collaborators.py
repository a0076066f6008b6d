"""Tests for collaborator contracts and in-memory implementations.

Proves:
- InMemoryAssetLedger moves balances only between holder and custody.
- Failed transfers return False and change nothing.
- SingleOwner recognises exactly one administrator.
- ManualClock and SystemClock never go backwards.
- Reference implementations satisfy the runtime_checkable Protocols.
"""

import pytest

from rewardstream.accrual.collaborators import (
    AccessControl,
    AssetLedger,
    Clock,
    InMemoryAssetLedger,
    ManualClock,
    SingleOwner,
    SystemClock,
)


POOL = "pool"


def _make_ledger() -> InMemoryAssetLedger:
    ledger = InMemoryAssetLedger("STK", custodian=POOL)
    ledger.mint("alice", 100)
    return ledger


class TestProtocols:
    def test_asset_ledger_protocol(self) -> None:
        assert isinstance(_make_ledger(), AssetLedger)

    def test_access_control_protocol(self) -> None:
        assert isinstance(SingleOwner("owner"), AccessControl)

    def test_clock_protocol(self) -> None:
        assert isinstance(ManualClock(), Clock)
        assert isinstance(SystemClock(), Clock)


class TestInMemoryAssetLedger:
    def test_mint_increases_balance_and_supply(self) -> None:
        ledger = _make_ledger()
        assert ledger.balance_of("alice") == 100
        assert ledger.total_supply == 100

    def test_mint_rejects_non_positive(self) -> None:
        ledger = _make_ledger()
        with pytest.raises(ValueError):
            ledger.mint("alice", 0)
        with pytest.raises(ValueError):
            ledger.mint("alice", -5)

    def test_transfer_in_moves_to_custody(self) -> None:
        ledger = _make_ledger()
        assert ledger.transfer_in("alice", 40) is True
        assert ledger.balance_of("alice") == 60
        assert ledger.balance_of(POOL) == 40

    def test_transfer_out_moves_from_custody(self) -> None:
        ledger = _make_ledger()
        ledger.transfer_in("alice", 40)
        assert ledger.transfer_out("bob", 15) is True
        assert ledger.balance_of("bob") == 15
        assert ledger.balance_of(POOL) == 25

    def test_insufficient_transfer_returns_false(self) -> None:
        ledger = _make_ledger()
        assert ledger.transfer_in("alice", 101) is False
        assert ledger.balance_of("alice") == 100
        assert ledger.balance_of(POOL) == 0

    def test_zero_transfer_returns_false(self) -> None:
        ledger = _make_ledger()
        assert ledger.transfer_in("alice", 0) is False
        assert ledger.transfer_out("alice", 0) is False

    def test_supply_conserved_by_transfers(self) -> None:
        ledger = _make_ledger()
        ledger.transfer_in("alice", 70)
        ledger.transfer_out("bob", 20)
        total = sum(ledger.balance_of(h) for h in ("alice", "bob", POOL))
        assert total == ledger.total_supply

    def test_on_transfer_hook_called_after_success(self) -> None:
        calls = []
        ledger = _make_ledger()
        ledger.on_transfer = lambda direction, who, amount: calls.append(
            (direction, who, amount, ledger.balance_of(POOL))
        )
        ledger.transfer_in("alice", 10)
        ledger.transfer_out("alice", 4)
        ledger.transfer_out("alice", 1000)
        assert calls == [("in", "alice", 10, 10), ("out", "alice", 4, 6)]

    def test_requires_symbol_and_custodian(self) -> None:
        with pytest.raises(ValueError):
            InMemoryAssetLedger("", custodian=POOL)
        with pytest.raises(ValueError):
            InMemoryAssetLedger("STK", custodian="")


class TestSingleOwner:
    def test_only_owner_is_administrator(self) -> None:
        access = SingleOwner("owner")
        assert access.is_administrator("owner") is True
        assert access.is_administrator("alice") is False

    def test_transfer_ownership(self) -> None:
        access = SingleOwner("owner")
        access.transfer_ownership("owner", "carol")
        assert access.owner == "carol"
        assert access.is_administrator("owner") is False
        assert access.is_administrator("carol") is True

    def test_non_owner_cannot_transfer_ownership(self) -> None:
        access = SingleOwner("owner")
        with pytest.raises(PermissionError):
            access.transfer_ownership("alice", "alice")
        assert access.owner == "owner"


class TestClocks:
    def test_manual_clock_advances(self) -> None:
        clock = ManualClock(start=100)
        assert clock.advance(50) == 150
        assert clock.now() == 150

    def test_manual_clock_rejects_backwards(self) -> None:
        clock = ManualClock(start=100)
        with pytest.raises(ValueError):
            clock.advance(-1)
        with pytest.raises(ValueError):
            clock.set(99)
        clock.set(100)
        assert clock.now() == 100

    def test_system_clock_holds_on_backward_step(self) -> None:
        readings = iter([1000.7, 990.0, 1001.2])
        clock = SystemClock(source=lambda: next(readings))
        assert clock.now() == 1000
        assert clock.now() == 1000
        assert clock.now() == 1001
