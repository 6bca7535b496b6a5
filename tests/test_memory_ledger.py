"""Tests for the in-memory ledger and eligibility registry."""

import pytest

from ubi.errors import ArithmeticOverflow
from ubi.ledger.interfaces import EligibilityRegistry, FungibleLedger
from ubi.ledger.memory import InMemoryLedger, StaticEligibilityRegistry
from ubi.accrual.safe_math import U256_MAX

ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40
CAROL = "0x" + "3" * 40


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


class TestProtocols:
    def test_ledger_satisfies_protocol(self, ledger: InMemoryLedger) -> None:
        assert isinstance(ledger, FungibleLedger)

    def test_registry_satisfies_protocol(self) -> None:
        assert isinstance(StaticEligibilityRegistry(), EligibilityRegistry)


class TestBalances:
    def test_credit(self, ledger: InMemoryLedger) -> None:
        ledger.credit(ALICE, 100)
        ledger.credit(ALICE, 0)
        assert ledger.balance_of(ALICE) == 100
        assert ledger.total_supply == 100

    def test_credit_overflow(self, ledger: InMemoryLedger) -> None:
        ledger.credit(ALICE, U256_MAX)
        with pytest.raises(ArithmeticOverflow):
            ledger.credit(BOB, 1)
        assert ledger.balance_of(BOB) == 0
        assert ledger.total_supply == U256_MAX

    def test_burn(self, ledger: InMemoryLedger) -> None:
        ledger.credit(ALICE, 100)
        ledger.burn(ALICE, 30)
        assert ledger.balance_of(ALICE) == 70
        assert ledger.total_supply == 70
        with pytest.raises(ValueError, match="exceeds balance"):
            ledger.burn(ALICE, 71)

    def test_transfer(self, ledger: InMemoryLedger) -> None:
        ledger.credit(ALICE, 100)
        ledger.transfer(ALICE, BOB, 40)
        assert ledger.balance_of(ALICE) == 60
        assert ledger.balance_of(BOB) == 40
        assert ledger.total_supply == 100
        with pytest.raises(ValueError, match="exceeds balance"):
            ledger.transfer(BOB, ALICE, 41)

    def test_transfer_to_self(self, ledger: InMemoryLedger) -> None:
        ledger.credit(ALICE, 100)
        ledger.transfer(ALICE, ALICE, 100)
        assert ledger.balance_of(ALICE) == 100

    def test_transfer_from(self, ledger: InMemoryLedger) -> None:
        ledger.credit(ALICE, 100)
        ledger.approve(ALICE, BOB, 50)
        ledger.transfer_from(BOB, ALICE, CAROL, 30)
        assert ledger.balance_of(CAROL) == 30
        assert ledger.allowance(ALICE, BOB) == 20
        with pytest.raises(ValueError, match="exceeds allowance"):
            ledger.transfer_from(BOB, ALICE, CAROL, 21)


class TestSnapshots:
    def test_ids_increment(self, ledger: InMemoryLedger) -> None:
        assert ledger.current_snapshot_id == 0
        assert ledger.take_snapshot() == 1
        assert ledger.take_snapshot() == 2

    def test_historical_balances(self, ledger: InMemoryLedger) -> None:
        ledger.credit(ALICE, 100)
        first = ledger.take_snapshot()
        ledger.transfer(ALICE, BOB, 40)
        second = ledger.take_snapshot()
        ledger.credit(BOB, 10)

        assert ledger.balance_of_at(ALICE, first) == 100
        assert ledger.balance_of_at(BOB, first) == 0
        assert ledger.balance_of_at(ALICE, second) == 60
        assert ledger.balance_of_at(BOB, second) == 40
        assert ledger.balance_of(BOB) == 50

        assert ledger.total_supply_at(first) == 100
        assert ledger.total_supply_at(second) == 100
        assert ledger.total_supply == 110

    def test_untouched_account_reads_current(self, ledger: InMemoryLedger) -> None:
        ledger.credit(CAROL, 7)
        snap = ledger.take_snapshot()
        assert ledger.balance_of_at(CAROL, snap) == 7

    def test_nonexistent_snapshot(self, ledger: InMemoryLedger) -> None:
        with pytest.raises(ValueError, match="Nonexistent snapshot"):
            ledger.balance_of_at(ALICE, 0)
        ledger.take_snapshot()
        with pytest.raises(ValueError, match="Nonexistent snapshot"):
            ledger.total_supply_at(2)


class TestStaticEligibilityRegistry:
    def test_membership(self) -> None:
        registry = StaticEligibilityRegistry([ALICE])
        assert registry.is_eligible(ALICE)
        assert not registry.is_eligible(BOB)
        registry.register(BOB)
        registry.revoke(ALICE)
        assert registry.is_eligible(BOB)
        assert not registry.is_eligible(ALICE)
        assert registry.count == 1

    def test_malformed_address_is_not_eligible(self) -> None:
        assert not StaticEligibilityRegistry([ALICE]).is_eligible("nobody")
