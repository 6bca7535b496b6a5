"""Tests for the accrual window tracker — two states, forward-only cursors."""

import pytest

from ubi.accrual.tracker import AccrualWindowTracker
from ubi.models.accrual import AccrualState, ParticipantEligibility

ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40


@pytest.fixture
def tracker() -> AccrualWindowTracker:
    return AccrualWindowTracker()


class TestEligibilityWindow:
    def test_initial_state(self, tracker: AccrualWindowTracker) -> None:
        assert tracker.state_of(ALICE) == AccrualState.NOT_ACCRUING
        assert tracker.accruing_since(ALICE) is None

    def test_start_and_stop(self, tracker: AccrualWindowTracker) -> None:
        tracker.start(ALICE, 1200)
        assert tracker.is_accruing(ALICE)
        assert tracker.accruing_since(ALICE) == 1200
        tracker.stop(ALICE)
        assert tracker.state_of(ALICE) == AccrualState.NOT_ACCRUING
        assert tracker.accruing_since(ALICE) is None

    def test_start_at_time_zero(self, tracker: AccrualWindowTracker) -> None:
        tracker.start(ALICE, 0)
        assert tracker.is_accruing(ALICE)
        assert tracker.accruing_since(ALICE) == 0

    def test_double_start_rejected(self, tracker: AccrualWindowTracker) -> None:
        tracker.start(ALICE, 1200)
        with pytest.raises(ValueError, match="already accruing"):
            tracker.start(ALICE, 1300)
        assert tracker.accruing_since(ALICE) == 1200

    def test_stop_when_not_accruing(self, tracker: AccrualWindowTracker) -> None:
        with pytest.raises(ValueError, match="not accruing"):
            tracker.stop(ALICE)

    def test_accruing_participants(self, tracker: AccrualWindowTracker) -> None:
        tracker.start(BOB, 10)
        tracker.start(ALICE, 20)
        assert tracker.accruing_participants() == [ALICE, BOB]


class TestCursors:
    def test_never_settled(self, tracker: AccrualWindowTracker) -> None:
        assert tracker.last_settled(ALICE, 1) is None
        assert tracker.cursor(ALICE, 1).last_settled is None

    def test_settle_forward(self, tracker: AccrualWindowTracker) -> None:
        tracker.settle(ALICE, 1, 1500)
        tracker.settle(ALICE, 1, 1500)
        tracker.settle(ALICE, 1, 2000)
        assert tracker.last_settled(ALICE, 1) == 2000

    def test_settle_backwards_rejected(self, tracker: AccrualWindowTracker) -> None:
        tracker.settle(ALICE, 1, 1500)
        with pytest.raises(ValueError, match="cannot move back"):
            tracker.settle(ALICE, 1, 1400)
        assert tracker.last_settled(ALICE, 1) == 1500

    def test_cursors_survive_stop_and_restart(self, tracker: AccrualWindowTracker) -> None:
        tracker.start(ALICE, 1200)
        tracker.settle(ALICE, 1, 1500)
        tracker.stop(ALICE)
        tracker.start(ALICE, 1800)
        assert tracker.last_settled(ALICE, 1) == 1500

    def test_cursors_are_per_policy(self, tracker: AccrualWindowTracker) -> None:
        tracker.settle(ALICE, 1, 1500)
        assert tracker.last_settled(ALICE, 2) is None
        assert tracker.last_settled(BOB, 1) is None


class TestPersistence:
    def test_round_trip(self, tracker: AccrualWindowTracker) -> None:
        tracker.start(ALICE, 1200)
        tracker.start(BOB, 1300)
        tracker.stop(BOB)
        tracker.settle(ALICE, 1, 1500)
        tracker.settle(BOB, 3, 1400)

        restored = AccrualWindowTracker.from_dict(tracker.to_dict())
        assert restored.accruing_since(ALICE) == 1200
        assert not restored.is_accruing(BOB)
        assert restored.last_settled(ALICE, 1) == 1500
        assert restored.last_settled(BOB, 3) == 1400


class TestParticipantEligibilityModel:
    def test_illegal_transition(self) -> None:
        record = ParticipantEligibility(participant=ALICE)
        with pytest.raises(ValueError, match="Invalid accrual transition"):
            record.transition_to(AccrualState.NOT_ACCRUING, 100)
