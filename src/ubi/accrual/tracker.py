"""Accrual window tracker — who is accruing, and how far each has been paid.

Two tables:
- accruing_since per participant (None = not accruing).
- last_settled per (participant, policy) (None = never settled).

Cursors only move forward. start() and stop() never touch cursors, so a
participant who stops and restarts does not replay intervals already
paid under a policy.
"""

from __future__ import annotations

from typing import Dict, Iterator, Optional, Tuple

from ubi.models.accrual import (
    AccrualCursor,
    AccrualState,
    ParticipantEligibility,
)


class AccrualWindowTracker:
    """In-memory eligibility and cursor tables.

    Participants are expected to arrive already normalized; the tracker
    does no address handling of its own.
    """

    def __init__(self) -> None:
        self._eligibility: Dict[str, ParticipantEligibility] = {}
        self._cursors: Dict[Tuple[str, int], int] = {}

    # ------------------------------------------------------------------
    # Eligibility window
    # ------------------------------------------------------------------

    def accruing_since(self, participant: str) -> Optional[int]:
        record = self._eligibility.get(participant)
        return record.accruing_since if record else None

    def state_of(self, participant: str) -> AccrualState:
        record = self._eligibility.get(participant)
        return record.state if record else AccrualState.NOT_ACCRUING

    def is_accruing(self, participant: str) -> bool:
        return self.state_of(participant) == AccrualState.ACCRUING

    def start(self, participant: str, now: int) -> None:
        """Begin accruing at now. Raises ValueError if already accruing."""
        record = self._eligibility.setdefault(
            participant, ParticipantEligibility(participant=participant)
        )
        if record.state == AccrualState.ACCRUING:
            raise ValueError(f"Participant already accruing: {participant}")
        record.transition_to(AccrualState.ACCRUING, now)

    def stop(self, participant: str) -> None:
        """Stop accruing. Raises ValueError if not accruing."""
        record = self._eligibility.get(participant)
        if record is None or record.state != AccrualState.ACCRUING:
            raise ValueError(f"Participant not accruing: {participant}")
        record.transition_to(AccrualState.NOT_ACCRUING, 0)

    def restore_since(self, participant: str, accruing_since: Optional[int]) -> None:
        """Put back a previously read accruing_since value (rollback only)."""
        if accruing_since is None:
            self._eligibility.pop(participant, None)
            return
        self._eligibility[participant] = ParticipantEligibility(
            participant=participant, accruing_since=accruing_since
        )

    def accruing_participants(self) -> list[str]:
        return sorted(
            p for p, r in self._eligibility.items()
            if r.state == AccrualState.ACCRUING
        )

    # ------------------------------------------------------------------
    # Cursors
    # ------------------------------------------------------------------

    def last_settled(self, participant: str, policy_id: int) -> Optional[int]:
        return self._cursors.get((participant, policy_id))

    def cursor(self, participant: str, policy_id: int) -> AccrualCursor:
        return AccrualCursor(
            participant=participant,
            policy_id=policy_id,
            last_settled=self.last_settled(participant, policy_id),
        )

    def settle(self, participant: str, policy_id: int, timestamp: int) -> None:
        """Advance the cursor to timestamp.

        Raises ValueError if that would move the cursor backwards.
        """
        current = self._cursors.get((participant, policy_id))
        if current is not None and timestamp < current:
            raise ValueError(
                f"Cursor for {participant}/{policy_id} cannot move back "
                f"from {current} to {timestamp}"
            )
        self._cursors[(participant, policy_id)] = timestamp

    def restore_cursor(
        self, participant: str, policy_id: int, last_settled: Optional[int]
    ) -> None:
        """Put back a previously read cursor value (rollback only)."""
        if last_settled is None:
            self._cursors.pop((participant, policy_id), None)
        else:
            self._cursors[(participant, policy_id)] = last_settled

    def cursors(self) -> Iterator[AccrualCursor]:
        for (participant, policy_id), ts in sorted(self._cursors.items()):
            yield AccrualCursor(participant, policy_id, ts)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "accruing_since": {
                p: r.accruing_since
                for p, r in sorted(self._eligibility.items())
                if r.accruing_since is not None
            },
            "cursors": [
                {"participant": c.participant, "policy_id": c.policy_id,
                 "last_settled": c.last_settled}
                for c in self.cursors()
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> AccrualWindowTracker:
        tracker = cls()
        for participant, since in data.get("accruing_since", {}).items():
            tracker.restore_since(participant, int(since))
        for entry in data.get("cursors", []):
            tracker._cursors[(entry["participant"], int(entry["policy_id"]))] = int(
                entry["last_settled"]
            )
        return tracker
