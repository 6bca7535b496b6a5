"""Accrual models — rate policies, participant state, cursors and mint records.

All timestamps are integer seconds since the Unix epoch. All amounts are
unsigned integers; there are no floats in accrual arithmetic.

Invariants enforced by these models and their owners:
- A policy's rate is set once and never changes.
- A policy's valid_to can shrink exactly once (finalization), never grow.
- A participant is either NOT_ACCRUING or ACCRUING, never both.
- A cursor's last_settled never decreases once set.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple


class AccrualState(str, enum.Enum):
    """Per-participant eligibility state.

    State machine:
        NOT_ACCRUING → ACCRUING      (start_accruing)
        ACCRUING → ACCRUING          (mint_accrued)
        ACCRUING → NOT_ACCRUING      (report_removal)
    """
    NOT_ACCRUING = "not_accruing"
    ACCRUING = "accruing"


ACCRUAL_TRANSITIONS: Dict[AccrualState, frozenset] = {
    AccrualState.NOT_ACCRUING: frozenset({AccrualState.ACCRUING}),
    AccrualState.ACCRUING: frozenset({
        AccrualState.ACCRUING,
        AccrualState.NOT_ACCRUING,
    }),
}


@dataclass(frozen=True)
class RatePolicy:
    """A time-bounded accrual rate.

    The window is half-open: value accrues for t in [valid_from, valid_to).
    Immutable; finalization produces a new record via finalized().
    """
    policy_id: int
    rate_per_second: int
    valid_from: int
    valid_to: int
    finalized_at: Optional[int] = None

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None

    def is_active(self, now: int) -> bool:
        """Whether the policy accrues at time now."""
        return self.valid_from <= now < self.valid_to

    def finalized(self, now: int) -> RatePolicy:
        """Return a copy with the window clamped to end at now."""
        return replace(self, valid_to=now, finalized_at=now)

    def to_dict(self) -> dict:
        return {
            "policy_id": self.policy_id,
            "rate_per_second": str(self.rate_per_second),
            "valid_from": self.valid_from,
            "valid_to": self.valid_to,
            "finalized_at": self.finalized_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> RatePolicy:
        return cls(
            policy_id=int(data["policy_id"]),
            rate_per_second=int(data["rate_per_second"]),
            valid_from=int(data["valid_from"]),
            valid_to=int(data["valid_to"]),
            finalized_at=data.get("finalized_at"),
        )


@dataclass
class ParticipantEligibility:
    """Eligibility window of a single participant.

    accruing_since is None when the participant is not accruing.
    """
    participant: str
    accruing_since: Optional[int] = None

    @property
    def state(self) -> AccrualState:
        if self.accruing_since is None:
            return AccrualState.NOT_ACCRUING
        return AccrualState.ACCRUING

    def transition_to(self, new_state: AccrualState, now: int) -> None:
        """Transition to a new state, validating the transition is legal."""
        allowed = ACCRUAL_TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise ValueError(
                f"Invalid accrual transition: {self.state.value} → {new_state.value}"
            )
        if new_state == AccrualState.NOT_ACCRUING:
            self.accruing_since = None
        elif self.state == AccrualState.NOT_ACCRUING:
            self.accruing_since = now


@dataclass(frozen=True)
class AccrualCursor:
    """Point through which a participant has been paid under one policy.

    last_settled is None when the participant has never settled under it.
    """
    participant: str
    policy_id: int
    last_settled: Optional[int] = None


@dataclass(frozen=True)
class AccrualQuote:
    """Result of one accrual computation.

    settle_to is the value the cursor advances to if this quote is
    committed, or None when the cursor stays where it is.
    """
    participant: str
    policy_id: int
    amount: int
    start: Optional[int] = None
    end: Optional[int] = None
    settle_to: Optional[int] = None


@dataclass(frozen=True)
class MintRecord:
    """Emitted on every successful mint.

    accruer == beneficiary for a claim; for a removal report the accruer
    is the removed participant and the beneficiary is the reporter.
    """
    accruer: str
    beneficiary: str
    amount: int
    policy_ids: Tuple[int, ...] = field(default_factory=tuple)
    timestamp: int = 0

    def to_dict(self) -> dict:
        return {
            "accruer": self.accruer,
            "beneficiary": self.beneficiary,
            "amount": str(self.amount),
            "policy_ids": list(self.policy_ids),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> MintRecord:
        return cls(
            accruer=data["accruer"],
            beneficiary=data["beneficiary"],
            amount=int(data["amount"]),
            policy_ids=tuple(int(p) for p in data.get("policy_ids", [])),
            timestamp=int(data.get("timestamp", 0)),
        )
