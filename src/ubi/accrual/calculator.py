"""Accrual calculator — deterministic accrued value from elapsed time.

    start = max(accruing_since, valid_from)   if never settled
          = last_settled                       otherwise
    end   = min(now, valid_to)
    value = (end - start) * rate_per_second    if end > start, else 0

A participant who is not accruing, or a policy that does not exist,
yields zero. Both are defined results, not errors. Arithmetic is checked:
leaving the unsigned 256-bit range (or the configured ceiling) raises
ArithmeticOverflow instead of wrapping.

The calculator is pure. It reads the registry and tracker and never
writes; committing a quote is the controller's job.
"""

from __future__ import annotations

from typing import Optional

from ubi.accrual.registry import PolicyRegistry
from ubi.accrual.safe_math import U256_MAX, checked_mul, checked_sub
from ubi.accrual.tracker import AccrualWindowTracker
from ubi.models.accrual import AccrualQuote

_UNSET = object()


class AccrualCalculator:
    """Computes claimable value for (participant, policy, now)."""

    def __init__(
        self,
        registry: PolicyRegistry,
        tracker: AccrualWindowTracker,
        max_amount: int = U256_MAX,
    ) -> None:
        self._registry = registry
        self._tracker = tracker
        self._max_amount = max_amount

    @property
    def max_amount(self) -> int:
        return self._max_amount

    def compute_accrued(self, participant: str, policy_id: int, now: int) -> int:
        """Return the value claimable right now under policy_id."""
        return self.quote(participant, policy_id, now).amount

    def quote(
        self,
        participant: str,
        policy_id: int,
        now: int,
        last_settled: object = _UNSET,
    ) -> AccrualQuote:
        """Compute an accrual quote.

        last_settled, when given, replaces the tracker's cursor. The
        controller passes staged cursor values this way while processing
        several policies inside one transition.
        """
        since = self._tracker.accruing_since(participant)
        if since is None:
            return AccrualQuote(participant, policy_id, 0)

        policy = self._registry.get(policy_id)
        if policy is None:
            return AccrualQuote(participant, policy_id, 0)

        cursor: Optional[int]
        if last_settled is _UNSET:
            cursor = self._tracker.last_settled(participant, policy_id)
        else:
            cursor = last_settled  # type: ignore[assignment]

        if cursor is None:
            start = max(since, policy.valid_from)
        else:
            start = cursor
        end = min(now, policy.valid_to)

        if end <= start:
            return AccrualQuote(participant, policy_id, 0, start=start, end=end)

        elapsed = checked_sub(end, start)
        amount = checked_mul(elapsed, policy.rate_per_second, self._max_amount)
        return AccrualQuote(
            participant, policy_id, amount, start=start, end=end, settle_to=end,
        )
