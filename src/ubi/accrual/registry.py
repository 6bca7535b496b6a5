"""Policy registry — time-bounded accrual rate policies.

Policies are keyed by an opaque non-negative integer chosen by the
governor. Once created a policy is never deleted and its rate never
changes. Its window can be closed early exactly once by finalization.

Authorization is not checked here; the controller guards every
mutating call with the governance gate before reaching the registry.
"""

from __future__ import annotations

from typing import Dict, Optional

from ubi.accrual.safe_math import U256_MAX
from ubi.errors import (
    AlreadyExpired,
    InvalidRate,
    InvalidWindow,
    PolicyAlreadyExists,
    UnknownPolicy,
)
from ubi.models.accrual import RatePolicy


class PolicyRegistry:
    """Stores rate policies.

    Usage:
        registry = PolicyRegistry()
        registry.add_policy(1, rate=10, valid_from=1000, valid_to=2000)
        registry.finalize_policy(1, now=1500)
        policy = registry.get(1)   # valid_to == 1500
    """

    def __init__(self) -> None:
        self._policies: Dict[int, RatePolicy] = {}

    def add_policy(
        self,
        policy_id: int,
        rate: int,
        valid_from: int,
        valid_to: int,
    ) -> RatePolicy:
        """Create a policy.

        Raises:
            PolicyAlreadyExists: policy_id is already registered.
            InvalidRate: rate is zero, negative or above U256_MAX.
            InvalidWindow: valid_from >= valid_to or a bound is negative.
        """
        if isinstance(policy_id, bool) or not isinstance(policy_id, int) or policy_id < 0:
            raise ValueError(f"Policy ID must be a non-negative int, got {policy_id!r}")
        if policy_id in self._policies:
            raise PolicyAlreadyExists(f"Policy already exists: {policy_id}")
        if isinstance(rate, bool) or not isinstance(rate, int) or rate <= 0 or rate > U256_MAX:
            raise InvalidRate(f"Rate must be in [1, U256_MAX], got {rate!r}")
        if valid_from < 0 or valid_to < 0:
            raise InvalidWindow(
                f"Window bounds must be non-negative, got [{valid_from}, {valid_to})"
            )
        if valid_from >= valid_to:
            raise InvalidWindow(
                f"valid_from ({valid_from}) must be before valid_to ({valid_to})"
            )

        policy = RatePolicy(
            policy_id=policy_id,
            rate_per_second=rate,
            valid_from=valid_from,
            valid_to=valid_to,
        )
        self._policies[policy_id] = policy
        return policy

    def finalize_policy(self, policy_id: int, now: int) -> RatePolicy:
        """Close a policy's window at now.

        Value accrued before now stays claimable.

        Raises:
            UnknownPolicy: policy_id was never created.
            AlreadyExpired: the window has already closed (valid_to <= now),
                which includes every previously finalized policy.
        """
        policy = self._policies.get(policy_id)
        if policy is None:
            raise UnknownPolicy(f"Unknown policy: {policy_id}")
        if policy.valid_to <= now:
            raise AlreadyExpired(
                f"Policy {policy_id} already expired at {policy.valid_to} (now {now})"
            )
        finalized = policy.finalized(now)
        self._policies[policy_id] = finalized
        return finalized

    def get(self, policy_id: int) -> Optional[RatePolicy]:
        """Return the policy, or None if it was never created."""
        return self._policies.get(policy_id)

    def exists(self, policy_id: int) -> bool:
        return policy_id in self._policies

    def policies(self) -> list[RatePolicy]:
        """Return all policies ordered by id."""
        return [self._policies[k] for k in sorted(self._policies)]

    def active_policies(self, now: int) -> list[RatePolicy]:
        """Return the policies accruing at now."""
        return [p for p in self.policies() if p.is_active(now)]

    @property
    def count(self) -> int:
        return len(self._policies)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {"policies": [p.to_dict() for p in self.policies()]}

    @classmethod
    def from_dict(cls, data: dict) -> PolicyRegistry:
        registry = cls()
        for entry in data.get("policies", []):
            policy = RatePolicy.from_dict(entry)
            if policy.policy_id in registry._policies:
                raise ValueError(f"Duplicate policy in persisted state: {policy.policy_id}")
            registry._policies[policy.policy_id] = policy
        return registry
