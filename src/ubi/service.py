"""UBI service — unified facade for the accrual engine.

This is the primary interface for programmatic access. It wraps the
eligibility controller and adds what the core leaves to its caller:
- A clock, so callers may omit now.
- Typed ServiceResults instead of raised errors.
- An audit event for every committed transition.
- Durable state after every committed transition.

Ordering per mutation:
1. Controller transition (all-or-nothing; a failure changes nothing).
2. Audit event append.
3. State persistence.
Steps 2 and 3 run after the transition is final. Their failures are
reported as warnings and raise the degraded flags; they never undo a
committed transition.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from ubi.engine.controller import EligibilityController
from ubi.errors import AccrualError
from ubi.ledger.interfaces import EligibilityRegistry, FungibleLedger
from ubi.models.accrual import AccrualState, MintRecord, RatePolicy
from ubi.models.address import normalize_address
from ubi.persistence.event_log import EventKind, EventLog, EventRecord
from ubi.persistence.state_store import StateStore
from ubi.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


def _system_clock() -> int:
    return int(time.time())


class UBIService:
    """Accrual engine facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = UBIService(resolver, eligibility, ledger)

        service.add_policy(governor, 1, valid_from=1000, valid_to=2000, rate=10)
        service.start_accruing(alice, alice, now=1200)
        result = service.mint_accrued(alice, alice, 1, now=1500)
        result.data["amount"]   # "3000"

    Persistence (optional):
        service = UBIService(resolver, eligibility, ledger,
                             event_log=log, state_store=store)
        # State is loaded on construction and saved after each mutation.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        eligibility: EligibilityRegistry,
        ledger: FungibleLedger,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._resolver = resolver
        self._event_log = event_log
        self._state_store = state_store
        self._clock = clock or _system_clock

        if state_store is not None and state_store.exists():
            registry, tracker, default_rate, records = state_store.load()
            self._controller = EligibilityController(
                resolver, eligibility, ledger,
                registry=registry, tracker=tracker, default_rate=default_rate,
            )
            self._controller.restore_mint_records(records)
        else:
            self._controller = EligibilityController(resolver, eligibility, ledger)
            for seed in resolver.seed_policies():
                self._controller.registry.add_policy(
                    seed.policy_id, seed.rate_per_second, seed.valid_from, seed.valid_to,
                )

        # Continue numbering from the persisted log to avoid ID collision.
        self._event_counter = event_log.count if event_log is not None else 0
        self._audit_degraded = False
        self._persistence_degraded = False

    @property
    def controller(self) -> EligibilityController:
        return self._controller

    # ------------------------------------------------------------------
    # Governor operations
    # ------------------------------------------------------------------

    def add_policy(
        self,
        caller: str,
        policy_id: int,
        valid_from: int,
        valid_to: int,
        rate: Optional[int] = None,
    ) -> ServiceResult:
        """Create a rate policy (governor only)."""
        try:
            policy = self._controller.add_policy(
                caller, policy_id, valid_from, valid_to, rate=rate,
            )
        except (AccrualError, ValueError) as e:
            return self._rejected("add_policy", e)
        return self._committed(
            EventKind.POLICY_ADDED, caller, self._policy_data(policy), None,
        )

    def finalize_policy(
        self, caller: str, policy_id: int, now: Optional[int] = None,
    ) -> ServiceResult:
        """Terminate a policy early (governor only)."""
        now = self._now(now)
        try:
            policy = self._controller.finalize_policy(caller, policy_id, now)
        except (AccrualError, ValueError) as e:
            return self._rejected("finalize_policy", e)
        return self._committed(
            EventKind.POLICY_FINALIZED, caller, self._policy_data(policy), now,
        )

    def set_default_rate(self, caller: str, rate: int) -> ServiceResult:
        try:
            previous = self._controller.default_rate
            self._controller.set_default_rate(caller, rate)
        except (AccrualError, ValueError) as e:
            return self._rejected("set_default_rate", e)
        return self._committed(
            EventKind.DEFAULT_RATE_CHANGED,
            caller,
            {"previous_rate": str(previous), "rate": str(rate)},
            None,
        )

    def set_eligibility_registry(
        self, caller: str, eligibility: EligibilityRegistry,
    ) -> ServiceResult:
        try:
            self._controller.set_eligibility_registry(caller, eligibility)
        except (AccrualError, ValueError, TypeError) as e:
            return self._rejected("set_eligibility_registry", e)
        return self._committed(
            EventKind.ELIGIBILITY_REGISTRY_CHANGED,
            caller,
            {"registry": type(eligibility).__name__},
            None,
        )

    def take_snapshot(self, caller: str) -> ServiceResult:
        try:
            snapshot_id = self._controller.take_snapshot(caller)
        except (AccrualError, ValueError) as e:
            return self._rejected("take_snapshot", e)
        return self._committed(
            EventKind.SNAPSHOT_TAKEN, caller, {"snapshot_id": snapshot_id}, None,
        )

    # ------------------------------------------------------------------
    # Participant operations
    # ------------------------------------------------------------------

    def start_accruing(
        self, caller: str, participant: str, now: Optional[int] = None,
    ) -> ServiceResult:
        now = self._now(now)
        try:
            since = self._controller.start_accruing(caller, participant, now)
        except (AccrualError, ValueError) as e:
            return self._rejected("start_accruing", e)
        return self._committed(
            EventKind.ACCRUAL_STARTED,
            caller,
            {
                "participant": normalize_address(participant),
                "accruing_since": since,
            },
            now,
        )

    def mint_accrued(
        self,
        caller: str,
        participant: str,
        policy_id: int,
        now: Optional[int] = None,
    ) -> ServiceResult:
        now = self._now(now)
        try:
            record = self._controller.mint_accrued(caller, participant, policy_id, now)
        except (AccrualError, ValueError) as e:
            return self._rejected("mint_accrued", e)
        return self._committed(
            EventKind.ACCRUED_MINTED, caller, self._mint_data(record), now,
        )

    def report_removal(
        self,
        caller: str,
        participant: str,
        policy_ids: Sequence[int],
        now: Optional[int] = None,
    ) -> ServiceResult:
        now = self._now(now)
        try:
            record = self._controller.report_removal(caller, participant, policy_ids, now)
        except (AccrualError, ValueError) as e:
            return self._rejected("report_removal", e)
        return self._committed(
            EventKind.REMOVAL_REPORTED, caller, self._mint_data(record), now,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_accrued_value(
        self, participant: str, policy_id: int, now: Optional[int] = None,
    ) -> int:
        return self._controller.get_accrued_value(participant, policy_id, self._now(now))

    def get_policy(self, policy_id: int) -> Optional[RatePolicy]:
        return self._controller.policy(policy_id)

    def state_of(self, participant: str) -> AccrualState:
        return self._controller.state_of(participant)

    def status(self, now: Optional[int] = None) -> dict[str, Any]:
        """Return a system-wide status summary."""
        now = self._now(now)
        records = self._controller.mint_records()
        return {
            "controller": self._controller.gate.controller,
            "default_rate": str(self._controller.default_rate),
            "policies": {
                "total": self._controller.registry.count,
                "active": len(self._controller.registry.active_policies(now)),
            },
            "participants": {
                "accruing": len(self._controller.tracker.accruing_participants()),
            },
            "mints": {
                "count": len(records),
                "total": str(sum(r.amount for r in records)),
            },
            "audit_degraded": self._audit_degraded,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self, now: Optional[int]) -> int:
        return self._clock() if now is None else now

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _rejected(self, operation: str, error: Exception) -> ServiceResult:
        code = getattr(error, "code", "invalid_argument")
        logger.debug("%s rejected (%s): %s", operation, code, error)
        return ServiceResult(success=False, errors=[str(error)], data={"code": code})

    def _committed(
        self,
        kind: EventKind,
        actor_id: str,
        data: dict[str, Any],
        timestamp: Optional[int],
    ) -> ServiceResult:
        """Record the audit event and persist state for a committed transition."""
        result_data = dict(data)
        warnings: list[str] = []

        warning = self._record_event(kind, actor_id, data, timestamp)
        if warning:
            warnings.append(warning)
        warning = self._safe_persist_post_audit()
        if warning:
            warnings.append(warning)

        if warnings:
            result_data["warning"] = "; ".join(warnings)
        return ServiceResult(success=True, data=result_data)

    def _record_event(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp: Optional[int],
    ) -> Optional[str]:
        if self._event_log is None:
            return None
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                timestamp=timestamp,
            )
            self._event_log.append(event)
        except (ValueError, OverflowError, OSError) as e:
            self._audit_degraded = True
            logger.error("Audit event %s not recorded: %s", kind.value, e)
            return f"Audit degraded: {e} — transition committed without audit record"
        return None

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after a committed transition.

        Never rolls back: the transition is final and the ledger has
        already been credited. On failure the StateStore is stale and
        the degraded flag is raised for operator attention.
        """
        if self._state_store is None:
            return None
        try:
            self._state_store.save(
                self._controller.registry,
                self._controller.tracker,
                self._controller.default_rate,
                self._controller.mint_records(),
            )
        except OSError as e:
            self._persistence_degraded = True
            logger.warning("State persistence failed: %s", e)
            return f"Persistence degraded: {e} — state committed but StateStore is stale"
        return None

    @staticmethod
    def _policy_data(policy: RatePolicy) -> dict[str, Any]:
        return policy.to_dict()

    @staticmethod
    def _mint_data(record: MintRecord) -> dict[str, Any]:
        return record.to_dict()
