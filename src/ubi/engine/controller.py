"""Eligibility controller — the accrual state machine.

Per-participant states: NOT_ACCRUING (initial) and ACCRUING.

    start_accruing   NOT_ACCRUING → ACCRUING       eligible participant only
    mint_accrued     ACCRUING → ACCRUING           eligible participant, pays self
    report_removal   ACCRUING → NOT_ACCRUING       ineligible participant, pays reporter

Every entry point is all-or-nothing:
1. Guards run first and raise typed errors before anything is written.
2. Amounts are computed against a staged cursor view, so a failure while
   summing several policies leaves the tracker untouched.
3. Tracker writes are applied, then the ledger credit is requested. If
   the ledger raises, the writes are rolled back and the error propagates.

Governor entry points (policy creation and finalization, default rate,
eligibility registry, snapshots) pass through the governance gate.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

from ubi.accrual.calculator import AccrualCalculator
from ubi.accrual.registry import PolicyRegistry
from ubi.accrual.safe_math import checked_add
from ubi.accrual.tracker import AccrualWindowTracker
from ubi.errors import (
    AlreadyAccruing,
    InvalidRate,
    NotAccruing,
    NotEligible,
    StillEligible,
    Unauthorized,
)
from ubi.governance.gate import GovernanceGate
from ubi.ledger.interfaces import EligibilityRegistry, FungibleLedger
from ubi.models.accrual import (
    AccrualQuote,
    AccrualState,
    MintRecord,
    RatePolicy,
)
from ubi.models.address import normalize_address
from ubi.policy.resolver import PolicyResolver


class EligibilityController:
    """Drives eligibility transitions and delegates value to the ledger.

    Usage:
        controller = EligibilityController(resolver, eligibility, ledger)
        controller.add_policy(governor, 1, rate=10, valid_from=1000, valid_to=2000)
        controller.start_accruing(alice, alice, now=1200)
        record = controller.mint_accrued(alice, alice, 1, now=1500)
        record.amount   # 3000
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        eligibility: EligibilityRegistry,
        ledger: FungibleLedger,
        registry: Optional[PolicyRegistry] = None,
        tracker: Optional[AccrualWindowTracker] = None,
        default_rate: Optional[int] = None,
    ) -> None:
        self._resolver = resolver
        self._gate = GovernanceGate(resolver.controller_address())
        self._eligibility = self._check_registry(eligibility)
        if not isinstance(ledger, FungibleLedger):
            raise TypeError(
                f"Ledger must satisfy FungibleLedger Protocol, got {type(ledger)}"
            )
        self._ledger = ledger
        self._registry = registry if registry is not None else PolicyRegistry()
        self._tracker = tracker if tracker is not None else AccrualWindowTracker()
        self._calculator = AccrualCalculator(
            self._registry, self._tracker, resolver.max_accrual_amount()
        )
        self._default_rate = (
            default_rate if default_rate is not None
            else resolver.default_rate_per_second()
        )
        self._self_only = resolver.start_accruing_self_only()
        self._mint_records: list[MintRecord] = []

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def registry(self) -> PolicyRegistry:
        return self._registry

    @property
    def tracker(self) -> AccrualWindowTracker:
        return self._tracker

    @property
    def calculator(self) -> AccrualCalculator:
        return self._calculator

    @property
    def gate(self) -> GovernanceGate:
        return self._gate

    @property
    def ledger(self) -> FungibleLedger:
        return self._ledger

    @property
    def default_rate(self) -> int:
        return self._default_rate

    def policy(self, policy_id: int) -> Optional[RatePolicy]:
        return self._registry.get(policy_id)

    def state_of(self, participant: str) -> AccrualState:
        return self._tracker.state_of(normalize_address(participant))

    def mint_records(self) -> list[MintRecord]:
        """Return all emitted mint records (for audit)."""
        return list(self._mint_records)

    def restore_mint_records(self, records: Sequence[MintRecord]) -> None:
        self._mint_records = list(records)

    # ------------------------------------------------------------------
    # Governor entry points
    # ------------------------------------------------------------------

    def add_policy(
        self,
        caller: str,
        policy_id: int,
        valid_from: int,
        valid_to: int,
        rate: Optional[int] = None,
    ) -> RatePolicy:
        """Create a policy. rate defaults to the configured default rate."""
        self._gate.require(caller)
        return self._registry.add_policy(
            policy_id,
            self._default_rate if rate is None else rate,
            valid_from,
            valid_to,
        )

    def finalize_policy(self, caller: str, policy_id: int, now: int) -> RatePolicy:
        """Close a policy's window at now."""
        self._gate.require(caller)
        return self._registry.finalize_policy(policy_id, now)

    def set_default_rate(self, caller: str, rate: int) -> int:
        """Change the rate used by add_policy when none is given.

        Existing policies are unaffected; their rates never change.
        """
        self._gate.require(caller)
        if isinstance(rate, bool) or not isinstance(rate, int) or rate <= 0:
            raise InvalidRate(f"Default rate must be a positive integer, got {rate!r}")
        if rate > self._calculator.max_amount:
            raise InvalidRate(f"Default rate {rate} exceeds the accrual ceiling")
        self._default_rate = rate
        return rate

    def set_eligibility_registry(
        self, caller: str, eligibility: EligibilityRegistry
    ) -> None:
        """Point the controller at a different eligibility registry."""
        self._gate.require(caller)
        self._eligibility = self._check_registry(eligibility)

    def take_snapshot(self, caller: str) -> int:
        """Forward a snapshot request to the ledger."""
        self._gate.require(caller)
        return self._ledger.take_snapshot()

    # ------------------------------------------------------------------
    # Participant transitions
    # ------------------------------------------------------------------

    def start_accruing(self, caller: str, participant: str, now: int) -> int:
        """NOT_ACCRUING → ACCRUING. Returns the accruing_since timestamp."""
        who = normalize_address(participant)
        self._require_start_caller(caller, who)
        self._require_eligible(who)
        if self._tracker.is_accruing(who):
            raise AlreadyAccruing(f"Participant already accruing: {who}")

        self._tracker.start(who, now)
        return now

    def mint_accrued(
        self, caller: str, participant: str, policy_id: int, now: int
    ) -> MintRecord:
        """Pay the participant what has accrued under policy_id.

        Anyone may trigger the claim; the value always goes to the
        participant. caller is accepted for a uniform entry-point shape
        and is not checked here; the service records it as the event
        actor. A zero amount is minted as zero, not rejected.
        """
        who = normalize_address(participant)
        self._require_eligible(who)
        self._require_accruing(who)

        total, quotes = self._stage_quotes(who, [policy_id], now)
        record = MintRecord(
            accruer=who,
            beneficiary=who,
            amount=total,
            policy_ids=(policy_id,),
            timestamp=now,
        )
        self._commit(who, quotes, record, stop=False)
        return record

    def report_removal(
        self,
        caller: str,
        participant: str,
        policy_ids: Sequence[int],
        now: int,
    ) -> MintRecord:
        """Settle a participant who lost eligibility and pay the reporter.

        Duplicate ids are processed independently; the second occurrence
        sees an already-settled cursor and contributes zero.
        """
        who = normalize_address(participant)
        reporter = normalize_address(caller)
        self._require_accruing(who)
        if self._eligibility.is_eligible(who):
            raise StillEligible(f"Participant is still eligible: {who}")

        ids = tuple(policy_ids)
        total, quotes = self._stage_quotes(who, ids, now)
        record = MintRecord(
            accruer=who,
            beneficiary=reporter,
            amount=total,
            policy_ids=ids,
            timestamp=now,
        )
        self._commit(who, quotes, record, stop=True)
        return record

    def get_accrued_value(self, participant: str, policy_id: int, now: int) -> int:
        """Pure read of the value claimable right now."""
        return self._calculator.compute_accrued(
            normalize_address(participant), policy_id, now
        )

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_start_caller(self, caller: str, participant: str) -> None:
        if not self._self_only:
            return
        try:
            same = normalize_address(caller) == participant
        except ValueError:
            same = False
        if not same:
            raise Unauthorized(
                f"Only {participant} may start its own accrual (caller {caller!r})"
            )

    def _require_eligible(self, participant: str) -> None:
        if not self._eligibility.is_eligible(participant):
            raise NotEligible(f"Participant is not eligible: {participant}")

    def _require_accruing(self, participant: str) -> None:
        if not self._tracker.is_accruing(participant):
            raise NotAccruing(f"Participant is not accruing: {participant}")

    @staticmethod
    def _check_registry(eligibility: EligibilityRegistry) -> EligibilityRegistry:
        if not isinstance(eligibility, EligibilityRegistry):
            raise TypeError(
                "Eligibility registry must satisfy EligibilityRegistry Protocol, "
                f"got {type(eligibility)}"
            )
        return eligibility

    # ------------------------------------------------------------------
    # Staging and commit
    # ------------------------------------------------------------------

    def _stage_quotes(
        self, participant: str, policy_ids: Sequence[int], now: int
    ) -> Tuple[int, list[AccrualQuote]]:
        """Quote every id in order against a staged cursor view.

        Nothing is written; raises before commit if any step overflows.
        """
        staged: Dict[int, Optional[int]] = {}
        quotes: list[AccrualQuote] = []
        total = 0
        for policy_id in policy_ids:
            if policy_id in staged:
                cursor = staged[policy_id]
            else:
                cursor = self._tracker.last_settled(participant, policy_id)
            quote = self._calculator.quote(participant, policy_id, now, last_settled=cursor)
            total = checked_add(total, quote.amount, self._calculator.max_amount)
            if quote.settle_to is not None:
                staged[policy_id] = quote.settle_to
            quotes.append(quote)
        return total, quotes

    def _commit(
        self,
        participant: str,
        quotes: Sequence[AccrualQuote],
        record: MintRecord,
        stop: bool,
    ) -> None:
        previous_since = self._tracker.accruing_since(participant)
        previous_cursors: Dict[int, Optional[int]] = {}
        for quote in quotes:
            if quote.policy_id not in previous_cursors:
                previous_cursors[quote.policy_id] = self._tracker.last_settled(
                    participant, quote.policy_id
                )

        try:
            for quote in quotes:
                if quote.settle_to is not None:
                    self._tracker.settle(participant, quote.policy_id, quote.settle_to)
            if stop:
                self._tracker.stop(participant)
            self._ledger.credit(record.beneficiary, record.amount)
        except Exception:
            for policy_id, value in previous_cursors.items():
                self._tracker.restore_cursor(participant, policy_id, value)
            self._tracker.restore_since(participant, previous_since)
            raise

        self._mint_records.append(record)
