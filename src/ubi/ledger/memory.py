"""In-memory collaborators — a snapshot ledger and a static eligibility registry.

These satisfy the Protocols in ubi.ledger.interfaces so the accrual core
runs end to end without a chain. Amounts are checked against the unsigned
256-bit range like the core's own arithmetic.

Snapshots follow the usual "record on first write after snapshot" scheme:
taking a snapshot is O(1); each later balance change first stores the
pre-change value under the current snapshot id, and historical lookups
search forward for the first stored value at or after the requested id.
"""

from __future__ import annotations

import bisect
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ubi.accrual.safe_math import checked_add, checked_sub, require_uint
from ubi.models.address import normalize_address


class InMemoryLedger:
    """Balance ledger with allowances and historical snapshots.

    Usage:
        ledger = InMemoryLedger()
        ledger.credit(alice, 100)
        snap = ledger.take_snapshot()
        ledger.transfer(alice, bob, 40)
        ledger.balance_of_at(alice, snap)   # 100
    """

    def __init__(self) -> None:
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0
        self._snapshot_id = 0
        self._balance_snapshots: Dict[str, Tuple[List[int], List[int]]] = {}
        self._supply_snapshots: Tuple[List[int], List[int]] = ([], [])

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def current_snapshot_id(self) -> int:
        return self._snapshot_id

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def allowance(self, owner: str, spender: str) -> int:
        key = (normalize_address(owner), normalize_address(spender))
        return self._allowances.get(key, 0)

    def balance_of_at(self, address: str, snapshot_id: int) -> int:
        """Balance of address when snapshot_id was taken."""
        addr = normalize_address(address)
        ids, values = self._balance_snapshots.get(addr, ([], []))
        found = self._lookup(ids, values, snapshot_id)
        return self._balances.get(addr, 0) if found is None else found

    def total_supply_at(self, snapshot_id: int) -> int:
        ids, values = self._supply_snapshots
        found = self._lookup(ids, values, snapshot_id)
        return self._total_supply if found is None else found

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def credit(self, address: str, amount: int) -> None:
        """Mint amount to address. Zero is accepted and changes nothing."""
        addr = normalize_address(address)
        require_uint(amount)
        new_supply = checked_add(self._total_supply, amount)
        new_balance = checked_add(self._balances.get(addr, 0), amount)
        self._snapshot_balance(addr)
        self._snapshot_supply()
        self._total_supply = new_supply
        self._balances[addr] = new_balance

    def burn(self, address: str, amount: int) -> None:
        addr = normalize_address(address)
        require_uint(amount)
        balance = self._balances.get(addr, 0)
        if amount > balance:
            raise ValueError(f"Burn amount {amount} exceeds balance {balance}")
        self._snapshot_balance(addr)
        self._snapshot_supply()
        self._balances[addr] = checked_sub(balance, amount)
        self._total_supply = checked_sub(self._total_supply, amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        src = normalize_address(sender)
        dst = normalize_address(recipient)
        require_uint(amount)
        balance = self._balances.get(src, 0)
        if amount > balance:
            raise ValueError(f"Transfer amount {amount} exceeds balance {balance}")
        if src == dst:
            return
        new_dst = checked_add(self._balances.get(dst, 0), amount)
        self._snapshot_balance(src)
        self._snapshot_balance(dst)
        self._balances[src] = balance - amount
        self._balances[dst] = new_dst

    def approve(self, owner: str, spender: str, amount: int) -> None:
        require_uint(amount)
        self._allowances[(normalize_address(owner), normalize_address(spender))] = amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        key = (normalize_address(owner), normalize_address(spender))
        allowed = self._allowances.get(key, 0)
        if amount > allowed:
            raise ValueError(f"Transfer amount {amount} exceeds allowance {allowed}")
        self.transfer(owner, recipient, amount)
        self._allowances[key] = allowed - amount

    def take_snapshot(self) -> int:
        self._snapshot_id += 1
        return self._snapshot_id

    # ------------------------------------------------------------------
    # Snapshot bookkeeping
    # ------------------------------------------------------------------

    def _lookup(self, ids: List[int], values: List[int], snapshot_id: int) -> Optional[int]:
        if snapshot_id <= 0 or snapshot_id > self._snapshot_id:
            raise ValueError(f"Nonexistent snapshot id: {snapshot_id}")
        index = bisect.bisect_left(ids, snapshot_id)
        if index == len(ids):
            return None
        return values[index]

    def _snapshot_balance(self, addr: str) -> None:
        ids, values = self._balance_snapshots.setdefault(addr, ([], []))
        self._record(ids, values, self._balances.get(addr, 0))

    def _snapshot_supply(self) -> None:
        ids, values = self._supply_snapshots
        self._record(ids, values, self._total_supply)

    def _record(self, ids: List[int], values: List[int], current: int) -> None:
        if self._snapshot_id == 0:
            return
        if not ids or ids[-1] < self._snapshot_id:
            ids.append(self._snapshot_id)
            values.append(current)


class StaticEligibilityRegistry:
    """Eligibility registry backed by an explicit set of addresses."""

    def __init__(self, eligible: Iterable[str] = ()) -> None:
        self._eligible: Set[str] = {normalize_address(a) for a in eligible}

    def is_eligible(self, address: str) -> bool:
        try:
            return normalize_address(address) in self._eligible
        except ValueError:
            return False

    def register(self, address: str) -> None:
        self._eligible.add(normalize_address(address))

    def revoke(self, address: str) -> None:
        self._eligible.discard(normalize_address(address))

    @property
    def count(self) -> int:
        return len(self._eligible)
