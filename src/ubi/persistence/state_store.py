"""State store — durable JSON snapshot of the accrual core.

Holds the policy table, eligibility windows, cursors, the default rate
and the mint records. Ledger balances belong to the ledger and are not
stored here.

Writes go to a temporary file that replaces the target, so a crash
mid-write leaves the previous state intact.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from ubi.accrual.registry import PolicyRegistry
from ubi.accrual.tracker import AccrualWindowTracker
from ubi.models.accrual import MintRecord

STATE_VERSION = 1


class StateStore:
    """Single-file JSON persistence.

    Usage:
        store = StateStore(Path("data/state.json"))
        store.save(registry, tracker, default_rate, mint_records)
        if store.exists():
            registry, tracker, default_rate, records = store.load()
    """

    def __init__(self, storage_path: Path) -> None:
        self._path = Path(storage_path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def save(
        self,
        registry: PolicyRegistry,
        tracker: AccrualWindowTracker,
        default_rate: int,
        mint_records: list[MintRecord],
    ) -> None:
        """Write the full state. Raises OSError on I/O failure."""
        document = {
            "version": STATE_VERSION,
            "registry": registry.to_dict(),
            "tracker": tracker.to_dict(),
            "default_rate": str(default_rate),
            "mint_records": [r.to_dict() for r in mint_records],
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(document, f, sort_keys=True, indent=2)
        os.replace(tmp, self._path)

    def load(
        self,
    ) -> tuple[PolicyRegistry, AccrualWindowTracker, Optional[int], list[MintRecord]]:
        """Read the state back.

        Returns (registry, tracker, default_rate, mint_records). A missing
        file yields empty components and default_rate None.
        """
        if not self._path.exists():
            return PolicyRegistry(), AccrualWindowTracker(), None, []
        with self._path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        version = data.get("version")
        if version != STATE_VERSION:
            raise ValueError(f"Unsupported state version: {version!r}")
        default_rate = data.get("default_rate")
        return (
            PolicyRegistry.from_dict(data.get("registry", {})),
            AccrualWindowTracker.from_dict(data.get("tracker", {})),
            int(default_rate) if default_rate is not None else None,
            [MintRecord.from_dict(r) for r in data.get("mint_records", [])],
        )
