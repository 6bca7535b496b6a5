"""Policy resolver — loads runtime configuration for the accrual core.

Configuration lives in a directory of JSON files (config/ by default):

    runtime_policy.json
        governance.controller              controller address
        accrual.default_rate_per_second    rate used when add_policy omits one
        accrual.max_amount                 ceiling for checked math (null = U256)
        accrual.start_accruing_self_only   only a participant may start itself
        policies                           seed policies for a fresh deployment

Deployment overrides come from the environment (optionally via a .env file):
    UBI_CONFIG_DIR   alternative config directory
    UBI_CONTROLLER   controller address

All values are validated at load time. A bad config fails loudly here
rather than surfacing later as a confusing accrual error.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from ubi.accrual.safe_math import U256_MAX
from ubi.models.address import normalize_address

RUNTIME_POLICY_FILE = "runtime_policy.json"


@dataclass(frozen=True)
class SeedPolicy:
    """A policy installed when a deployment starts with no persisted state."""
    policy_id: int
    rate_per_second: int
    valid_from: int
    valid_to: int


class PolicyResolver:
    """Read-only view over the runtime configuration.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        resolver.controller_address()
        resolver.default_rate_per_second()
    """

    def __init__(self, runtime_policy: dict[str, Any]) -> None:
        self._policy = runtime_policy
        self._controller = normalize_address(
            self._section("governance").get("controller", "")
        )
        accrual = self._section("accrual")

        self._default_rate = self._positive_int(
            accrual.get("default_rate_per_second"), "accrual.default_rate_per_second"
        )
        max_amount = accrual.get("max_amount")
        self._max_amount = (
            U256_MAX if max_amount is None
            else self._positive_int(max_amount, "accrual.max_amount")
        )
        if self._max_amount > U256_MAX:
            raise ValueError("accrual.max_amount cannot exceed U256_MAX")
        self._self_only = bool(accrual.get("start_accruing_self_only", True))
        self._seeds = self._parse_seeds(runtime_policy.get("policies", []))

    @classmethod
    def from_config_dir(
        cls,
        config_dir: Path,
        controller_override: Optional[str] = None,
    ) -> PolicyResolver:
        path = Path(config_dir) / RUNTIME_POLICY_FILE
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if controller_override:
            data.setdefault("governance", {})["controller"] = controller_override
        return cls(data)

    @classmethod
    def from_env(cls, root: Path) -> PolicyResolver:
        """Load config using root/.env and process environment overrides."""
        load_dotenv(Path(root) / ".env")
        config_dir = Path(os.getenv("UBI_CONFIG_DIR") or Path(root) / "config")
        return cls.from_config_dir(
            config_dir,
            controller_override=os.getenv("UBI_CONTROLLER"),
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def controller_address(self) -> str:
        return self._controller

    def default_rate_per_second(self) -> int:
        return self._default_rate

    def max_accrual_amount(self) -> int:
        return self._max_amount

    def start_accruing_self_only(self) -> bool:
        return self._self_only

    def seed_policies(self) -> list[SeedPolicy]:
        return list(self._seeds)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _section(self, name: str) -> dict[str, Any]:
        section = self._policy.get(name)
        if not isinstance(section, dict):
            raise ValueError(f"{RUNTIME_POLICY_FILE}: missing section '{name}'")
        return section

    @staticmethod
    def _positive_int(value: Any, label: str) -> int:
        # Large amounts may be written as strings to survive JSON tooling.
        if isinstance(value, str) and value.isdigit():
            value = int(value)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"{label} must be a positive integer, got {value!r}")
        return value

    def _parse_seeds(self, entries: list[dict[str, Any]]) -> list[SeedPolicy]:
        seeds: list[SeedPolicy] = []
        seen: set[int] = set()
        for entry in entries:
            pid = entry.get("policy_id")
            if isinstance(pid, bool) or not isinstance(pid, int) or pid < 0:
                raise ValueError(f"Seed policy has invalid policy_id: {pid!r}")
            if pid in seen:
                raise ValueError(f"Duplicate seed policy_id: {pid}")
            seen.add(pid)
            rate = entry.get("rate_per_second", self._default_rate)
            rate = self._positive_int(rate, f"policies[{pid}].rate_per_second")
            valid_from = entry.get("valid_from")
            valid_to = entry.get("valid_to")
            for label, bound in (("valid_from", valid_from), ("valid_to", valid_to)):
                if isinstance(bound, bool) or not isinstance(bound, int):
                    raise ValueError(
                        f"policies[{pid}].{label} must be an integer, got {bound!r}"
                    )
            if valid_from < 0 or valid_from >= valid_to:
                raise ValueError(
                    f"Seed policy {pid} has invalid window [{valid_from}, {valid_to})"
                )
            seeds.append(SeedPolicy(pid, rate, valid_from, valid_to))
        return seeds
