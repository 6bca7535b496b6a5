#!/usr/bin/env python3
"""Accrual invariant checks against the shipped runtime configuration."""

import json
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
POLICY_PATH = ROOT / "config" / "runtime_policy.json"
sys.path.insert(0, str(ROOT / "src"))

from ubi.accrual.safe_math import U256_MAX  # noqa: E402
from ubi.models.address import normalize_address  # noqa: E402


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _as_uint(value) -> int:
    if isinstance(value, str) and value.isdigit():
        return int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        return -1
    return value


def check_policies(policies: list, errors: list[str]) -> None:
    """Seed policies need unique ids, nonzero rates and non-empty windows."""
    seen: set = set()
    for entry in policies:
        pid = entry.get("policy_id")
        if _as_uint(pid) < 0:
            errors.append(f"policy_id must be a non-negative integer, got {pid!r}")
            continue
        if pid in seen:
            errors.append(f"duplicate policy_id: {pid}")
        seen.add(pid)

        rate = entry.get("rate_per_second")
        if rate is not None and not (0 < _as_uint(rate) <= U256_MAX):
            errors.append(f"policy {pid}: rate_per_second must be in [1, U256_MAX]")

        valid_from = _as_uint(entry.get("valid_from"))
        valid_to = _as_uint(entry.get("valid_to"))
        if valid_from < 0 or valid_to < 0:
            errors.append(f"policy {pid}: window bounds must be non-negative integers")
        elif valid_from >= valid_to:
            errors.append(f"policy {pid}: valid_from must be before valid_to")


def check(path: Path = POLICY_PATH) -> int:
    policy = load_json(path)
    errors: list[str] = []

    # --- Governance ---
    controller = policy.get("governance", {}).get("controller", "")
    try:
        normalize_address(controller)
    except ValueError:
        errors.append(
            f"governance.controller must be a valid checksummed address, got {controller!r}"
        )
    else:
        if int(controller, 16) == 0:
            errors.append("governance.controller must not be the zero address")

    # --- Accrual defaults ---
    accrual = policy.get("accrual", {})
    rate = _as_uint(accrual.get("default_rate_per_second"))
    if not (0 < rate <= U256_MAX):
        errors.append("accrual.default_rate_per_second must be in [1, U256_MAX]")
    max_amount = accrual.get("max_amount")
    if max_amount is not None and not (0 < _as_uint(max_amount) <= U256_MAX):
        errors.append("accrual.max_amount must be null or in [1, U256_MAX]")
    if not isinstance(accrual.get("start_accruing_self_only", True), bool):
        errors.append("accrual.start_accruing_self_only must be a boolean")

    # --- Seed policies ---
    check_policies(policy.get("policies", []), errors)

    if errors:
        print("Invariant check FAILED:")
        for error in errors:
            print(f"  - {error}")
        return 1

    print("All accrual invariants passed.")
    return 0


if __name__ == "__main__":
    sys.exit(check())
