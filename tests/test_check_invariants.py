"""Invariant check script validates the shipped accrual config."""

import importlib.util
import json
import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SCRIPT = ROOT / "tools" / "check_invariants.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("check_invariants", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _write_config(tmp_path: Path, **changes: object) -> Path:
    config = json.loads((ROOT / "config" / "runtime_policy.json").read_text())
    config["accrual"].update(changes)
    path = tmp_path / "runtime_policy.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    return path


class TestCheckInvariants:
    def test_invariants_pass_with_default_config(self):
        result = subprocess.run(
            [sys.executable, "tools/check_invariants.py"],
            capture_output=True,
            text=True,
            cwd=ROOT,
        )
        assert result.returncode == 0, f"Invariants failed: {result.stdout}\n{result.stderr}"
        assert "All accrual invariants passed." in result.stdout

    def test_zero_default_rate_fails(self, tmp_path, capsys):
        path = _write_config(tmp_path, default_rate_per_second=0)
        assert _load_script().check(path) == 1
        assert "default_rate_per_second" in capsys.readouterr().out

    def test_non_boolean_self_only_fails(self, tmp_path):
        path = _write_config(tmp_path, start_accruing_self_only="yes")
        assert _load_script().check(path) == 1

    @pytest.mark.parametrize(
        "seed, message",
        [
            ({"policy_id": 1, "valid_from": 10, "valid_to": 10}, "valid_from must be before"),
            ({"policy_id": 1, "rate_per_second": 0, "valid_from": 0, "valid_to": 1}, "rate_per_second"),
            ({"policy_id": -1, "valid_from": 0, "valid_to": 1}, "policy_id"),
        ],
    )
    def test_bad_seed_policy_fails(self, tmp_path, capsys, seed, message):
        path = _write_config(tmp_path)
        config = json.loads(path.read_text())
        config["policies"] = [seed]
        path.write_text(json.dumps(config), encoding="utf-8")
        assert _load_script().check(path) == 1
        assert message in capsys.readouterr().out

    def test_zero_controller_fails(self, tmp_path):
        path = _write_config(tmp_path)
        config = json.loads(path.read_text())
        config["governance"]["controller"] = "0x" + "0" * 40
        path.write_text(json.dumps(config), encoding="utf-8")
        assert _load_script().check(path) == 1

    def test_bad_checksum_controller_fails(self, tmp_path, capsys):
        path = _write_config(tmp_path)
        config = json.loads(path.read_text())
        # Mixed case with a wrong EIP-55 checksum.
        config["governance"]["controller"] = "0x" + "aA" * 20
        path.write_text(json.dumps(config), encoding="utf-8")
        assert _load_script().check(path) == 1
        assert "checksummed address" in capsys.readouterr().out
