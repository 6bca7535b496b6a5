"""Tests for the policy resolver — proves it loads and validates runtime config."""

import json
from pathlib import Path

import pytest

from ubi.accrual.safe_math import U256_MAX
from ubi.policy.resolver import PolicyResolver, SeedPolicy

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"
GOV = "0x" + "0" * 39 + "1"
BOB = "0x" + "2" * 40


def _policy(**accrual: object) -> dict:
    settings = {"default_rate_per_second": 10}
    settings.update(accrual)
    return {"governance": {"controller": GOV}, "accrual": settings}


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


class TestShippedConfig:
    def test_controller(self, resolver: PolicyResolver) -> None:
        assert resolver.controller_address() == GOV

    def test_accrual_settings(self, resolver: PolicyResolver) -> None:
        assert resolver.default_rate_per_second() == 10
        assert resolver.max_accrual_amount() == U256_MAX
        assert resolver.start_accruing_self_only() is True

    def test_seed_policies(self, resolver: PolicyResolver) -> None:
        assert resolver.seed_policies() == [SeedPolicy(1, 10, 1000, 2000)]

    def test_controller_override(self) -> None:
        resolver = PolicyResolver.from_config_dir(CONFIG_DIR, controller_override=BOB)
        assert resolver.controller_address() == BOB


class TestValidation:
    def test_missing_governance(self) -> None:
        with pytest.raises(ValueError, match="governance"):
            PolicyResolver({"accrual": {"default_rate_per_second": 1}})

    def test_bad_controller(self) -> None:
        data = _policy()
        data["governance"]["controller"] = "nobody"
        with pytest.raises(ValueError, match="Invalid address"):
            PolicyResolver(data)

    def test_zero_default_rate(self) -> None:
        with pytest.raises(ValueError, match="default_rate_per_second"):
            PolicyResolver(_policy(default_rate_per_second=0))

    def test_string_amounts(self) -> None:
        resolver = PolicyResolver(_policy(max_amount=str(2**128)))
        assert resolver.max_accrual_amount() == 2**128

    def test_max_amount_above_u256(self) -> None:
        with pytest.raises(ValueError, match="U256_MAX"):
            PolicyResolver(_policy(max_amount=U256_MAX + 1))

    def test_third_party_start(self) -> None:
        resolver = PolicyResolver(_policy(start_accruing_self_only=False))
        assert resolver.start_accruing_self_only() is False

    def test_seed_rate_defaults(self) -> None:
        data = _policy()
        data["policies"] = [{"policy_id": 3, "valid_from": 0, "valid_to": 5}]
        assert PolicyResolver(data).seed_policies() == [SeedPolicy(3, 10, 0, 5)]

    def test_duplicate_seed(self) -> None:
        data = _policy()
        seed = {"policy_id": 1, "valid_from": 0, "valid_to": 5}
        data["policies"] = [seed, dict(seed)]
        with pytest.raises(ValueError, match="Duplicate seed"):
            PolicyResolver(data)

    def test_seed_missing_bound(self) -> None:
        data = _policy()
        data["policies"] = [{"policy_id": 1, "valid_from": 0}]
        with pytest.raises(ValueError, match=r"policies\[1\]\.valid_to"):
            PolicyResolver(data)

    def test_empty_seed_window(self) -> None:
        data = _policy()
        data["policies"] = [{"policy_id": 1, "valid_from": 5, "valid_to": 5}]
        with pytest.raises(ValueError, match="invalid window"):
            PolicyResolver(data)


class TestFromEnv:
    def test_dotenv_overrides_controller(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # Register the variables so monkeypatch removes whatever .env sets.
        for name in ("UBI_CONFIG_DIR", "UBI_CONTROLLER"):
            monkeypatch.setenv(name, "")
            monkeypatch.delenv(name)
        config = tmp_path / "config"
        config.mkdir()
        (config / "runtime_policy.json").write_text(json.dumps(_policy()))
        (tmp_path / ".env").write_text(f"UBI_CONTROLLER={BOB}\n")

        resolver = PolicyResolver.from_env(tmp_path)
        assert resolver.controller_address() == BOB

    def test_config_dir_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("UBI_CONFIG_DIR", str(CONFIG_DIR))
        monkeypatch.setenv("UBI_CONTROLLER", "")
        resolver = PolicyResolver.from_env(tmp_path)
        assert resolver.controller_address() == GOV
        assert len(resolver.seed_policies()) == 1
