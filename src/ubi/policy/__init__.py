"""Runtime configuration."""

from ubi.policy.resolver import PolicyResolver, SeedPolicy

__all__ = ["PolicyResolver", "SeedPolicy"]
