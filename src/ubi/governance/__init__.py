"""Governance — controller authorization."""

from ubi.governance.gate import GovernanceGate

__all__ = ["GovernanceGate"]
