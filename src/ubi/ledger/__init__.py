"""Ledger collaborators — Protocols and in-memory implementations."""

from ubi.ledger.interfaces import EligibilityRegistry, FungibleLedger
from ubi.ledger.memory import InMemoryLedger, StaticEligibilityRegistry

__all__ = [
    "EligibilityRegistry",
    "FungibleLedger",
    "InMemoryLedger",
    "StaticEligibilityRegistry",
]
