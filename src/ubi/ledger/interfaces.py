"""Collaborator contracts — the eligibility registry and the balance ledger.

The accrual core never owns balances or decides who is human. It talks to
both through these Protocols, so swapping the backing registry or ledger
requires no change to the controller.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class EligibilityRegistry(Protocol):
    """External human-uniqueness / liveness registry."""

    def is_eligible(self, address: str) -> bool:
        """Whether address is currently a registered, live participant."""
        ...


@runtime_checkable
class FungibleLedger(Protocol):
    """External fungible balance ledger with a snapshot facility.

    The core only calls credit() and take_snapshot(). The remaining
    methods belong to the same ledger and are listed so implementations
    are checked against the full surface.
    """

    def credit(self, address: str, amount: int) -> None:
        """Mint amount into address's balance."""
        ...

    def burn(self, address: str, amount: int) -> None:
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        ...

    def balance_of(self, address: str) -> int:
        ...

    def take_snapshot(self) -> int:
        """Record current balances and return the new snapshot id."""
        ...
