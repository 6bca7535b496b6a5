"""Governance gate — restricts governor entry points to one controller.

The controller address is fixed when the gate is built. Reassignment is
handled outside the core, if it is supported at all.
"""

from __future__ import annotations

from ubi.errors import Unauthorized
from ubi.models.address import normalize_address


class GovernanceGate:
    """Authorization guard for policy and configuration mutations."""

    def __init__(self, controller: str) -> None:
        self._controller = normalize_address(controller)

    @property
    def controller(self) -> str:
        return self._controller

    def is_controller(self, caller: str) -> bool:
        try:
            return normalize_address(caller) == self._controller
        except ValueError:
            return False

    def require(self, caller: str) -> None:
        """Raise Unauthorized unless caller is the controller."""
        if not self.is_controller(caller):
            raise Unauthorized(f"Caller {caller!r} is not the governance controller")
