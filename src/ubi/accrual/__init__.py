"""Accrual subsystem — policy registry, window tracker, calculator."""

from ubi.accrual.calculator import AccrualCalculator
from ubi.accrual.registry import PolicyRegistry
from ubi.accrual.tracker import AccrualWindowTracker

__all__ = [
    "AccrualCalculator",
    "AccrualWindowTracker",
    "PolicyRegistry",
]
