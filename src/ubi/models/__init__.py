"""Data models for the accrual core."""

from ubi.models.accrual import (
    AccrualCursor,
    AccrualQuote,
    AccrualState,
    MintRecord,
    ParticipantEligibility,
    RatePolicy,
)
from ubi.models.address import normalize_address

__all__ = [
    "AccrualCursor",
    "AccrualQuote",
    "AccrualState",
    "MintRecord",
    "ParticipantEligibility",
    "RatePolicy",
    "normalize_address",
]
