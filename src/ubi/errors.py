"""Typed failures raised by the accrual core.

Every error aborts the entry point that raised it with no state change.
The core never recovers locally; the caller decides whether to retry.
A zero-valued accrual is a successful result, never an error.
"""

from __future__ import annotations


class AccrualError(Exception):
    """Base class for all accrual-core failures."""

    code = "accrual_error"


class Unauthorized(AccrualError):
    """Caller is not allowed to invoke this entry point."""

    code = "unauthorized"


class PolicyAlreadyExists(AccrualError):
    code = "policy_already_exists"


class InvalidWindow(AccrualError):
    """Policy window is empty, inverted or negative."""

    code = "invalid_window"


class InvalidRate(AccrualError):
    """Policy rate is zero or outside the unsigned 256-bit range."""

    code = "invalid_rate"


class UnknownPolicy(AccrualError):
    code = "unknown_policy"


class AlreadyExpired(AccrualError):
    """Policy window has already closed (naturally or by finalization)."""

    code = "already_expired"


class NotEligible(AccrualError):
    """Participant fails the external eligibility check."""

    code = "not_eligible"


class AlreadyAccruing(AccrualError):
    code = "already_accruing"


class NotAccruing(AccrualError):
    code = "not_accruing"


class StillEligible(AccrualError):
    """Removal was reported for a participant who is still eligible."""

    code = "still_eligible"


class ArithmeticOverflow(AccrualError):
    """A checked computation left the unsigned 256-bit range."""

    code = "arithmetic_overflow"
