"""Engine — the eligibility state machine."""

from ubi.engine.controller import EligibilityController

__all__ = ["EligibilityController"]
