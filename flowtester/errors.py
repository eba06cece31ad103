"""
Error taxonomy for flow test runs.

Every error carries the phase it belongs to so the orchestrator can record
it as a TestError without inspecting the exception type twice.
"""
from typing import Optional


class FlowTesterError(Exception):
    """Base class for all flow tester errors."""

    phase = "run"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(FlowTesterError):
    """Malformed URL or instruction list, rejected before a run starts."""

    phase = "validation"


class SessionError(FlowTesterError):
    """Browser failed to launch or to load the target page."""

    phase = "session"


class DecisionError(FlowTesterError):
    phase = "deciding"


class DecisionParseError(DecisionError):
    """Model response could not be coerced into an ActionDecision."""


class DecisionTimeoutError(DecisionError):
    """Language model call exceeded the decision timeout."""


class ExecutionError(FlowTesterError):
    phase = "executing"


class ElementNotFoundError(ExecutionError):
    """No live element matched the decision's target element."""


class ExecutionTimeoutError(ExecutionError):
    """Action did not complete within the execution timeout."""


class VisionError(FlowTesterError):
    phase = "verifying"


class VisionParseError(VisionError):
    """Vision model response could not be coerced into a VisionAnalysisResult."""


class VisionTimeoutError(VisionError):
    """Vision model call exceeded the vision timeout."""
