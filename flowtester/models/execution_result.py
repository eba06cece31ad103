"""
Execution Result Data Model
"""
from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import CamelModel
from .decision import ActionDecision


class StepOutcome(str, Enum):
    """Terminal tag of one instruction; drives the continue/halt decision."""

    SUCCESS = "success"
    FAILURE = "failure"
    ABORTED = "aborted"

    @property
    def halts_run(self) -> bool:
        return self is StepOutcome.ABORTED


class VisionAnalysisResult(CamelModel):
    """Vision model verdict on a before/after screenshot pair."""

    is_passed: bool
    confidence: int = Field(default=50, ge=0, le=100)
    reasoning: str = "No reasoning provided"
    before_screenshot: Optional[str] = None
    after_screenshot: Optional[str] = None
    screenshots_identical: bool = False


class CustomStepResult(CamelModel):
    """Result of one natural-language instruction."""

    instruction: str
    status: str = "failure"  # success, failure
    success: bool = False
    outcome: StepOutcome = StepOutcome.FAILURE
    llm_decision: Optional[ActionDecision] = None
    decisions: List[ActionDecision] = Field(default_factory=list)
    vision_analysis: Optional[VisionAnalysisResult] = None
    screenshot: Optional[str] = None
    error: Optional[str] = None
    duration: int = 0  # ms


class StandardStepResult(CamelModel):
    """Result of one fixed step of the standard flow."""

    name: str
    status: str = "running"  # running, success, failure
    success: bool = False
    duration: int = 0  # ms
    screenshot: Optional[str] = None
    error: Optional[str] = None


class TestError(CamelModel):
    """One recorded error; a run accumulates these, never overwrites."""

    __test__ = False

    step: str
    message: str
    details: Optional[str] = None
