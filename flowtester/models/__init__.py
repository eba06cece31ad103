"""Models package"""
from .page_state import ElementRect, PageElement, PageState
from .decision import ActionType, TargetElement, ActionDecision
from .execution_result import (
    StepOutcome,
    VisionAnalysisResult,
    CustomStepResult,
    StandardStepResult,
    TestError,
)
from .report import RunOptions, TestMetrics, TestReport, TestStatus, TestHistoryItem
from .session import TestSession

__all__ = [
    "ElementRect",
    "PageElement",
    "PageState",
    "ActionType",
    "TargetElement",
    "ActionDecision",
    "StepOutcome",
    "VisionAnalysisResult",
    "CustomStepResult",
    "StandardStepResult",
    "TestError",
    "RunOptions",
    "TestMetrics",
    "TestReport",
    "TestStatus",
    "TestHistoryItem",
    "TestSession",
]
