"""
Report Data Model
"""
from typing import List, Optional

from pydantic import ConfigDict, Field

from .base import CamelModel
from ..utils.helpers import timestamp_now
from .execution_result import CustomStepResult, StandardStepResult, TestError


class RunOptions(CamelModel):
    """Per-run options accepted from the caller."""

    timeout: Optional[int] = Field(default=None, ge=5000, le=300000, description="Navigation timeout in ms")
    headless: Optional[bool] = None
    screenshot_capture: bool = True


class TestMetrics(CamelModel):
    """Pass/fail counts across all recorded steps."""

    __test__ = False

    total_tests: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    pass_rate: int = 0

    @classmethod
    def from_outcomes(cls, outcomes: List[bool]) -> "TestMetrics":
        total = len(outcomes)
        passed = sum(1 for ok in outcomes if ok)
        return cls(
            total_tests=total,
            passed_tests=passed,
            failed_tests=total - passed,
            pass_rate=round(passed / total * 100) if total else 0,
        )


class TestReport(CamelModel):
    """Complete, immutable result of one run."""

    __test__ = False

    model_config = ConfigDict(frozen=True)

    test_id: str
    url: str
    success: bool
    primary_cta_found: bool = Field(default=False, alias="primaryCTAFound")
    interaction_successful: bool = False
    steps: List[StandardStepResult] = Field(default_factory=list)
    custom_steps_results: List[CustomStepResult] = Field(default_factory=list)
    errors: List[TestError] = Field(default_factory=list)
    total_duration: int = 0  # ms
    test_metrics: TestMetrics = Field(default_factory=TestMetrics)

    @classmethod
    def failed(
        cls,
        test_id: str,
        url: str,
        message: str,
        step: str = "run",
        details: Optional[str] = None,
        total_duration: int = 0,
    ) -> "TestReport":
        """Report of a run that terminated before completing any step."""
        return cls(
            test_id=test_id,
            url=url,
            success=False,
            errors=[TestError(step=step, message=message, details=details)],
            total_duration=total_duration,
        )

    @property
    def attempted(self) -> int:
        return len(self.steps) + len(self.custom_steps_results)


class TestStatus(CamelModel):
    """Registry view of a running or finished test."""

    __test__ = False

    test_id: str
    status: str = "pending"  # pending, running, completed, failed
    progress: int = 0
    result: Optional[TestReport] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")


class TestHistoryItem(CamelModel):
    """Summary row kept for every finished test."""

    __test__ = False

    id: str
    url: str
    timestamp: str = Field(default_factory=timestamp_now)
    success: bool
    primary_cta_found: bool = Field(default=False, alias="primaryCTAFound")
    interaction_successful: bool = False
    error: Optional[str] = None
