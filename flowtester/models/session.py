"""
Test Session - mutable context of one run
"""
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .decision import ActionDecision
from .execution_result import CustomStepResult, StandardStepResult, TestError
from .report import RunOptions


@dataclass
class TestSession:
    """
    Everything a single run accumulates while it executes.

    Owned by the orchestrator for the run's lifetime; the browser session
    is closed when the run terminates.
    """

    __test__ = False

    test_id: str
    url: str
    instructions: List[str] = field(default_factory=list)
    options: RunOptions = field(default_factory=RunOptions)
    session: Optional[Any] = None
    status: str = "pending"  # pending, running, succeeded, failed
    custom_results: List[CustomStepResult] = field(default_factory=list)
    standard_steps: List[StandardStepResult] = field(default_factory=list)
    errors: List[TestError] = field(default_factory=list)
    decisions: List[ActionDecision] = field(default_factory=list)
    halted: bool = False
    started_at: float = field(default_factory=time.monotonic)

    def add_error(self, step: str, message: str, details: Optional[str] = None):
        self.errors.append(TestError(step=step, message=message, details=details))

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)
