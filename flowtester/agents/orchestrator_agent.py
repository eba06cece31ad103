"""
Orchestrator Agent - Drives a run instruction by instruction
"""
import time
from typing import Callable, List, Optional, Sequence
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError

from .base_agent import BaseAgent
from .executor_agent import ActionExecutor
from .extractor_agent import PageStateExtractor
from .planner_agent import ActionDecisionEngine
from .standard_flow_agent import FIND_PRIMARY_CTA, STANDARD_STEPS, SUBMIT_FORM, StandardFlowAgent
from .verifier_agent import VisionVerifier
from ..browser.base import BaseBrowserSession, BaseBrowserSessionProvider
from ..config import settings
from ..errors import FlowTesterError, SessionError, ValidationError, VisionError
from ..llm.base import BaseLanguageModel, BaseVisionModel
from ..models import (
    ActionDecision,
    ActionType,
    CustomStepResult,
    RunOptions,
    StepOutcome,
    TestMetrics,
    TestReport,
    TestSession,
    VisionAnalysisResult,
)
from ..services.registry import TestResultRegistry
from ..utils.helpers import encode_screenshot, format_duration, new_test_id, truncate_text


class StepOrchestrator(BaseAgent):
    """
    Runs a list of natural-language instructions against one website.

    Per instruction: capture page state, decide, execute, verify. An abort
    decision halts the run; every other failure is recorded and the run
    moves on to the next instruction. Only input validation, browser
    session failures and unexpected exceptions are fatal to the run.
    """

    def __init__(
        self,
        session_provider: BaseBrowserSessionProvider,
        language_model: Optional[BaseLanguageModel] = None,
        vision_model: Optional[BaseVisionModel] = None,
        registry: Optional[TestResultRegistry] = None,
        id_factory: Callable[[], str] = new_test_id,
        extractor: Optional[PageStateExtractor] = None,
        decision_engine: Optional[ActionDecisionEngine] = None,
        executor: Optional[ActionExecutor] = None,
        verifier: Optional[VisionVerifier] = None,
        standard_flow: Optional[StandardFlowAgent] = None,
        max_actions_per_step: Optional[int] = None
    ):
        super().__init__(
            name="Orchestrator",
            description="Coordinates flow test runs"
        )
        self.session_provider = session_provider
        self.registry = registry
        self.id_factory = id_factory
        self.extractor = extractor or PageStateExtractor()
        self.decision_engine = decision_engine
        if self.decision_engine is None and language_model is not None:
            self.decision_engine = ActionDecisionEngine(language_model)
        self.executor = executor or ActionExecutor(extractor=self.extractor)
        self.verifier = verifier
        if self.verifier is None and vision_model is not None:
            self.verifier = VisionVerifier(vision_model)
        self.standard_flow = standard_flow or StandardFlowAgent()
        self.max_actions_per_step = max_actions_per_step or settings.MAX_ACTIONS_PER_STEP

    async def run(
        self,
        url: str,
        instructions: Sequence[str],
        options: Optional[RunOptions] = None,
        test_id: Optional[str] = None
    ) -> TestReport:
        """
        Run natural-language instructions against a website.

        Never raises: fatal problems produce a zero-step failure report.

        Args:
            url: Absolute http(s) URL of the page under test
            instructions: Ordered natural-language steps
            options: Per-run options
            test_id: Identifier to report under; generated when omitted

        Returns:
            The final report
        """
        ctx = TestSession(
            test_id=test_id or self.id_factory(),
            url=url,
            instructions=list(instructions or []),
            options=options or RunOptions(),
        )
        self._start(ctx)

        try:
            validate_url(url)
            validate_instructions(ctx.instructions)
            if self.decision_engine is None:
                raise ValidationError("No language model configured for custom steps")

            ctx.session = await self._open_session(ctx)
            ctx.status = "running"

            total = len(ctx.instructions)
            for number, instruction in enumerate(ctx.instructions, start=1):
                self.log_info(f"[{ctx.test_id}] Step {number}/{total}: {truncate_text(instruction, 80)}")
                result = await self._run_instruction(ctx, instruction)
                ctx.custom_results.append(result)
                self._progress(ctx, number, total)

                if result.outcome.halts_run:
                    ctx.halted = True
                    self.log_warning(f"[{ctx.test_id}] Run aborted at step {number}/{total}")
                    break

            report = self._build_custom_report(ctx)
        except FlowTesterError as e:
            return await self._fatal(ctx, e.message, e.phase, e.details)
        except Exception as e:
            self.logger.exception(f"[{ctx.test_id}] Unexpected error during run")
            return await self._fatal(ctx, f"Unexpected error: {e}", "run")
        finally:
            await self._close(ctx)

        return self._finish(ctx, report)

    async def run_standard(
        self,
        url: str,
        options: Optional[RunOptions] = None,
        test_id: Optional[str] = None
    ) -> TestReport:
        """
        Run the standard booking flow (no language or vision model).

        Args:
            url: Absolute http(s) URL of the page under test
            options: Per-run options
            test_id: Identifier to report under; generated when omitted

        Returns:
            The final report
        """
        ctx = TestSession(
            test_id=test_id or self.id_factory(),
            url=url,
            instructions=list(STANDARD_STEPS),
            options=options or RunOptions(),
        )
        self._start(ctx)

        try:
            validate_url(url)
            try:
                ctx.session = await self.session_provider.open(ctx.options)
            except PlaywrightError as e:
                raise SessionError("Failed to launch browser", str(e))
            ctx.status = "running"

            total = len(STANDARD_STEPS)
            for number, name in enumerate(STANDARD_STEPS, start=1):
                result = await self.standard_flow.run_step(
                    name, ctx.session, url=url, timeout=ctx.options.timeout
                )
                ctx.standard_steps.append(result)
                self._progress(ctx, number, total)

                if not result.success:
                    ctx.add_error(name, result.error or f"Step '{name}' failed")
                    self.log_warning(f"[{ctx.test_id}] Standard step '{name}' failed, skipping remaining steps")
                    break

            report = self._build_standard_report(ctx)
        except FlowTesterError as e:
            return await self._fatal(ctx, e.message, e.phase, e.details)
        except Exception as e:
            self.logger.exception(f"[{ctx.test_id}] Unexpected error during standard flow")
            return await self._fatal(ctx, f"Unexpected error: {e}", "run")
        finally:
            await self._close(ctx)

        return self._finish(ctx, report)

    async def _run_instruction(self, ctx: TestSession, instruction: str) -> CustomStepResult:
        """
        Run one instruction through extract, decide, execute and verify.

        Args:
            ctx: Run context
            instruction: Natural-language step

        Returns:
            Step result tagged SUCCESS, FAILURE or ABORTED
        """
        started = time.monotonic()
        session = ctx.session
        decisions: List[ActionDecision] = []
        executed = False

        before = await self._screenshot(session)

        try:
            completed = False
            for _ in range(self.max_actions_per_step):
                page_state = await self.extractor.capture(session)
                decision = await self.decision_engine.decide(instruction, page_state, ctx.decisions)
                decisions.append(decision)
                ctx.decisions.append(decision)

                if decision.action == ActionType.ABORT:
                    message = f"Step aborted: {decision.reasoning}"
                    ctx.add_error("deciding", message, instruction)
                    return self._step_result(
                        ctx, instruction, decisions, started, StepOutcome.ABORTED, error=message
                    )
                if decision.action == ActionType.FINISH:
                    completed = True
                    break

                await self.executor.execute_with_retry(session, decision)
                executed = True
                if decision.step_complete:
                    completed = True
                    break

            if not completed:
                message = f"Step not completed within {self.max_actions_per_step} actions"
                ctx.add_error("executing", message, instruction)
                return self._step_result(
                    ctx, instruction, decisions, started, StepOutcome.FAILURE, error=message
                )
        except (FlowTesterError, PlaywrightError) as e:
            phase = e.phase if isinstance(e, FlowTesterError) else "executing"
            message = e.message if isinstance(e, FlowTesterError) else str(e)
            self.log_warning(f"[{ctx.test_id}] {phase} failed: {message}")
            ctx.add_error(phase, message, instruction)
            return self._step_result(
                ctx, instruction, decisions, started, StepOutcome.FAILURE,
                error=message, screenshot=await self._screenshot(session)
            )

        after = await self._screenshot(session)
        vision = None
        if executed and self.verifier is not None and before and after:
            try:
                vision = await self.verifier.verify(instruction, before, after)
            except VisionError as e:
                self.log_warning(f"[{ctx.test_id}] Vision verification unavailable: {e.message}")
                ctx.add_error("verifying", e.message, instruction)

        if vision is not None and not vision.is_passed:
            message = f"Vision verification failed: {vision.reasoning}"
            ctx.add_error("verifying", message, instruction)
            return self._step_result(
                ctx, instruction, decisions, started, StepOutcome.FAILURE,
                error=message, screenshot=after, vision=vision
            )

        return self._step_result(
            ctx, instruction, decisions, started, StepOutcome.SUCCESS, screenshot=after, vision=vision
        )

    def _step_result(
        self,
        ctx: TestSession,
        instruction: str,
        decisions: List[ActionDecision],
        started: float,
        outcome: StepOutcome,
        error: Optional[str] = None,
        screenshot: Optional[bytes] = None,
        vision: Optional[VisionAnalysisResult] = None
    ) -> CustomStepResult:
        success = outcome == StepOutcome.SUCCESS
        capture = ctx.options.screenshot_capture
        if vision is not None and not capture:
            vision = vision.model_copy(update={"before_screenshot": None, "after_screenshot": None})

        return CustomStepResult(
            instruction=instruction,
            status="success" if success else "failure",
            success=success,
            outcome=outcome,
            llm_decision=decisions[-1] if decisions else None,
            decisions=decisions,
            vision_analysis=vision,
            screenshot=encode_screenshot(screenshot) if capture else None,
            error=error,
            duration=int((time.monotonic() - started) * 1000),
        )

    def _build_custom_report(self, ctx: TestSession) -> TestReport:
        results = ctx.custom_results
        outcomes = [r.success for r in results]
        return TestReport(
            test_id=ctx.test_id,
            url=ctx.url,
            success=bool(results) and all(outcomes),
            primary_cta_found=bool(results) and results[0].success,
            interaction_successful=bool(results) and results[-1].success and not ctx.halted,
            custom_steps_results=results,
            errors=ctx.errors,
            total_duration=ctx.elapsed_ms(),
            test_metrics=TestMetrics.from_outcomes(outcomes),
        )

    def _build_standard_report(self, ctx: TestSession) -> TestReport:
        steps = ctx.standard_steps
        if not ctx.options.screenshot_capture:
            steps = [step.model_copy(update={"screenshot": None}) for step in steps]
        succeeded = {step.name for step in steps if step.success}
        outcomes = [step.success for step in steps]
        return TestReport(
            test_id=ctx.test_id,
            url=ctx.url,
            success=bool(steps) and all(outcomes),
            primary_cta_found=FIND_PRIMARY_CTA in succeeded,
            interaction_successful=SUBMIT_FORM in succeeded,
            steps=steps,
            errors=ctx.errors,
            total_duration=ctx.elapsed_ms(),
            test_metrics=TestMetrics.from_outcomes(outcomes),
        )

    async def _open_session(self, ctx: TestSession) -> BaseBrowserSession:
        """Open a browser session and load the page under test."""
        try:
            session = await self.session_provider.open(ctx.options)
        except PlaywrightError as e:
            raise SessionError("Failed to launch browser", str(e))
        ctx.session = session

        try:
            await session.navigate(ctx.url, ctx.options.timeout)
        except PlaywrightError as e:
            raise SessionError(f"Failed to load {ctx.url}", str(e))
        self.log_info(f"[{ctx.test_id}] Loaded {ctx.url}")
        return session

    async def _screenshot(self, session: BaseBrowserSession) -> Optional[bytes]:
        try:
            return await session.screenshot()
        except (PlaywrightError, FlowTesterError) as e:
            self.log_warning(f"Screenshot capture failed: {e}")
            return None

    def _start(self, ctx: TestSession):
        self.log_info(f"[{ctx.test_id}] Starting test of {ctx.url}")
        if self.registry is None:
            return
        if self.registry.get_status(ctx.test_id) is None:
            self.registry.begin(ctx.test_id, ctx.url)
        self.registry.mark_running(ctx.test_id)

    def _progress(self, ctx: TestSession, completed: int, total: int):
        if self.registry is not None:
            self.registry.record_progress(ctx.test_id, completed, total)

    def _finish(self, ctx: TestSession, report: TestReport) -> TestReport:
        ctx.status = "succeeded" if report.success else "failed"
        self.log_info(
            f"[{ctx.test_id}] Finished: success={report.success}, "
            f"{report.test_metrics.passed_tests}/{report.test_metrics.total_tests} steps passed "
            f"in {format_duration(report.total_duration)}"
        )
        if self.registry is not None:
            self.registry.complete(ctx.test_id, report)
        return report

    async def _fatal(
        self,
        ctx: TestSession,
        message: str,
        step: str,
        details: Optional[str] = None
    ) -> TestReport:
        ctx.status = "failed"
        self.log_error(f"[{ctx.test_id}] Fatal {step} error: {message}")
        if self.registry is not None:
            return self.registry.fail(
                ctx.test_id, message, step=step, details=details, total_duration=ctx.elapsed_ms()
            )
        return TestReport.failed(
            ctx.test_id, ctx.url, message, step=step, details=details, total_duration=ctx.elapsed_ms()
        )

    async def _close(self, ctx: TestSession):
        if ctx.session is None:
            return
        try:
            await ctx.session.close()
        except Exception as e:
            self.log_error(f"[{ctx.test_id}] Error closing browser session: {e}")
        finally:
            ctx.session = None


def validate_url(url: str):
    """
    Reject anything but an absolute http(s) URL.

    Raises:
        ValidationError: If the URL is malformed
    """
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("URL is required")
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Invalid URL: {url}", details="Only absolute http(s) URLs are supported")


def validate_instructions(instructions: Sequence[str]):
    """
    Require a non-empty list of non-blank instructions.

    Raises:
        ValidationError: If the list is empty or holds a blank entry
    """
    if not instructions:
        raise ValidationError("At least one instruction is required")
    for number, instruction in enumerate(instructions, start=1):
        if not isinstance(instruction, str) or not instruction.strip():
            raise ValidationError(f"Instruction {number} is empty")
