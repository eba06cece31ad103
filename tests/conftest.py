"""Shared fakes for flowtester tests."""
import asyncio
import json
from typing import Any, Callable, List, Optional

import pytest

from flowtester.agents import (
    ActionDecisionEngine,
    ActionExecutor,
    PageStateExtractor,
    StepOrchestrator,
    VisionVerifier,
)
from flowtester.browser.base import BaseBrowserSession, BaseBrowserSessionProvider
from flowtester.errors import ElementNotFoundError
from flowtester.llm.base import BaseLanguageModel, BaseVisionModel
from flowtester.models import PageElement, RunOptions
from flowtester.services import TestResultRegistry
from flowtester.utils.test_data import TestDataGenerator


def element(index: int, tag: str, text: Optional[str] = None, **fields) -> PageElement:
    return PageElement(index=index, tag=tag, text=text, **fields)


def demo_page() -> List[PageElement]:
    """Landing page with a demo CTA and a contact form."""
    return [
        element(0, "a", "Home", href="/"),
        element(1, "a", "Book a Demo", id="cta", href="/demo", classes=["btn", "btn-primary"]),
        element(2, "input", id="name", type="text", name="full_name", placeholder="Your name"),
        element(3, "input", id="email", type="email", name="email", placeholder="Work email"),
        element(4, "input", id="company", type="text", name="company", placeholder="Company"),
        element(5, "button", "Submit", type="submit"),
    ]


def page_without_cta() -> List[PageElement]:
    return [el for el in demo_page() if el.id != "cta"]


class FakeSession(BaseBrowserSession):
    """In-memory browser session that records every action."""

    def __init__(
        self,
        elements: Optional[List[PageElement]] = None,
        stale_clicks: int = 0,
        static_screenshots: bool = False,
        navigate_error: Optional[Exception] = None,
        url: str = "about:blank",
        title: str = "Demo Site"
    ):
        self.elements = list(elements if elements is not None else demo_page())
        self.stale_clicks = stale_clicks
        self.static_screenshots = static_screenshots
        self.navigate_error = navigate_error
        self.url = url
        self.page_title = title
        self.actions: List[tuple] = []
        self.lookups = 0
        self.shots = 0
        self.closed = False

    async def close(self):
        self.closed = True

    async def navigate(self, url: str, timeout: Optional[int] = None):
        if self.navigate_error is not None:
            raise self.navigate_error
        self.actions.append(("navigate", url))
        self.url = url

    async def click(self, element: PageElement):
        if self.stale_clicks > 0:
            self.stale_clicks -= 1
            raise ElementNotFoundError(f"Element {element.describe()} is no longer attached to the page")
        self.actions.append(("click", element.index))

    async def type(self, element: PageElement, text: str):
        self.actions.append(("type", element.index, text))

    async def select(self, element: PageElement, value: str):
        self.actions.append(("select", element.index, value))

    async def scroll(self, direction: str = "down", amount: int = 600):
        self.actions.append(("scroll", direction, amount))

    async def wait(self, ms: int):
        self.actions.append(("wait", ms))

    async def screenshot(self) -> bytes:
        self.shots += 1
        if self.static_screenshots:
            return b"\xff\xd8static"
        return b"\xff\xd8shot-%d" % self.shots

    async def current_url(self) -> str:
        return self.url

    async def title(self) -> str:
        return self.page_title

    async def query_interactive_elements(self, limit: int = 100) -> List[PageElement]:
        self.lookups += 1
        return self.elements[:limit]

    async def wait_for_ready_state(self, timeout: Optional[int] = None) -> bool:
        return True


class FakeSessionProvider(BaseBrowserSessionProvider):

    def __init__(self, session: Optional[FakeSession] = None, error: Optional[Exception] = None):
        self.session = session or FakeSession()
        self.error = error
        self.opened: List[RunOptions] = []

    async def open(self, options: RunOptions) -> FakeSession:
        self.opened.append(options)
        if self.error is not None:
            raise self.error
        return self.session


def _as_text(response: Any) -> str:
    return json.dumps(response) if isinstance(response, dict) else response


class ScriptedLanguageModel(BaseLanguageModel):
    """Returns canned responses in order; the last one repeats."""

    def __init__(self, responses: List[Any], delay: float = 0.0, slow_calls: Optional[int] = None):
        self.responses = list(responses)
        self.delay = delay
        self.slow_calls = slow_calls  # None delays every call
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay and (self.slow_calls is None or len(self.prompts) <= self.slow_calls):
            await asyncio.sleep(self.delay)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return _as_text(response)


PASSED = {"isPassed": True, "confidence": 90, "reasoning": "The page changed as expected"}


class ScriptedVisionModel(BaseVisionModel):

    def __init__(self, responses: Optional[List[Any]] = None, delay: float = 0.0):
        self.responses = list(responses or [PASSED])
        self.delay = delay
        self.calls: List[tuple] = []

    async def analyze(self, instruction: str, before_image: str, after_image: str) -> str:
        self.calls.append((instruction, before_image, after_image))
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return _as_text(response)


def click(number: int, **extra) -> dict:
    return {"action": "click", "targetElementId": number, "confidence": 90, "reasoning": "Matches", **extra}


def type_into(number: int, value: str, **extra) -> dict:
    return {"action": "type", "targetElementId": number, "value": value, "confidence": 85,
            "reasoning": "Form field", **extra}


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def registry() -> TestResultRegistry:
    return TestResultRegistry()


@pytest.fixture
def build_orchestrator() -> Callable[..., StepOrchestrator]:
    """Factory wiring an orchestrator to fakes with short timeouts."""

    def build(
        session: FakeSession,
        decisions: Optional[List[Any]] = None,
        vision: Optional[ScriptedVisionModel] = None,
        registry: Optional[TestResultRegistry] = None,
        provider: Optional[FakeSessionProvider] = None,
        vision_timeout: int = 1000,
        max_actions_per_step: int = 3,
        decision_timeout: int = 1000,
        slow_decisions: int = 0,
        decision_delay: float = 0.5
    ) -> StepOrchestrator:
        extractor = PageStateExtractor()
        engine = None
        if decisions is not None:
            engine = ActionDecisionEngine(
                ScriptedLanguageModel(decisions, delay=decision_delay, slow_calls=slow_decisions),
                timeout=decision_timeout,
                test_data=TestDataGenerator(seed=7),
            )
        return StepOrchestrator(
            session_provider=provider or FakeSessionProvider(session),
            registry=registry,
            extractor=extractor,
            decision_engine=engine,
            executor=ActionExecutor(
                extractor=extractor, lookup_timeout=20, execution_timeout=1000, poll_interval=0.005
            ),
            verifier=VisionVerifier(vision, timeout=vision_timeout) if vision else None,
            max_actions_per_step=max_actions_per_step,
        )

    return build
