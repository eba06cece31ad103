"""
Executor Agent - Performs one ActionDecision against the live page
"""
import asyncio
import time
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from .base_agent import BaseAgent
from .extractor_agent import PageStateExtractor
from ..browser.base import BaseBrowserSession
from ..config import settings
from ..errors import ElementNotFoundError, ExecutionError, ExecutionTimeoutError
from ..models import ActionDecision, ActionType, PageElement, TargetElement

DEFAULT_WAIT_MS = 2000
DEFAULT_SCROLL_PX = 600
LOOKUP_POLL_INTERVAL = 0.25  # seconds


def resolve_target(target: TargetElement, elements: List[PageElement]) -> Optional[PageElement]:
    """
    Find the live element a target description refers to.

    Resolution order: exact id, then case-insensitive text containment
    among elements with the same tag, then the first element sharing a
    class with the target.

    Args:
        target: Element description from a decision
        elements: Live interactive elements, in document order

    Returns:
        The matching element, or None
    """
    if target.id:
        for el in elements:
            if el.id == target.id:
                return el

    if target.text:
        needle = target.text.strip().lower()
        tag = target.tag.lower()
        for el in elements:
            if el.tag.lower() == tag and el.text and needle in el.text.lower():
                return el

    if target.classes:
        wanted = set(target.classes)
        for el in elements:
            if wanted.intersection(el.classes):
                return el

    return None


class ActionExecutor(BaseAgent):
    """
    Applies decisions to a browser session.

    Targeted actions poll the live element list until the target resolves
    or the lookup timeout passes. The whole action is bounded by the
    execution timeout.
    """

    def __init__(
        self,
        extractor: Optional[PageStateExtractor] = None,
        lookup_timeout: Optional[int] = None,
        execution_timeout: Optional[int] = None,
        max_elements: Optional[int] = None,
        poll_interval: float = LOOKUP_POLL_INTERVAL
    ):
        super().__init__(
            name="ActionExecutor",
            description="Executes UI actions via browser automation"
        )
        self.extractor = extractor or PageStateExtractor()
        self.lookup_timeout = lookup_timeout or settings.ELEMENT_LOOKUP_TIMEOUT
        self.execution_timeout = execution_timeout or settings.EXECUTION_TIMEOUT
        self.max_elements = max_elements or settings.MAX_PAGE_ELEMENTS
        self.poll_interval = poll_interval

    async def execute(
        self,
        session: BaseBrowserSession,
        decision: ActionDecision,
        elements: Optional[List[PageElement]] = None
    ):
        """
        Execute one decision.

        Args:
            session: Live browser session
            decision: Validated action decision
            elements: Fresh snapshot to resolve the target against before
                polling the live page

        Raises:
            ElementNotFoundError: Target did not resolve or went stale
            ExecutionTimeoutError: Action exceeded the execution timeout
            ExecutionError: Browser failed while performing the action
        """
        if decision.action.is_control:
            self.log_debug(f"Control action '{decision.action.value}' needs no execution")
            return

        self.log_info(f"Executing {decision.summary()}")
        try:
            await asyncio.wait_for(
                self._perform(session, decision, elements),
                timeout=self.execution_timeout / 1000
            )
        except asyncio.TimeoutError:
            raise ExecutionTimeoutError(
                f"Action '{decision.action.value}' did not complete within {self.execution_timeout}ms"
            )
        except ExecutionError:
            raise
        except PlaywrightTimeoutError as e:
            raise ExecutionTimeoutError(f"Browser timed out during '{decision.action.value}'", str(e))
        except PlaywrightError as e:
            raise ExecutionError(f"Browser error during '{decision.action.value}': {e}")

    async def execute_with_retry(self, session: BaseBrowserSession, decision: ActionDecision) -> int:
        """
        Execute a decision, retrying once with a fresh page state if the
        target element was not found.

        Returns:
            Number of attempts made (1 or 2)
        """
        try:
            await self.execute(session, decision)
            return 1
        except ElementNotFoundError as e:
            self.log_warning(f"{e.message}; re-capturing page state and retrying once")

        page_state = await self.extractor.capture(session)
        self.log_debug(f"Retrying against {len(page_state.elements)} elements on {page_state.url}")
        await self.execute(session, decision, page_state.elements)
        return 2

    async def _perform(
        self,
        session: BaseBrowserSession,
        decision: ActionDecision,
        elements: Optional[List[PageElement]] = None
    ):
        action = decision.action

        if action == ActionType.CLICK:
            element = await self._find_element(session, decision.target_element, elements)
            await session.click(element)
        elif action == ActionType.TYPE:
            element = await self._find_element(session, decision.target_element, elements)
            await session.type(element, decision.value)
        elif action == ActionType.SELECT:
            element = await self._find_element(session, decision.target_element, elements)
            await session.select(element, decision.value)
        elif action == ActionType.SCROLL:
            direction, amount = self._scroll_args(decision.value)
            await session.scroll(direction, amount)
        elif action == ActionType.WAIT:
            await session.wait(self._wait_ms(decision.value))
        elif action == ActionType.NAVIGATE:
            await session.navigate(decision.value)

    async def _find_element(
        self,
        session: BaseBrowserSession,
        target: TargetElement,
        snapshot: Optional[List[PageElement]] = None
    ) -> PageElement:
        """Try the given snapshot, then poll the live element list until the target resolves."""
        if snapshot is not None:
            element = resolve_target(target, snapshot)
            if element is not None:
                return element

        deadline = time.monotonic() + self.lookup_timeout / 1000
        while True:
            elements = await session.query_interactive_elements(self.max_elements)
            element = resolve_target(target, elements)
            if element is not None:
                return element
            if time.monotonic() >= deadline:
                break
            await asyncio.sleep(self.poll_interval)

        description = target.tag
        if target.id:
            description += f"#{target.id}"
        if target.text:
            description += f' "{target.text}"'
        raise ElementNotFoundError(
            f"Element not found: {description}",
            details=f"No live element matched within {self.lookup_timeout}ms"
        )

    @staticmethod
    def _scroll_args(value: Optional[str]):
        if not value:
            return "down", DEFAULT_SCROLL_PX
        value = value.strip().lower()
        if value in ("up", "down", "top", "bottom"):
            return value, DEFAULT_SCROLL_PX
        try:
            delta = int(float(value))
        except ValueError:
            return "down", DEFAULT_SCROLL_PX
        return ("up" if delta < 0 else "down"), abs(delta)

    @staticmethod
    def _wait_ms(value: Optional[str]) -> int:
        if not value:
            return DEFAULT_WAIT_MS
        try:
            ms = int(float(value))
        except ValueError:
            return DEFAULT_WAIT_MS
        return ms if ms > 0 else DEFAULT_WAIT_MS
