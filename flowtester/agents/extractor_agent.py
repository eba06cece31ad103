"""
Page State Extractor - Snapshots the current page for decision making
"""
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError

from .base_agent import BaseAgent
from ..browser.base import BaseBrowserSession
from ..config import settings
from ..errors import FlowTesterError
from ..models import PageElement, PageState


class PageStateExtractor(BaseAgent):
    """
    Captures a read-only PageState: URL, title and a bounded list of
    visible interactive elements.

    Never raises for a loaded page. A page still navigating is waited on
    (bounded by the session timeout) and whatever can be read afterwards
    is returned.
    """

    def __init__(self, max_elements: Optional[int] = None, ready_timeout: Optional[int] = None):
        super().__init__(
            name="PageStateExtractor",
            description="Captures page snapshots for the decision engine"
        )
        self.max_elements = max_elements or settings.MAX_PAGE_ELEMENTS
        self.ready_timeout = ready_timeout

    async def capture(self, session: BaseBrowserSession) -> PageState:
        """
        Capture the current page state.

        Args:
            session: Live browser session

        Returns:
            Immutable page snapshot
        """
        if not await self._wait_until_ready(session):
            self.log_warning("Page did not reach a ready state in time, capturing best-effort snapshot")

        url = await self._read_url(session)
        title = await self._read_title(session)
        elements = await self._read_elements(session)

        self.log_debug(f"Captured {len(elements)} elements from {url}")
        return PageState(url=url, title=title, elements=elements)

    async def _wait_until_ready(self, session: BaseBrowserSession) -> bool:
        try:
            return await session.wait_for_ready_state(self.ready_timeout)
        except (PlaywrightError, FlowTesterError) as e:
            self.log_warning(f"Ready state wait failed: {e}")
            return False

    async def _read_url(self, session: BaseBrowserSession) -> str:
        try:
            return await session.current_url()
        except (PlaywrightError, FlowTesterError) as e:
            self.log_warning(f"Could not read page URL: {e}")
            return ""

    async def _read_title(self, session: BaseBrowserSession) -> str:
        try:
            return await session.title()
        except (PlaywrightError, FlowTesterError) as e:
            # Title reads fail while a navigation swaps the execution context
            self.log_warning(f"Could not read page title: {e}")
            return ""

    async def _read_elements(self, session: BaseBrowserSession) -> List[PageElement]:
        try:
            elements = await session.query_interactive_elements(self.max_elements)
        except (PlaywrightError, FlowTesterError) as e:
            self.log_warning(f"Interactive element query failed: {e}")
            return []
        return list(elements[:self.max_elements])
