"""
Browser session contracts used by the agents
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import PageElement, RunOptions


class BaseBrowserSession(ABC):
    """
    One live browser page owned by a single run.

    Element-level primitives take a PageElement returned by the most recent
    query_interactive_elements() call and raise ElementNotFoundError when
    the element is gone from the live document.
    """

    @abstractmethod
    async def close(self):
        pass

    @abstractmethod
    async def navigate(self, url: str, timeout: Optional[int] = None):
        pass

    @abstractmethod
    async def click(self, element: PageElement):
        pass

    @abstractmethod
    async def type(self, element: PageElement, text: str):
        pass

    @abstractmethod
    async def select(self, element: PageElement, value: str):
        pass

    @abstractmethod
    async def scroll(self, direction: str = "down", amount: int = 600):
        pass

    @abstractmethod
    async def wait(self, ms: int):
        pass

    @abstractmethod
    async def screenshot(self) -> bytes:
        pass

    @abstractmethod
    async def current_url(self) -> str:
        pass

    @abstractmethod
    async def title(self) -> str:
        pass

    @abstractmethod
    async def query_interactive_elements(self, limit: int = 100) -> List[PageElement]:
        pass

    @abstractmethod
    async def wait_for_ready_state(self, timeout: Optional[int] = None) -> bool:
        """Block until the document is loaded; False if the wait timed out."""
        pass


class BaseBrowserSessionProvider(ABC):
    """Opens a fresh, isolated browser session per run."""

    @abstractmethod
    async def open(self, options: RunOptions) -> BaseBrowserSession:
        pass
