"""
Browser Controller - Playwright-based browser automation
"""
import logging
from typing import List, Optional

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
)

from ..config import settings
from ..errors import ElementNotFoundError, SessionError
from ..models import PageElement, RunOptions
from .base import BaseBrowserSession, BaseBrowserSessionProvider

logger = logging.getLogger(__name__)

INDEX_ATTRIBUTE = "data-flowtester-index"

INTERACTIVE_ELEMENTS_JS = """
    ([attr, limit]) => {
        document.querySelectorAll(`[${attr}]`).forEach(el => el.removeAttribute(attr));
        const elements = [];
        const candidates = document.querySelectorAll(
            'a, button, input, select, textarea, [role="button"], [onclick], [contenteditable="true"]'
        );
        for (const el of candidates) {
            if (elements.length >= limit) break;
            const rect = el.getBoundingClientRect();
            const style = window.getComputedStyle(el);
            if (rect.width <= 0 || rect.height <= 0) continue;
            if (style.display === 'none' || style.visibility === 'hidden') continue;
            if (el.hidden || (el.type && el.type === 'hidden')) continue;
            const index = elements.length;
            el.setAttribute(attr, String(index));
            const text = (el.innerText || el.value || el.getAttribute('aria-label') || '').trim();
            elements.push({
                index: index,
                tag: el.tagName.toLowerCase(),
                id: el.id || null,
                text: text ? text.slice(0, 100) : null,
                classes: Array.from(el.classList),
                type: el.getAttribute('type'),
                name: el.getAttribute('name'),
                placeholder: el.getAttribute('placeholder'),
                href: el.getAttribute('href'),
                rect: {x: rect.x, y: rect.y, width: rect.width, height: rect.height}
            });
        }
        return elements;
    }
"""

FILLABLE_TAGS = ("input", "textarea", "select")


class BrowserController(BaseBrowserSession):
    """
    Playwright-based browser session for flow testing.
    Handles navigation, element interactions, and state capture.
    New tabs opened by the page become the active page automatically.
    """

    def __init__(self):
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.pages: List[Page] = []
        self.timeout: int = settings.BROWSER_TIMEOUT

    async def start(self, headless: bool = None, timeout: int = None):
        """
        Start the browser.

        Args:
            headless: Run in headless mode. Defaults to settings.BROWSER_HEADLESS
            timeout: Default Playwright timeout in ms. Defaults to settings.BROWSER_TIMEOUT
        """
        if headless is None:
            headless = settings.BROWSER_HEADLESS
        if timeout:
            self.timeout = timeout

        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(headless=headless)
        self.context = await self.browser.new_context(
            viewport={"width": settings.VIEWPORT_WIDTH, "height": settings.VIEWPORT_HEIGHT},
            user_agent=settings.USER_AGENT,
        )
        self.page = await self.context.new_page()
        self.page.set_default_timeout(self.timeout)
        self.pages.append(self.page)
        self.page.on("close", self._handle_page_close)
        self.context.on("page", self._handle_new_page)

    async def close(self):
        """Stop the browser and clean up resources."""
        try:
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
            if self.playwright:
                await self.playwright.stop()
        except PlaywrightError as e:
            logger.warning(f"Error while closing browser: {e}")
        finally:
            self.playwright = None
            self.browser = None
            self.context = None
            self.page = None
            self.pages = []

    async def navigate(self, url: str, timeout: Optional[int] = None, wait_until: str = "networkidle"):
        """
        Navigate to a URL.

        Args:
            url: The URL to navigate to
            timeout: Navigation timeout in ms
            wait_until: When to consider navigation succeeded
        """
        await self.page.goto(url, wait_until=wait_until, timeout=timeout or self.timeout)

    async def click(self, element: PageElement):
        locator = await self._locate(element)
        try:
            await locator.click(timeout=settings.ELEMENT_LOOKUP_TIMEOUT)
        except PlaywrightTimeoutError as e:
            raise ElementNotFoundError(f"Element {element.describe()} is not clickable", str(e))
        await self._settle()

    async def type(self, element: PageElement, text: str):
        locator = await self._locate(element)
        if element.tag not in FILLABLE_TAGS:
            # Wrapper elements: fill the first editable descendant
            inner = locator.locator("input, textarea, [contenteditable]")
            if await inner.count() == 0:
                raise ElementNotFoundError(f"Element {element.describe()} is not fillable")
            locator = inner.first
        try:
            await locator.fill(text, timeout=settings.ELEMENT_LOOKUP_TIMEOUT)
        except PlaywrightTimeoutError as e:
            raise ElementNotFoundError(f"Element {element.describe()} is not editable", str(e))

    async def select(self, element: PageElement, value: str):
        locator = await self._locate(element)
        try:
            if element.tag == "select":
                try:
                    await locator.select_option(value, timeout=settings.ELEMENT_LOOKUP_TIMEOUT)
                except PlaywrightError:
                    await locator.select_option(label=value, timeout=settings.ELEMENT_LOOKUP_TIMEOUT)
            else:
                # Custom dropdowns and date pickers: open, then click the option text
                await locator.click(timeout=settings.ELEMENT_LOOKUP_TIMEOUT)
                option = self.page.get_by_text(value, exact=False).first
                await option.click(timeout=settings.ELEMENT_LOOKUP_TIMEOUT)
        except PlaywrightTimeoutError as e:
            raise ElementNotFoundError(f"Option '{value}' not found for {element.describe()}", str(e))
        await self._settle()

    async def scroll(self, direction: str = "down", amount: int = 600):
        if direction == "top":
            await self.page.evaluate("() => window.scrollTo(0, 0)")
        elif direction == "bottom":
            await self.page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
        else:
            delta = -amount if direction == "up" else amount
            await self.page.mouse.wheel(0, delta)
        await self.page.wait_for_timeout(300)

    async def wait(self, ms: int):
        await self.page.wait_for_timeout(ms)

    async def screenshot(self) -> bytes:
        return await self.page.screenshot(type="jpeg", quality=settings.SCREENSHOT_QUALITY)

    async def current_url(self) -> str:
        return self.page.url

    async def title(self) -> str:
        return await self.page.title()

    async def query_interactive_elements(self, limit: int = 100) -> List[PageElement]:
        """
        Find visible interactive elements and stamp them for later lookup.

        Args:
            limit: Maximum number of elements returned

        Returns:
            Element descriptors in document order
        """
        raw = await self.page.evaluate(INTERACTIVE_ELEMENTS_JS, [INDEX_ATTRIBUTE, limit])
        return [PageElement.model_validate(item) for item in raw]

    async def wait_for_ready_state(self, timeout: Optional[int] = None) -> bool:
        try:
            await self.page.wait_for_load_state("load", timeout=timeout or self.timeout)
            return True
        except PlaywrightTimeoutError:
            return False

    async def _locate(self, element: PageElement):
        locator = self.page.locator(f'[{INDEX_ATTRIBUTE}="{element.index}"]')
        if await locator.count() == 0:
            raise ElementNotFoundError(f"Element {element.describe()} is no longer attached to the page")
        return locator.first

    async def _settle(self):
        """Give navigations and DOM updates triggered by an action time to finish."""
        try:
            await self.page.wait_for_load_state("networkidle", timeout=3000)
        except PlaywrightTimeoutError:
            logger.debug("Network idle wait timed out, continuing")

    def _handle_new_page(self, page: Page):
        """Switch to tabs opened by the page under test."""
        logger.info(f"New page detected: {page.url}")
        self.pages.append(page)
        page.set_default_timeout(self.timeout)
        page.on("close", self._handle_page_close)
        self.page = page

    def _handle_page_close(self, page: Page):
        if page in self.pages:
            self.pages.remove(page)
        if self.page is page and self.pages:
            self.page = self.pages[-1]
            logger.info(f"Switched to remaining page: {self.page.url}")


class PlaywrightSessionProvider(BaseBrowserSessionProvider):
    """Launches one Chromium instance per run."""

    async def open(self, options: RunOptions) -> BrowserController:
        controller = BrowserController()
        try:
            await controller.start(headless=options.headless, timeout=options.timeout)
        except PlaywrightError as e:
            await controller.close()
            raise SessionError("Failed to launch browser", str(e))
        return controller
