"""
Standard Flow Agent - Fixed demo-booking steps that need no language model
"""
import time
from typing import Dict, List, Optional

from playwright.async_api import Error as PlaywrightError

from .base_agent import BaseAgent
from ..browser.base import BaseBrowserSession
from ..config import settings
from ..errors import ElementNotFoundError, FlowTesterError, SessionError
from ..models import PageElement, StandardStepResult
from ..utils.helpers import encode_screenshot
from ..utils.test_data import TestDataGenerator

PAGE_NAVIGATION = "page_navigation"
FIND_PRIMARY_CTA = "find_primary_cta"
FILL_FORM = "fill_form"
SUBMIT_FORM = "submit_form"

STANDARD_STEPS = [PAGE_NAVIGATION, FIND_PRIMARY_CTA, FILL_FORM, SUBMIT_FORM]

CTA_PHRASES = ["book a demo", "get a demo", "request demo", "request a demo", "schedule demo", "schedule a demo"]
CTA_HREF_KEYWORDS = ["demo", "book", "schedule"]
SUBMIT_PHRASES = ["submit", "send", "request", "book", "schedule"]
FIELD_TAGS = ("input", "textarea")
CLICKABLE_TAGS = ("a", "button", "input")
NON_TEXT_INPUT_TYPES = ("submit", "button", "hidden", "checkbox", "radio", "image", "reset")

# Checked in order; a field is filled by the first rule it matches
FIELD_RULES = [
    ("email", ("email",), ("email",)),
    ("phone", ("tel",), ("phone", "tel", "mobile")),
    ("company", (), ("company", "organization", "organisation")),
    ("job_title", (), ("title", "position", "role")),
    ("name", (), ("name",)),
]


class StandardFlowAgent(BaseAgent):
    """
    Runs the standard booking flow: open the page, click the primary
    "book a demo" call to action, fill the form with generated contact
    data and submit it.

    Each step returns a StandardStepResult; failures are reported in the
    result, never raised.
    """

    def __init__(
        self,
        test_data: Optional[TestDataGenerator] = None,
        max_elements: Optional[int] = None
    ):
        super().__init__(
            name="StandardFlowAgent",
            description="Runs the fixed demo-booking flow"
        )
        self.test_data = test_data or TestDataGenerator()
        self.max_elements = max_elements or settings.MAX_PAGE_ELEMENTS

    async def run_step(
        self,
        name: str,
        session: BaseBrowserSession,
        url: Optional[str] = None,
        timeout: Optional[int] = None
    ) -> StandardStepResult:
        """
        Run one named standard step.

        Args:
            name: One of STANDARD_STEPS
            session: Live browser session
            url: Target URL (page_navigation only)
            timeout: Navigation timeout in ms (page_navigation only)

        Returns:
            Step result with duration, screenshot and error message
        """
        started = time.monotonic()
        self.log_info(f"Running standard step '{name}'")

        try:
            if name == PAGE_NAVIGATION:
                await self.navigate(session, url, timeout)
            elif name == FIND_PRIMARY_CTA:
                await self.click_primary_cta(session)
            elif name == FILL_FORM:
                await self.fill_form(session)
            elif name == SUBMIT_FORM:
                await self.submit_form(session)
            else:
                raise ValueError(f"Unknown standard step '{name}'")
        except (FlowTesterError, PlaywrightError) as e:
            message = e.message if isinstance(e, FlowTesterError) else str(e)
            self.log_warning(f"Standard step '{name}' failed: {message}")
            return StandardStepResult(
                name=name,
                status="failure",
                success=False,
                duration=int((time.monotonic() - started) * 1000),
                error=message,
            )

        screenshot = await self._capture(session)
        return StandardStepResult(
            name=name,
            status="success",
            success=True,
            duration=int((time.monotonic() - started) * 1000),
            screenshot=screenshot,
        )

    async def navigate(self, session: BaseBrowserSession, url: str, timeout: Optional[int] = None):
        try:
            await session.navigate(url, timeout)
        except PlaywrightError as e:
            raise SessionError(f"Failed to navigate to {url}", str(e))

    async def click_primary_cta(self, session: BaseBrowserSession) -> PageElement:
        """Click the first demo/booking call to action on the page."""
        elements = await session.query_interactive_elements(self.max_elements)
        cta = find_primary_cta(elements)
        if cta is None:
            raise ElementNotFoundError(
                "Could not find a demo button or link",
                details="None of the common demo call-to-action patterns matched elements on the page."
            )
        self.log_info(f"Primary CTA found: {cta.describe()}")
        await session.click(cta)
        return cta

    async def fill_form(self, session: BaseBrowserSession) -> Dict[str, str]:
        """
        Fill recognizable contact fields with generated data.

        Returns:
            Mapping of contact field to the value typed
        """
        elements = await session.query_interactive_elements(self.max_elements)
        fields = [
            el for el in elements
            if el.tag in FIELD_TAGS and (el.type or "text").lower() not in NON_TEXT_INPUT_TYPES
        ]
        if not fields:
            raise ElementNotFoundError("Could not find a form", details="No input fields were detected on the page.")

        contact = self.test_data.contact()
        filled: Dict[str, str] = {}
        for el in fields:
            key = classify_field(el)
            if key is None or key in filled:
                continue
            await session.type(el, contact[key])
            filled[key] = contact[key]

        if not filled:
            raise ElementNotFoundError(
                "No recognizable contact fields in the form",
                details=f"{len(fields)} input fields inspected"
            )
        self.log_info(f"Filled form fields: {', '.join(filled)}")
        return filled

    async def submit_form(self, session: BaseBrowserSession) -> PageElement:
        """Click the form's submit control."""
        elements = await session.query_interactive_elements(self.max_elements)
        control = find_submit_control(elements)
        if control is None:
            raise ElementNotFoundError("Could not find a submit button")
        await session.click(control)
        return control

    async def _capture(self, session: BaseBrowserSession) -> Optional[str]:
        try:
            return encode_screenshot(await session.screenshot())
        except (PlaywrightError, FlowTesterError) as e:
            # Screenshots are non-critical
            self.log_warning(f"Screenshot capture failed: {e}")
            return None


def find_primary_cta(elements: List[PageElement]) -> Optional[PageElement]:
    """First element whose text names a demo CTA, else the first demo-ish link."""
    for phrase in CTA_PHRASES:
        for el in elements:
            if el.tag in CLICKABLE_TAGS and el.text and phrase in el.text.lower():
                return el

    for keyword in CTA_HREF_KEYWORDS:
        for el in elements:
            if el.href and keyword in el.href.lower():
                return el
    return None


def classify_field(element: PageElement) -> Optional[str]:
    """Map an input element to the contact field it expects, if any."""
    input_type = (element.type or "").lower()
    haystack = " ".join(
        part for part in (element.name, element.placeholder, element.id, element.text) if part
    ).lower()

    for key, types, keywords in FIELD_RULES:
        if input_type in types or any(word in haystack for word in keywords):
            return key
    return None


def find_submit_control(elements: List[PageElement]) -> Optional[PageElement]:
    for el in elements:
        if el.tag in ("button", "input") and (el.type or "").lower() == "submit":
            return el

    for el in elements:
        if el.tag == "button" and el.text and any(word in el.text.lower() for word in SUBMIT_PHRASES):
            return el
    return None
