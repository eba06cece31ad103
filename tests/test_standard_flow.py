import pytest

from conftest import FakeSession, FakeSessionProvider, element, page_without_cta
from flowtester.agents import STANDARD_STEPS, StandardFlowAgent, StepOrchestrator
from flowtester.agents.standard_flow_agent import classify_field, find_primary_cta, find_submit_control
from flowtester.models import RunOptions
from flowtester.utils.test_data import TestDataGenerator

URL = "https://example.com"


def make_orchestrator(session: FakeSession, **kwargs) -> StepOrchestrator:
    return StepOrchestrator(
        session_provider=FakeSessionProvider(session),
        standard_flow=StandardFlowAgent(test_data=TestDataGenerator(seed=3)),
        **kwargs,
    )


def test_cta_prefers_text_over_href():
    elements = [
        element(0, "a", "Pricing", href="/book-keeping"),
        element(1, "button", "Get a Demo"),
    ]
    assert find_primary_cta(elements).index == 1


def test_cta_falls_back_to_href():
    elements = [element(0, "a", "Talk to us", href="/schedule-call")]
    assert find_primary_cta(elements).index == 0


def test_no_cta():
    assert find_primary_cta(page_without_cta()) is None


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"type": "email"}, "email"),
        ({"type": "tel"}, "phone"),
        ({"name": "company_name"}, "company"),
        ({"placeholder": "Job title"}, "job_title"),
        ({"name": "first_name"}, "name"),
        ({"name": "message"}, None),
    ],
)
def test_classify_field(fields, expected):
    assert classify_field(element(0, "input", **fields)) == expected


def test_submit_control_by_text():
    elements = [element(0, "button", "Cancel"), element(1, "button", "Send request")]
    assert find_submit_control(elements).index == 1


@pytest.mark.asyncio
async def test_standard_flow_succeeds():
    session = FakeSession()

    report = await make_orchestrator(session).run_standard(URL)

    assert [step.name for step in report.steps] == STANDARD_STEPS
    assert all(step.success for step in report.steps)
    assert report.success is True
    assert report.primary_cta_found is True
    assert report.interaction_successful is True
    assert report.custom_steps_results == []
    assert report.steps[1].screenshot.startswith("data:image/jpeg;base64,")
    typed = {action[1] for action in session.actions if action[0] == "type"}
    assert typed == {2, 3, 4}
    assert session.actions[0] == ("navigate", URL)
    assert session.actions[-1] == ("click", 5)
    assert session.closed is True


@pytest.mark.asyncio
async def test_missing_cta_skips_later_steps(registry):
    session = FakeSession(elements=page_without_cta())

    report = await make_orchestrator(session, registry=registry).run_standard(URL, test_id="test-std")

    assert [step.name for step in report.steps] == ["page_navigation", "find_primary_cta"]
    assert report.steps[1].success is False
    assert report.success is False
    assert report.primary_cta_found is False
    assert report.interaction_successful is False
    assert report.errors[0].step == "find_primary_cta"
    assert registry.get_status("test-std").result is report


@pytest.mark.asyncio
async def test_form_without_fields_fails_fill_step():
    session = FakeSession(elements=[element(0, "a", "Book a Demo", href="/demo")])

    report = await make_orchestrator(session).run_standard(URL)

    assert [step.success for step in report.steps] == [True, True, False]
    assert report.primary_cta_found is True
    assert report.errors[0].step == "fill_form"


@pytest.mark.asyncio
async def test_screenshots_stripped_when_capture_disabled():
    session = FakeSession()

    report = await make_orchestrator(session).run_standard(URL, RunOptions(screenshot_capture=False))

    assert report.success is True
    assert all(step.screenshot is None for step in report.steps)


@pytest.mark.asyncio
async def test_invalid_url_is_rejected():
    session = FakeSession()

    report = await make_orchestrator(session).run_standard("example.com")

    assert report.steps == []
    assert report.errors[0].step == "validation"
