import pytest

from conftest import ScriptedLanguageModel, demo_page
from flowtester.agents import ActionDecisionEngine
from flowtester.errors import DecisionError, DecisionParseError, DecisionTimeoutError
from flowtester.models import ActionDecision, ActionType, PageState, TargetElement
from flowtester.utils.test_data import TestDataGenerator


def make_engine(*responses, delay: float = 0.0, **kwargs) -> ActionDecisionEngine:
    llm = ScriptedLanguageModel(list(responses), delay=delay)
    return ActionDecisionEngine(llm, test_data=TestDataGenerator(seed=1), **kwargs)


@pytest.fixture
def page() -> PageState:
    return PageState(url="https://example.com", title="Example", elements=demo_page())


@pytest.mark.asyncio
async def test_resolves_numbered_target(page):
    engine = make_engine({"action": "click", "targetElementId": 2, "confidence": 92, "reasoning": "CTA"})

    decision = await engine.decide("Click Book a Demo", page)

    assert decision.action == ActionType.CLICK
    assert decision.confidence == 92
    assert decision.target_element == TargetElement(
        tag="a", id="cta", text="Book a Demo", classes=["btn", "btn-primary"]
    )
    assert decision.step_complete is True


@pytest.mark.asyncio
async def test_accepts_described_target_and_aliases(page):
    engine = make_engine(
        '```json\n{"action": "fill", "targetElement": {"tag": "input", "id": "email"}, '
        '"value": "a@b.com", "stepComplete": false}\n```'
    )

    decision = await engine.decide("Enter email", page)

    assert decision.action == ActionType.TYPE
    assert decision.target_element.id == "email"
    assert decision.value == "a@b.com"
    assert decision.step_complete is False
    assert decision.confidence == 50


@pytest.mark.asyncio
async def test_control_actions_drop_target(page):
    engine = make_engine({"action": "done", "targetElementId": 1, "confidence": 400})

    decision = await engine.decide("Verify the page loaded", page)

    assert decision.action == ActionType.FINISH
    assert decision.target_element is None
    assert decision.confidence == 100


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        "I would click the button",
        {"targetElementId": 2},
        {"action": "hover", "targetElementId": 2},
        {"action": "click"},
        {"action": "click", "targetElementId": 99},
        {"action": "type", "targetElementId": 3},
        {"action": "navigate"},
    ],
)
async def test_invalid_responses_raise_parse_error(page, response):
    engine = make_engine(response)

    with pytest.raises(DecisionParseError):
        await engine.decide("Do something", page)


@pytest.mark.asyncio
async def test_slow_model_raises_timeout(page):
    engine = make_engine({"action": "wait"}, delay=0.5, timeout=20)

    with pytest.raises(DecisionTimeoutError):
        await engine.decide("Wait for the page", page)


@pytest.mark.asyncio
async def test_client_failure_is_a_decision_error(page):
    engine = make_engine(ConnectionError("connection refused"))

    with pytest.raises(DecisionError) as exc_info:
        await engine.decide("Click anything", page)
    assert exc_info.value.phase == "deciding"


def test_prompt_is_bounded(page):
    engine = make_engine({"action": "wait"}, max_prompt_elements=2, max_history=2)
    history = [
        ActionDecision(action=ActionType.WAIT, reasoning=f"decision {n}") for n in range(5)
    ]

    prompt = engine.build_prompt("Fill the form", page, history)

    assert "[1] <a>" in prompt
    assert "[2] <a> id=cta" in prompt
    assert "[3]" not in prompt
    assert "4 more elements omitted" in prompt
    assert "decision 4" in prompt and "decision 3" in prompt
    assert "decision 2" not in prompt
    assert engine.contact["email"] in prompt


def test_prompt_without_history(page):
    engine = make_engine({"action": "wait"})

    prompt = engine.build_prompt("Click Book a Demo", page)

    assert "No previous actions taken yet." in prompt
    assert 'Current test step to complete: "Click Book a Demo"' in prompt
