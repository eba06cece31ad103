import pytest
from pydantic import ValidationError

from flowtester.models import ActionDecision, ActionType, TargetElement, TestMetrics, TestReport


@pytest.mark.parametrize(
    "fields",
    [
        {"action": ActionType.CLICK},
        {"action": ActionType.TYPE, "target_element": TargetElement(tag="input")},
        {"action": ActionType.WAIT, "target_element": TargetElement(tag="a")},
        {"action": ActionType.NAVIGATE},
        {"action": ActionType.CLICK, "target_element": TargetElement(tag="a"), "confidence": 101},
    ],
)
def test_decision_invariants(fields):
    with pytest.raises(ValidationError):
        ActionDecision(**fields)


def test_decision_serializes_camel_case():
    decision = ActionDecision(
        action=ActionType.TYPE,
        target_element=TargetElement(tag="input", id="email"),
        value="jane@example.com",
        step_complete=False,
    )

    data = decision.model_dump(mode="json", by_alias=True)

    assert data["action"] == "type"
    assert data["targetElement"]["id"] == "email"
    assert data["stepComplete"] is False
    assert decision.summary() == 'type on input with value "jane@example.com"'


def test_metrics_from_outcomes():
    metrics = TestMetrics.from_outcomes([True, False, True])

    assert (metrics.total_tests, metrics.passed_tests, metrics.failed_tests) == (3, 2, 1)
    assert metrics.pass_rate == 67
    assert TestMetrics.from_outcomes([]).pass_rate == 0


def test_failed_report_shape():
    report = TestReport.failed("test-1", "https://example.com", "boom", step="session")

    data = report.model_dump(mode="json", by_alias=True)

    assert data["primaryCTAFound"] is False
    assert data["errors"] == [{"step": "session", "message": "boom", "details": None}]
    assert report.attempted == 0
    with pytest.raises(ValidationError):
        report.success = True
