import pytest

from flowtester.llm.parsing import coerce_bool, coerce_confidence, extract_json


def test_extract_json_plain_object():
    assert extract_json('{"action": "click"}') == {"action": "click"}


def test_extract_json_from_fenced_block():
    content = 'Here you go:\n```json\n{"action": "wait", "value": "500"}\n```\nGood luck'
    assert extract_json(content) == {"action": "wait", "value": "500"}


def test_extract_json_from_surrounding_prose():
    content = 'I think the answer is {"isPassed": false, "confidence": 40} based on the images.'
    assert extract_json(content) == {"isPassed": False, "confidence": 40}


@pytest.mark.parametrize("content", ["", "   ", "no json here", "[1, 2, 3]", "{broken"])
def test_extract_json_rejects_unusable_content(content):
    with pytest.raises(ValueError):
        extract_json(content)


@pytest.mark.parametrize(
    "value, expected",
    [(None, 50), (75, 75), ("80", 80), ("65%", 65), (150, 100), (-3, 0), (42.6, 43), ("high", 50), (True, 50),
     (float("nan"), 50), (float("inf"), 50), (float("-inf"), 50), ("NaN", 50), ("1e999", 50)],
)
def test_coerce_confidence(value, expected):
    assert coerce_confidence(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), (False, False), ("true", True), ("Passed", True), ("no", False), (1, True), (0, False),
     (" FAILED ", False), ("pass", True), ("0", False)],
)
def test_coerce_bool(value, expected):
    assert coerce_bool(value) is expected


@pytest.mark.parametrize("value", [{"value": True}, "unclear", "unknown", "n/a", "", 2, 0.5, None])
def test_coerce_bool_rejects_ambiguous_values(value):
    with pytest.raises(ValueError):
        coerce_bool(value)


def test_non_finite_confidence_from_json_falls_back():
    payload = extract_json('{"confidence": NaN, "other": Infinity}')
    assert coerce_confidence(payload["confidence"]) == 50
    assert coerce_confidence(payload["other"], default=10) == 10
