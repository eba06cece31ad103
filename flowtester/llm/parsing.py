"""
Helpers for pulling JSON objects out of model responses
"""
import json
import math
import re
from typing import Any, Dict

CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
TRUTHY = frozenset({"true", "yes", "pass", "passed", "1"})
FALSY = frozenset({"false", "no", "fail", "failed", "0"})


def extract_json(content: str) -> Dict[str, Any]:
    """
    Extract a JSON object from a model response.

    Models often wrap JSON in markdown fences or surround it with prose.
    Tries, in order: the whole response, the first fenced code block, the
    outermost pair of braces.

    Args:
        content: Raw model output

    Returns:
        Parsed JSON object

    Raises:
        ValueError: If no JSON object can be extracted
    """
    if not content or not content.strip():
        raise ValueError("Empty model response")

    candidates = [content.strip()]

    match = CODE_BLOCK_RE.search(content)
    if match:
        candidates.append(match.group(1))

    start = content.find("{")
    end = content.rfind("}") + 1
    if start >= 0 and end > start:
        candidates.append(content[start:end])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise ValueError("Could not extract a JSON object from model response")


def coerce_confidence(value: Any, default: int = 50) -> int:
    """Coerce a model-supplied confidence into an int within [0, 100]."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip().rstrip("%"))
    except ValueError:
        return default
    if not math.isfinite(number):
        return default
    return max(0, min(100, int(round(number))))


def coerce_bool(value: Any) -> bool:
    """
    Interpret an explicit boolean spelling returned by a model.

    Raises:
        ValueError: For anything other than an explicit true/false spelling
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return value == 1
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUTHY:
            return True
        if text in FALSY:
            return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")
