"""
Utility helper functions
"""
import base64
import uuid
from datetime import datetime
from typing import Optional


def new_test_id() -> str:
    """
    Generate an opaque, unique test identifier.

    Returns:
        Identifier of the form ``test-<10 hex chars>``
    """
    return f"test-{uuid.uuid4().hex[:10]}"


def format_duration(ms: int) -> str:
    """
    Format duration in milliseconds to human-readable string.

    Args:
        ms: Duration in milliseconds

    Returns:
        Formatted duration string
    """
    if ms < 1000:
        return f"{ms}ms"
    elif ms < 60000:
        return f"{ms / 1000:.1f}s"
    else:
        minutes = ms // 60000
        seconds = (ms % 60000) / 1000
        return f"{minutes}m {seconds:.0f}s"


def truncate_text(text: Optional[str], max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add when truncated

    Returns:
        Truncated text
    """
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def timestamp_now() -> str:
    """Get current timestamp as ISO format string."""
    return datetime.now().isoformat()


def encode_screenshot(image: Optional[bytes], mime: str = "image/jpeg") -> Optional[str]:
    """Encode raw screenshot bytes as a data URL."""
    if not image:
        return None
    return f"data:{mime};base64,{base64.b64encode(image).decode()}"


def strip_data_url(data: str) -> str:
    """Return the base64 payload of a data URL (or the input unchanged)."""
    if data.startswith("data:") and "," in data:
        return data.split(",", 1)[1]
    return data


def screenshots_identical(before: Optional[bytes], after: Optional[bytes]) -> bool:
    """
    Byte-exact comparison of two screenshots.

    Re-encoded but visually identical captures compare as different.
    """
    if before is None or after is None:
        return False
    return before == after
