"""Utilities package"""
from .helpers import (
    new_test_id,
    format_duration,
    truncate_text,
    timestamp_now,
    encode_screenshot,
    screenshots_identical,
)
from .test_data import TestDataGenerator

__all__ = [
    "new_test_id",
    "format_duration",
    "truncate_text",
    "timestamp_now",
    "encode_screenshot",
    "screenshots_identical",
    "TestDataGenerator",
]
