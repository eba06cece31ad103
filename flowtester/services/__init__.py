"""Services package"""
from .registry import TestResultRegistry

__all__ = ["TestResultRegistry"]
