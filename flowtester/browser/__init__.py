"""Browser package"""
from .base import BaseBrowserSession, BaseBrowserSessionProvider
from .controller import BrowserController, PlaywrightSessionProvider

__all__ = [
    "BaseBrowserSession",
    "BaseBrowserSessionProvider",
    "BrowserController",
    "PlaywrightSessionProvider",
]
