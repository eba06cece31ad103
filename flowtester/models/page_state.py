"""
Page State Data Model
"""
from typing import List, Optional

from pydantic import ConfigDict, Field

from .base import CamelModel
from ..utils.helpers import timestamp_now


class ElementRect(CamelModel):
    """Bounding box of an element in viewport coordinates."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class PageElement(CamelModel):
    """Descriptor of one visible interactive element."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., description="Position in the live element query")
    tag: str
    id: Optional[str] = None
    text: Optional[str] = None
    classes: List[str] = Field(default_factory=list)
    type: Optional[str] = None
    name: Optional[str] = None
    placeholder: Optional[str] = None
    href: Optional[str] = None
    rect: ElementRect = Field(default_factory=ElementRect)

    def describe(self) -> str:
        """Short human-readable label used in logs and prompts."""
        label = self.tag
        if self.id:
            label += f"#{self.id}"
        if self.text:
            label += f' "{self.text[:40]}"'
        return label


class PageState(CamelModel):
    """Point-in-time snapshot of the active document."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    elements: List[PageElement] = Field(default_factory=list)
    timestamp: str = Field(default_factory=timestamp_now)
