"""
Action Decision Data Model
"""
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field, model_validator

from .base import CamelModel


class ActionType(str, Enum):
    """Actions a language model may choose for an instruction."""

    CLICK = "click"
    TYPE = "type"
    SELECT = "select"
    SCROLL = "scroll"
    WAIT = "wait"
    NAVIGATE = "navigate"
    FINISH = "finish"
    ABORT = "abort"

    @property
    def needs_target(self) -> bool:
        return self in TARGETED_ACTIONS

    @property
    def needs_value(self) -> bool:
        return self in VALUED_ACTIONS

    @property
    def is_control(self) -> bool:
        return self in (ActionType.FINISH, ActionType.ABORT)


TARGETED_ACTIONS = frozenset({ActionType.CLICK, ActionType.TYPE, ActionType.SELECT})
VALUED_ACTIONS = frozenset({ActionType.TYPE, ActionType.SELECT, ActionType.NAVIGATE})


class TargetElement(CamelModel):
    """Description used to resolve the live element an action applies to."""

    model_config = ConfigDict(frozen=True)

    tag: str
    id: Optional[str] = None
    text: Optional[str] = None
    classes: List[str] = Field(default_factory=list)


class ActionDecision(CamelModel):
    """One structured action chosen by the language model."""

    model_config = ConfigDict(frozen=True)

    action: ActionType
    confidence: int = Field(default=50, ge=0, le=100)
    value: Optional[str] = None
    target_element: Optional[TargetElement] = None
    reasoning: str = "No reasoning provided"
    explanation: Optional[str] = None
    step_complete: bool = True

    @model_validator(mode="after")
    def _check_shape(self) -> "ActionDecision":
        if self.action.needs_target and self.target_element is None:
            raise ValueError(f"targetElement is required for '{self.action.value}'")
        if not self.action.needs_target and self.target_element is not None:
            raise ValueError(f"targetElement must be absent for '{self.action.value}'")
        if self.action.needs_value and not self.value:
            raise ValueError(f"value is required for '{self.action.value}'")
        return self

    def summary(self) -> str:
        """One-line description for logs and prompt history."""
        text = self.action.value
        if self.target_element:
            text += f" on {self.target_element.tag}"
            if self.target_element.text:
                text += f' "{self.target_element.text}"'
        if self.value:
            text += f' with value "{self.value}"'
        return text
