"""
Action Decision Engine - Turns an instruction and page state into one action
"""
import asyncio
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from .base_agent import BaseAgent
from ..config import settings
from ..errors import DecisionError, DecisionParseError, DecisionTimeoutError
from ..llm.base import BaseLanguageModel
from ..llm.parsing import coerce_bool, coerce_confidence, extract_json
from ..models import ActionDecision, ActionType, PageElement, PageState, TargetElement
from ..utils.helpers import truncate_text
from ..utils.test_data import TestDataGenerator

# Spellings models commonly use for the supported actions
ACTION_ALIASES = {
    "fill": "type",
    "input": "type",
    "enter": "type",
    "submit": "click",
    "press": "click",
    "choose": "select",
    "goto": "navigate",
    "go_to": "navigate",
    "verify": "finish",
    "done": "finish",
    "complete": "finish",
    "stop": "abort",
    "fail": "abort",
}

DECISION_PROMPT = """Current test step to complete: "{instruction}"

{history}

Current page state:
Title: {title}
URL: {url}

Available elements ({element_count} total):
{elements}

Test data to use when a form asks for it:
{test_data}

Decide the single next action needed to complete the step.
Allowed actions:
- click: click an element (targetElementId required)
- type: type text into a field (targetElementId and value required)
- select: pick an option in a dropdown or picker (targetElementId and value required)
- scroll: scroll the page (value: up, down, top or bottom)
- wait: wait for the page (value: milliseconds)
- navigate: open a URL (value: the URL)
- finish: the step is already complete, nothing left to do
- abort: the step cannot be completed on this site and the test must stop

Respond with a JSON object:
{{
    "action": "click|type|select|scroll|wait|navigate|finish|abort",
    "targetElementId": element number from the list above,
    "value": "text, option, direction, milliseconds or URL",
    "confidence": number between 0 and 100,
    "reasoning": "why this action",
    "stepComplete": true if this action completes the step, false if more actions are needed
}}"""


class ActionDecisionEngine(BaseAgent):
    """
    Asks the language model for the next concrete UI action.

    The prompt is bounded: at most max_prompt_elements elements and the
    last max_history prior decisions are included. Model output is parsed
    and validated into an ActionDecision, or a named error is raised.
    """

    def __init__(
        self,
        llm: BaseLanguageModel,
        timeout: Optional[int] = None,
        max_prompt_elements: Optional[int] = None,
        max_history: Optional[int] = None,
        test_data: Optional[TestDataGenerator] = None
    ):
        super().__init__(
            name="ActionDecisionEngine",
            description="Chooses UI actions using a language model"
        )
        self.llm = llm
        self.timeout = timeout or settings.DECISION_TIMEOUT
        self.max_prompt_elements = max_prompt_elements or settings.MAX_PROMPT_ELEMENTS
        self.max_history = max_history or settings.MAX_PROMPT_HISTORY
        self.contact = (test_data or TestDataGenerator()).contact()

    async def decide(
        self,
        instruction: str,
        page_state: PageState,
        prior_decisions: Sequence[ActionDecision] = ()
    ) -> ActionDecision:
        """
        Decide the next action for an instruction.

        Args:
            instruction: Natural-language step
            page_state: Fresh snapshot of the page
            prior_decisions: Decisions already taken in this run, oldest first

        Returns:
            Validated action decision

        Raises:
            DecisionTimeoutError: The model call exceeded the timeout
            DecisionParseError: The response does not fit the decision schema
            DecisionError: The model call failed outright
        """
        prompt = self.build_prompt(instruction, page_state, prior_decisions)

        try:
            content = await asyncio.wait_for(self.llm.complete(prompt), timeout=self.timeout / 1000)
        except asyncio.TimeoutError:
            raise DecisionTimeoutError(
                f"Language model did not answer within {self.timeout}ms",
                details=instruction
            )
        except DecisionError:
            raise
        except Exception as e:
            raise DecisionError(f"Language model call failed: {e}", details=instruction)

        decision = self.parse_decision(content, page_state)
        self.log_info(
            f"Decision for '{truncate_text(instruction, 60)}': {decision.summary()} "
            f"(confidence {decision.confidence}%)"
        )
        return decision

    def build_prompt(
        self,
        instruction: str,
        page_state: PageState,
        prior_decisions: Sequence[ActionDecision] = ()
    ) -> str:
        """Render the bounded decision prompt."""
        return DECISION_PROMPT.format(
            instruction=instruction,
            history=self._format_history(prior_decisions),
            title=page_state.title or "N/A",
            url=page_state.url,
            element_count=len(page_state.elements),
            elements=self._format_elements(page_state.elements),
            test_data="\n".join(f"- {key}: {value}" for key, value in self.contact.items()),
        )

    def parse_decision(self, content: str, page_state: PageState) -> ActionDecision:
        """
        Coerce raw model output into an ActionDecision.

        Raises:
            DecisionParseError: If the output cannot be coerced
        """
        try:
            payload = extract_json(content)
        except ValueError as e:
            raise DecisionParseError(str(e), details=truncate_text(content, 500))

        raw_action = payload.get("action")
        if not isinstance(raw_action, str) or not raw_action.strip():
            raise DecisionParseError("Model response is missing 'action'", details=truncate_text(content, 500))

        name = raw_action.strip().lower()
        name = ACTION_ALIASES.get(name, name)
        try:
            action = ActionType(name)
        except ValueError:
            raise DecisionParseError(f"Invalid action '{raw_action}'", details=truncate_text(content, 500))

        target = None
        if action.needs_target:
            target = self._target_from_payload(payload, page_state.elements)
            if target is None:
                raise DecisionParseError(
                    f"Action '{action.value}' requires a target element",
                    details=truncate_text(content, 500)
                )

        value = payload.get("value")
        value = str(value).strip() if value is not None and str(value).strip() else None

        try:
            return ActionDecision(
                action=action,
                confidence=coerce_confidence(payload.get("confidence")),
                value=value,
                target_element=target,
                reasoning=str(payload.get("reasoning") or "No reasoning provided"),
                explanation=payload.get("explanation"),
                step_complete=self._step_complete(payload),
            )
        except PydanticValidationError as e:
            raise DecisionParseError("Model response violates the decision schema", details=str(e))

    def _target_from_payload(
        self,
        payload: Dict[str, Any],
        elements: List[PageElement]
    ) -> Optional[TargetElement]:
        """Resolve the model's element reference (list number or description)."""
        element_id = payload.get("targetElementId", payload.get("elementId"))
        if element_id is not None:
            try:
                position = int(str(element_id).strip().lstrip("#")) - 1
            except ValueError:
                position = -1
            if 0 <= position < len(elements):
                element = elements[position]
                return TargetElement(
                    tag=element.tag,
                    id=element.id,
                    text=element.text,
                    classes=list(element.classes),
                )

        described = payload.get("targetElement")
        if isinstance(described, dict) and described.get("tag"):
            try:
                return TargetElement.model_validate(described)
            except PydanticValidationError:
                return None
        return None

    @staticmethod
    def _step_complete(payload: Dict[str, Any]) -> bool:
        raw = payload.get("stepComplete", payload.get("isComplete"))
        if raw is None:
            return True
        try:
            return coerce_bool(raw)
        except ValueError:
            return True

    def _format_elements(self, elements: List[PageElement]) -> str:
        if not elements:
            return "(no interactive elements found)"

        lines = []
        for number, el in enumerate(elements[:self.max_prompt_elements], start=1):
            parts = [f"[{number}] <{el.tag}>"]
            if el.id:
                parts.append(f"id={el.id}")
            if el.type:
                parts.append(f"type={el.type}")
            if el.name:
                parts.append(f"name={el.name}")
            if el.placeholder:
                parts.append(f'placeholder="{truncate_text(el.placeholder, 40)}"')
            if el.classes:
                parts.append(f"classes={' '.join(el.classes[:4])}")
            if el.text:
                parts.append(f'text="{truncate_text(el.text, 60)}"')
            parts.append(f"at ({el.rect.x:.0f},{el.rect.y:.0f})")
            lines.append(" ".join(parts))

        omitted = len(elements) - self.max_prompt_elements
        if omitted > 0:
            lines.append(f"... {omitted} more elements omitted")
        return "\n".join(lines)

    def _format_history(self, prior_decisions: Sequence[ActionDecision]) -> str:
        if not prior_decisions:
            return "No previous actions taken yet."

        recent = list(prior_decisions)[-self.max_history:]
        lines = [f"Previous actions ({len(prior_decisions)} total, last {len(recent)} shown):"]
        for number, decision in enumerate(recent, start=1):
            lines.append(f"{number}. {decision.summary()} - {truncate_text(decision.reasoning, 80)}")
        return "\n".join(lines)
