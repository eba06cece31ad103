"""
Vision Verifier - Judges a step from before/after screenshots
"""
import asyncio
from typing import Optional

from .base_agent import BaseAgent
from ..config import settings
from ..errors import VisionError, VisionParseError, VisionTimeoutError
from ..llm.base import BaseVisionModel
from ..llm.parsing import coerce_bool, coerce_confidence, extract_json
from ..models import VisionAnalysisResult
from ..utils.helpers import encode_screenshot, screenshots_identical, truncate_text

IDENTICAL_NOTE = (
    "\n\nNote: the two screenshots are byte-for-byte identical, "
    "so nothing visible changed on the page."
)


class VisionVerifier(BaseAgent):
    """
    Asks a vision model whether an instruction visibly took effect.
    """

    def __init__(self, vision_model: BaseVisionModel, timeout: Optional[int] = None):
        super().__init__(
            name="VisionVerifier",
            description="Verifies step outcomes from screenshots"
        )
        self.vision_model = vision_model
        self.timeout = timeout or settings.VISION_TIMEOUT

    async def verify(self, instruction: str, before: bytes, after: bytes) -> VisionAnalysisResult:
        """
        Compare screenshots taken around a step.

        Args:
            instruction: Instruction the step executed
            before: JPEG captured before execution
            after: JPEG captured after execution

        Returns:
            Verdict with both screenshots attached

        Raises:
            VisionTimeoutError: The model call exceeded the timeout
            VisionParseError: The response has no usable verdict
            VisionError: The model call failed outright
        """
        identical = screenshots_identical(before, after)
        before_url = encode_screenshot(before)
        after_url = encode_screenshot(after)
        if before_url is None or after_url is None:
            raise VisionError("Screenshots are required for vision verification", details=instruction)

        prompt_instruction = instruction + IDENTICAL_NOTE if identical else instruction

        try:
            content = await asyncio.wait_for(
                self.vision_model.analyze(prompt_instruction, before_url, after_url),
                timeout=self.timeout / 1000
            )
        except asyncio.TimeoutError:
            raise VisionTimeoutError(
                f"Vision model did not answer within {self.timeout}ms",
                details=instruction
            )
        except VisionError:
            raise
        except Exception as e:
            raise VisionError(f"Vision model call failed: {e}", details=instruction)

        try:
            payload = extract_json(content)
        except ValueError as e:
            raise VisionParseError(str(e), details=truncate_text(content, 500))

        if "isPassed" not in payload:
            raise VisionParseError("Vision response is missing 'isPassed'", details=truncate_text(content, 500))
        try:
            is_passed = coerce_bool(payload["isPassed"])
        except ValueError:
            raise VisionParseError(
                f"Invalid 'isPassed' value: {payload['isPassed']!r}",
                details=truncate_text(content, 500)
            )

        result = VisionAnalysisResult(
            is_passed=is_passed,
            confidence=coerce_confidence(payload.get("confidence")),
            reasoning=str(payload.get("reasoning") or "No reasoning provided"),
            before_screenshot=before_url,
            after_screenshot=after_url,
            screenshots_identical=identical,
        )
        self.log_info(
            f"Vision verdict for '{truncate_text(instruction, 60)}': "
            f"{'passed' if result.is_passed else 'failed'} ({result.confidence}%)"
        )
        return result
