"""
Model client contracts

Both clients return raw text; turning that text into typed results is the
job of the agents that call them.
"""
from abc import ABC, abstractmethod


class BaseLanguageModel(ABC):
    """Text completion model used to decide actions."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        pass


class BaseVisionModel(ABC):
    """Image-understanding model used to verify outcomes."""

    @abstractmethod
    async def analyze(self, instruction: str, before_image: str, after_image: str) -> str:
        """
        Compare two screenshots for the given instruction.

        Args:
            instruction: Natural-language step that was executed
            before_image: Base64 screenshot taken before the step
            after_image: Base64 screenshot taken after the step
        """
        pass
