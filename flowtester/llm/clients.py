"""
Ollama-backed model clients
"""
import logging

import ollama
from langchain_core.prompts import ChatPromptTemplate
from langchain_ollama import ChatOllama

from ..config import settings
from ..utils.helpers import strip_data_url
from .base import BaseLanguageModel, BaseVisionModel

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert web testing assistant that precisely follows instructions \
to automate web interactions. Output ONLY a valid JSON object. No explanation text."""

VISION_PROMPT = """You are an expert web testing assistant. The first image is a screenshot of a \
web page taken BEFORE a user action, the second image was taken AFTER it.

The attempted action was:
"{instruction}"

Determine if the action was successfully completed based on visual evidence. Look for:
1. Element state changes (buttons, forms, etc.)
2. Page navigation or content changes
3. Error messages or confirmations
4. Progress indicators

Respond in JSON format:
{{
    "isPassed": true or false,
    "confidence": number between 0 and 100,
    "reasoning": "explanation based on visual evidence"
}}"""


class OllamaLanguageModel(BaseLanguageModel):
    """
    Text model reached through a LangChain chain.
    """

    def __init__(self, model: str = None, host: str = None, temperature: float = None):
        self.model_name = model or settings.OLLAMA_TEXT_MODEL
        self.llm = ChatOllama(
            model=self.model_name,
            base_url=host or settings.OLLAMA_HOST,
            temperature=settings.LLM_TEMPERATURE if temperature is None else temperature,
            format="json",
        )
        self.prompt_template = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_PROMPT),
            ("human", "{prompt}"),
        ])
        self.chain = self.prompt_template | self.llm

    async def complete(self, prompt: str) -> str:
        response = await self.chain.ainvoke({"prompt": prompt})
        content = response.content
        logger.debug(f"{self.model_name} returned {len(content)} chars")
        return content


class OllamaVisionModel(BaseVisionModel):
    """
    Multimodal model comparing before/after screenshots.
    """

    def __init__(self, model: str = None, host: str = None):
        self.model_name = model or settings.OLLAMA_MODEL
        self.client = ollama.AsyncClient(host=host or settings.OLLAMA_HOST)

    async def analyze(self, instruction: str, before_image: str, after_image: str) -> str:
        response = await self.client.chat(
            model=self.model_name,
            messages=[{
                "role": "user",
                "content": VISION_PROMPT.format(instruction=instruction),
                "images": [strip_data_url(before_image), strip_data_url(after_image)],
            }],
            format="json",
            options={"temperature": settings.LLM_TEMPERATURE},
        )
        return response["message"]["content"]
