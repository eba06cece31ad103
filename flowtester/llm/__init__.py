"""Model clients package"""
from .base import BaseLanguageModel, BaseVisionModel
from .clients import OllamaLanguageModel, OllamaVisionModel
from .parsing import extract_json, coerce_confidence, coerce_bool

__all__ = [
    "BaseLanguageModel",
    "BaseVisionModel",
    "OllamaLanguageModel",
    "OllamaVisionModel",
    "extract_json",
    "coerce_confidence",
    "coerce_bool",
]
