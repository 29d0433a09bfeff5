"""Collect concrete LLM provider implementations."""

from .gemini import GenericGemini
from .openai_api import GenericOpenAI
from .ollama import GenericOllama

__all__ = [
    "GenericGemini",
    "GenericOpenAI",
    "GenericOllama",
]
