"""Ollama LLM implementation."""

from .core import GenericOllama, OllamaRequestError

__all__ = ["GenericOllama", "OllamaRequestError"]
