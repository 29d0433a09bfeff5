"""Gemini LLM implementation."""

from .core import GenericGemini

__all__ = ["GenericGemini"]
