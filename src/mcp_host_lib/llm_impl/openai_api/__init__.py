"""Expose the OpenAI chat completions integration."""

from .core import GenericOpenAI
from .adapter import OpenAIToolAdapter

__all__ = ["GenericOpenAI", "OpenAIToolAdapter"]
