"""Re-export the base class shared by all language model adapters."""

from .base import GenericLLM

__all__ = ["GenericLLM"]
