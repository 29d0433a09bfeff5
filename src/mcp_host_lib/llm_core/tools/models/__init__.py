"""Tool-related data models."""

from .models import ToolDescriptor
from .tool_call import ToolInvocation

__all__ = ["ToolDescriptor", "ToolInvocation"]
