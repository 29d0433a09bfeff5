"""Protocol for the language-model side of the orchestration loop."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol, Sequence, runtime_checkable

from ..messages import Message
from ..tools import ToolDescriptor


class ToolCallingStyle(str, Enum):
    """How a model learns about tools.

    ``PROMPT`` models receive the tool list and the directive grammar as a
    system message. ``NATIVE`` models get the descriptors through their own
    tool-calling API and render the calls they make as directives.
    """

    PROMPT = "prompt"
    NATIVE = "native"


@runtime_checkable
class LanguageModelPort(Protocol):
    """A model that turns an ordered context into response text."""

    tool_calling_style: ToolCallingStyle

    async def complete(self, context: Sequence[Message], tool_descriptors: Sequence[ToolDescriptor]) -> Optional[str]:
        """Produce the next assistant response.

        Args:
            context: Ordered messages, oldest first.
            tool_descriptors: Tools the model may call.

        Returns:
            The response text; tool calls are expressed as directives.
        """
        ...
