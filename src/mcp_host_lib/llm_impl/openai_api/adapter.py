"""Translate between the library's messages/descriptors and OpenAI chat completion payloads."""

from typing import Any, Dict, List, Optional, Sequence

from openai.types.chat import ChatCompletion, ChatCompletionToolParam

from mcp_host_lib.llm_core import get_logger
from mcp_host_lib.llm_core.engine import render_tool_result
from mcp_host_lib.llm_core.messages import Message, Role
from mcp_host_lib.llm_core.tools import ToolDescriptor, format_directive

logger = get_logger(__name__)


class OpenAIToolAdapter:
    """Converts context and tools for the chat completions API and renders tool calls as directives."""

    @staticmethod
    def build_tools(tool_descriptors: Sequence[ToolDescriptor]) -> List[ChatCompletionToolParam]:
        """Build the ``tools`` parameter of a chat completion request.

        Args:
            tool_descriptors: Tools the model may call.

        Returns:
            One function tool per descriptor.
        """
        return [
            {
                "type": "function",
                "function": {
                    "name": descriptor.name,
                    "description": descriptor.description,
                    "parameters": descriptor.input_schema,
                },
            }
            for descriptor in tool_descriptors
        ]

    @staticmethod
    def convert_context(context: Sequence[Message]) -> List[Dict[str, Any]]:
        """
        Converts messages to OpenAI message dictionaries.

        Tool results become user messages: the history stores tool calls as
        directive text, not as native ``tool_calls`` with ids.

        Args:
            context: Messages, oldest first.

        Returns:
            List of OpenAI message dictionaries.
        """
        openai_messages = []
        for msg in context:
            if msg.role is Role.SYSTEM:
                openai_messages.append({"role": "system", "content": msg.text})
            elif msg.role is Role.USER:
                openai_messages.append({"role": "user", "content": msg.text})
            elif msg.role is Role.ASSISTANT:
                openai_messages.append({"role": "assistant", "content": msg.text})
            elif msg.role is Role.TOOL:
                openai_messages.append({"role": "user", "content": render_tool_result(msg)})
        return openai_messages

    @staticmethod
    def render_response(response: ChatCompletion) -> Optional[str]:
        """
        Flattens the first choice into directive-bearing text.

        Function tool calls are appended to the message content, one directive per line.

        Args:
            response: The chat completion response from OpenAI.

        Returns:
            The text, or None if the response has no choices or no content.
        """
        if not response.choices:
            logger.warning("OpenAI response has no choices.")
            return None

        message = response.choices[0].message
        parts = []
        if message.content:
            parts.append(message.content)

        for tool_call in message.tool_calls or []:
            # Only function tool calls carry a name and arguments
            if tool_call.type == "function":
                parts.append(format_directive(tool_call.function.name, tool_call.function.arguments or "{}"))

        if not parts:
            return None
        return "\n".join(parts)
