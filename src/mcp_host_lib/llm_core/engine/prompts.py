"""Prompt fragments used to build model context."""

import json
from typing import Sequence

from ..messages import Message
from ..tools import DIRECTIVE_PREFIX, ToolDescriptor

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful, precise and friendly assistant. "
    "You can use tools to obtain information and complete tasks.\n"
    "Rules for tool use:\n"
    "1. Use a tool whenever it helps to get current or specific information.\n"
    "2. Read each tool description carefully and pass exactly the arguments it expects.\n"
    "3. If a tool call fails, do not retry it with identical arguments.\n"
    "If you are unsure or lack context, ask the user for more information. "
    "Answer factually, admit when you do not know something, and base your answers on tool results."
)


def build_tools_prompt(tool_descriptors: Sequence[ToolDescriptor]) -> str:
    """Describe the available tools and the directive grammar to a prompt-style model.

    Args:
        tool_descriptors: Tools in discovery order.

    Returns:
        A system prompt section, or an empty string if there are no tools.
    """
    if not tool_descriptors:
        return ""

    lines = ["You have access to the following tools:"]
    for descriptor in tool_descriptors:
        lines.append(f"- {descriptor.name}: {descriptor.description or 'No description.'}")
        lines.append(f"  Arguments (JSON schema): {json.dumps(descriptor.input_schema, sort_keys=True)}")

    example = tool_descriptors[0].name
    lines.append("")
    lines.append(
        f"If you need to use a tool, respond with {DIRECTIVE_PREFIX}<tool-name>:<json-arguments>, "
        f'for example {DIRECTIVE_PREFIX}{example}:{{"param": "value"}}. '
        "You may place several tool calls in one response; they run in order."
    )
    lines.append("Otherwise, just provide a helpful response.")
    return "\n".join(lines)


def render_tool_result(message: Message) -> str:
    """Phrase a tool-role message for models without a tool role of their own."""
    if message.is_error:
        return f"Tool '{message.name}' failed: {message.text}"
    return f"Tool '{message.name}' returned: {message.text}"
