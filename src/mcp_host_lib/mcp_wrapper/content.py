"""Flatten MCP tool result content into the text handed back to the model."""

from typing import Any, Sequence, cast

from mcp.types import EmbeddedResource, ImageContent, TextContent

from ..llm_core.logger import get_logger

logger = get_logger(__name__)

EMPTY_RESULT_TEXT = "Success"


def format_tool_content(content: Sequence[Any]) -> str:
    """Normalize MCP content blocks to a single string.

    Text blocks are kept verbatim; images and resources are replaced by short
    placeholders.

    Args:
        content: Content blocks of a ``tools/call`` result.

    Returns:
        The blocks joined by newlines, or ``"Success"`` when there are none.
    """
    if not content:
        return EMPTY_RESULT_TEXT

    output = []
    for c in content:
        if c.type == "text":
            text_content = cast(TextContent, c)
            output.append(text_content.text)
        elif c.type == "image":
            image_content = cast(ImageContent, c)
            output.append(f"[Image: {image_content.mimeType}]")
        elif c.type == "resource":
            resource_content = cast(EmbeddedResource, c)
            output.append(f"[Resource: {resource_content.resource.uri}]")
        elif c.type == "resource_link":
            output.append(f"[Resource: {getattr(c, 'uri', '')}]")
        else:
            output.append(f"[Unknown content type: {c.type}]")

    return "\n".join(output)


def preview(text: str, limit: int = 200) -> str:
    """Shorten ``text`` for debug logging."""
    return text[:limit] + "..." if len(text) > limit else text
