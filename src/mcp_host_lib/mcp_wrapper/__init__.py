"""Tool providers built on the official MCP client SDK."""

from .content import format_tool_content
from .wrapper import MCPClientWrapper

__all__ = ["MCPClientWrapper", "format_tool_content"]
