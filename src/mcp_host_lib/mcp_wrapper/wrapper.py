"""Expose a stdio MCP server as a ToolProvider through the official MCP client session."""

import logging
from contextlib import AsyncExitStack
from types import TracebackType
from typing import Any, Dict, List, Optional, Type

from mcp import ClientSession
from mcp.client.stdio import stdio_client, StdioServerParameters
from mcp.shared.exceptions import McpError

from ..llm_core.exceptions import NotConnectedError, ToolExecutionError
from ..llm_core.tools import ToolDescriptor
from .content import format_tool_content, preview

logger = logging.getLogger(__name__)

__all__ = ["MCPClientWrapper"]


class MCPClientWrapper:
    """Runs an MCP server as a subprocess and serves its tools to the host."""

    def __init__(
        self,
        command: str,
        args: list[str],
        env: Optional[dict[str, str]] = None,
        provider_id: Optional[str] = None,
    ):
        """Initializes the wrapper with parameters for the MCP server process.

        Args:
            command: The command to run the server.
            args: List of arguments for the command.
            env: Optional dictionary of environment variables.
            provider_id: Name of the provider in logs and the registry. Defaults to the command line.
        """
        self._server_params = StdioServerParameters(command=command, args=args, env=env)
        self._provider_id = provider_id or " ".join([command, *args])
        self._session: Optional[ClientSession] = None
        self._exit_stack = AsyncExitStack()

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """Starts the server process and initializes the session."""
        logger.debug("Initializing MCP client session...")
        read, write = await self._exit_stack.enter_async_context(stdio_client(self._server_params))

        self._session = await self._exit_stack.enter_async_context(ClientSession(read, write))

        await self._session.initialize()
        logger.info("MCP client session initialized successfully.")

    async def close(self) -> None:
        """Cleanly closes all connections."""
        logger.debug("Closing MCP client session...")
        await self._exit_stack.aclose()
        self._session = None
        logger.info("MCP client session closed.")

    async def __aenter__(self) -> "MCPClientWrapper":
        await self.connect()
        return self

    async def __aexit__(
        self, exc_type: Optional[Type[BaseException]], exc_val: Optional[BaseException], exc_tb: Optional[TracebackType]
    ) -> None:
        await self.close()

    def _require_session(self) -> ClientSession:
        if not self._session:
            raise NotConnectedError("MCP Client is not connected. Use 'async with' or call connect().")
        return self._session

    async def list_tools(self) -> List[ToolDescriptor]:
        """Fetches the server's tools as descriptors.

        Raises:
            NotConnectedError: If the MCP Client is not connected.
        """
        session = self._require_session()

        logger.debug("Fetching tools from MCP server...")
        result = await session.list_tools()
        logger.info("Found %d tools from MCP server.", len(result.tools))

        return [
            ToolDescriptor.from_wire(
                {
                    "name": tool.name,
                    # Some servers omit descriptions; give the model something to go on.
                    "description": tool.description or f"Tool {tool.name} provided by MCP server.",
                    "inputSchema": tool.inputSchema,
                }
            )
            for tool in result.tools
        ]

    async def call(self, name: str, arguments: Dict[str, Any]) -> str:
        """Calls a tool through the active session.

        Args:
            name: Tool name.
            arguments: Keyword arguments forwarded to the remote MCP tool.

        Returns:
            A normalized string representation of MCP content blocks.

        Raises:
            NotConnectedError: If the session is not active.
            ToolExecutionError: If the server rejects the call or reports it as failed.
        """
        session = self._require_session()

        logger.info("Delegating tool '%s' to MCP Server...", name)
        logger.debug("Tool arguments: %s", arguments)

        try:
            mcp_result = await session.call_tool(name, arguments=arguments)
        except McpError as e:
            logger.warning("MCP Server rejected tool '%s': %s", name, e.error.message)
            raise ToolExecutionError(f"{e.error.message} (code {e.error.code})") from e
        result_text = format_tool_content(mcp_result.content)

        if mcp_result.isError:
            raise ToolExecutionError(result_text if mcp_result.content else f"Tool '{name}' reported an error.")

        logger.debug("Tool '%s' result: %s", name, preview(result_text))
        return result_text
