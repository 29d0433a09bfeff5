"""MCP client speaking JSON-RPC over a :class:`MessageRouter`."""

from typing import Any, Dict, List, Optional

from mcp.types import CallToolResult, ListToolsResult
from pydantic import ValidationError

from ..llm_core.exceptions import ProtocolError, ToolExecutionError
from ..llm_core.logger import get_logger
from ..llm_core.tools import ToolDescriptor
from ..mcp_wrapper.content import format_tool_content, preview
from .channel import TransportChannel
from .router import MessageRouter
from .sampling import SamplingHandler

logger = get_logger(__name__)

PROTOCOL_VERSION = "2024-11-05"


class RemoteToolProvider:
    """
    A :class:`ToolProvider` backed by a remote MCP server.

    Wraps one router/channel pair: performs the ``initialize`` handshake,
    lists the server's tools and forwards tool calls. Server-initiated
    ``ping`` requests are answered, and ``sampling/createMessage`` requests
    are answered when a sampling handler is given.
    """

    def __init__(
        self,
        router: MessageRouter,
        *,
        provider_id: Optional[str] = None,
        client_name: str = "mcp-host-lib",
        client_version: str = "0.1.0",
        sampling_handler: Optional[SamplingHandler] = None,
    ) -> None:
        self._router = router
        self._provider_id = provider_id or router.channel.name
        self._client_info = {"name": client_name, "version": client_version}
        self._sampling_handler = sampling_handler
        self._server_info: Dict[str, Any] = {}
        self._server_capabilities: Dict[str, Any] = {}

        router.set_request_handler("ping", self._handle_ping)
        if sampling_handler is not None:
            router.set_request_handler("sampling/createMessage", sampling_handler)

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def router(self) -> MessageRouter:
        return self._router

    @property
    def channel(self) -> TransportChannel:
        return self._router.channel

    @property
    def server_info(self) -> Dict[str, Any]:
        return self._server_info

    @property
    def server_capabilities(self) -> Dict[str, Any]:
        return self._server_capabilities

    async def connect(self) -> None:
        """Opens the channel and performs the MCP handshake."""
        await self.channel.open()
        await self.initialize()

    async def initialize(self) -> Dict[str, Any]:
        """
        Performs the ``initialize`` handshake and confirms it with ``notifications/initialized``.

        Returns:
            The server's ``initialize`` result.

        Raises:
            ProtocolError: If the server's answer is not an object.
        """
        capabilities: Dict[str, Any] = {}
        if self._sampling_handler is not None:
            capabilities["sampling"] = {}

        logger.debug(f"[{self._provider_id}] Initializing MCP session...")
        result = await self._router.request(
            "initialize",
            {"protocolVersion": PROTOCOL_VERSION, "capabilities": capabilities, "clientInfo": self._client_info},
        )
        if not isinstance(result, dict):
            raise ProtocolError(f"[{self._provider_id}] Unexpected initialize result: {result!r}")

        self._server_info = result.get("serverInfo") or {}
        self._server_capabilities = result.get("capabilities") or {}
        await self._router.notify("notifications/initialized")
        logger.info(
            f"[{self._provider_id}] MCP session initialized with server "
            f"'{self._server_info.get('name', 'unknown')}' (protocol {result.get('protocolVersion')})."
        )
        return result

    async def list_tools(self) -> List[ToolDescriptor]:
        """
        Fetches all tools, following ``nextCursor`` pagination.

        Raises:
            ProtocolError: If a page does not match the ``tools/list`` result shape.
        """
        descriptors: List[ToolDescriptor] = []
        cursor: Optional[str] = None

        while True:
            params = {"cursor": cursor} if cursor else None
            raw = await self._router.request("tools/list", params)
            try:
                page = ListToolsResult.model_validate(raw)
            except ValidationError as exc:
                raise ProtocolError(f"[{self._provider_id}] Invalid tools/list result: {exc}") from exc

            for tool in page.tools:
                descriptors.append(
                    ToolDescriptor.from_wire(
                        {"name": tool.name, "description": tool.description, "inputSchema": tool.inputSchema}
                    )
                )

            cursor = page.nextCursor
            if not cursor:
                break

        logger.info(f"[{self._provider_id}] Found {len(descriptors)} tools.")
        return descriptors

    async def call(self, name: str, arguments: Dict[str, Any]) -> str:
        """
        Calls a tool on the server.

        Args:
            name: Tool name.
            arguments: Decoded JSON arguments.

        Returns:
            The tool's content flattened to text.

        Raises:
            ToolExecutionError: If the server reports the call as failed.
            ProtocolError: If the result does not match the ``tools/call`` shape.
        """
        logger.info(f"[{self._provider_id}] Delegating tool '{name}' to MCP server...")
        logger.debug(f"Tool arguments: {arguments}")

        raw = await self._router.request("tools/call", {"name": name, "arguments": arguments})
        try:
            result = CallToolResult.model_validate(raw)
        except ValidationError as exc:
            raise ProtocolError(f"[{self._provider_id}] Invalid tools/call result: {exc}") from exc

        text = format_tool_content(result.content)
        if result.isError:
            raise ToolExecutionError(text if result.content else f"Tool '{name}' reported an error.")

        logger.debug(f"Tool '{name}' result: {preview(text)}")
        return text

    async def close(self) -> None:
        await self.channel.close()

    @staticmethod
    async def _handle_ping(params: Optional[Any]) -> Dict[str, Any]:
        return {}
