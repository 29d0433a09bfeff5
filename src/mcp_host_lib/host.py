"""High-level host: connects MCP servers, keeps conversations and answers queries."""

import asyncio
from types import TracebackType
from typing import Any, Callable, Dict, List, Optional, Type

import httpx

from .llm_core import (
    DEFAULT_SYSTEM_PROMPT,
    Conversation,
    ConversationNotFoundError,
    ConversationStore,
    DiscoveryFailedError,
    HostSettings,
    LanguageModelPort,
    OrchestrationEngine,
    ToolDescriptor,
    ToolProvider,
    ToolRegistry,
    get_logger,
)
from .transport import (
    ChannelState,
    HttpSseConnector,
    MessageRouter,
    RemoteToolProvider,
    SamplingHandler,
    TransportChannel,
)

logger = get_logger(__name__)


class MCPHost:
    """
    Ties together the tool registry, the conversation store and the orchestration engine.

    Remote servers are connected with :meth:`connect_server`; any other
    :class:`ToolProvider` (such as the stdio ``MCPClientWrapper``) can be added
    with :meth:`add_provider`. When a remote server's channel reconnects, its
    tools are fetched again.
    """

    def __init__(
        self,
        model: LanguageModelPort,
        settings: Optional[HostSettings] = None,
        *,
        store: Optional[ConversationStore] = None,
        registry: Optional[ToolRegistry] = None,
        sampling_model: Optional[LanguageModelPort] = None,
        enable_sampling: bool = True,
    ) -> None:
        """
        Initializes the host.

        Args:
            model: The language model answering queries.
            settings: Tunables; defaults to ``HostSettings()``.
            store: Conversation storage; a fresh in-memory store by default.
            registry: Tool registry; a fresh one using ``settings.discovery_timeout`` by default.
            sampling_model: Model answering servers' sampling requests; defaults to ``model``.
            enable_sampling: Whether to advertise and serve the sampling capability.
        """
        self.settings = settings or HostSettings()
        self.store = store or ConversationStore()
        self.registry = registry or ToolRegistry(discovery_timeout=self.settings.discovery_timeout)
        self.engine = OrchestrationEngine(
            model=model,
            registry=self.registry,
            store=self.store,
            max_rounds=self.settings.max_rounds,
            tool_timeout=self.settings.tool_timeout,
            directive_policy=self.settings.directive_policy,
        )
        self._sampling_handler = SamplingHandler(sampling_model or model) if enable_sampling else None
        self._providers: List[ToolProvider] = []
        self._listeners: Dict[int, Callable[[ChannelState, ChannelState], None]] = {}
        self._background: "set[asyncio.Task[None]]" = set()

    @property
    def providers(self) -> List[ToolProvider]:
        return list(self._providers)

    # --- Servers --------------------------------------------------------------

    async def connect_server(
        self,
        url: str,
        *,
        provider_id: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> RemoteToolProvider:
        """
        Connects to an MCP server over HTTP/SSE and registers its tools.

        Args:
            url: Endpoint of the server's event stream.
            provider_id: Name of the provider; defaults to the URL.
            headers: Extra HTTP headers, e.g. authorization.
            client: Shared HTTP client.

        Returns:
            The connected provider.

        Raises:
            TransportTimeoutError: If the server cannot be reached in time.
            DiscoveryFailedError: If the server's tools cannot be listed.
        """
        name = provider_id or url
        connector = HttpSseConnector(
            url, client=client, headers=headers, endpoint_timeout=self.settings.endpoint_timeout
        )
        channel = TransportChannel(
            connector,
            open_timeout=self.settings.open_timeout,
            reconnect_interval=self.settings.reconnect_interval,
            open_attempts=self.settings.open_attempts,
            name=name,
        )
        router = MessageRouter(channel, request_timeout=self.settings.request_timeout)
        provider = RemoteToolProvider(
            router,
            provider_id=name,
            client_name=self.settings.client_name,
            client_version=self.settings.client_version,
            sampling_handler=self._sampling_handler,
        )

        try:
            await provider.connect()
            await self.add_provider(provider)
        except BaseException:
            await provider.close()
            raise

        self._watch_reconnects(provider)
        logger.info(f"Connected to MCP server '{name}'.")
        return provider

    async def connect_all(self) -> List[RemoteToolProvider]:
        """Connects every endpoint listed in ``settings.server_endpoints``, in order."""
        return [await self.connect_server(url) for url in self.settings.server_endpoints]

    async def add_provider(self, provider: ToolProvider) -> List[ToolDescriptor]:
        """
        Registers a connected provider and discovers its tools.

        Raises:
            DiscoveryFailedError: If the tool list cannot be fetched.
        """
        descriptors = await self.registry.discover(provider)
        if provider not in self._providers:
            self._providers.append(provider)
        return descriptors

    def _watch_reconnects(self, provider: RemoteToolProvider) -> None:
        reconnecting = False

        def listener(previous: ChannelState, current: ChannelState) -> None:
            nonlocal reconnecting
            if current is ChannelState.RECONNECTING:
                reconnecting = True
            elif current is ChannelState.OPEN and reconnecting:
                reconnecting = False
                task = asyncio.ensure_future(self._rediscover(provider))
                self._background.add(task)
                task.add_done_callback(self._background.discard)
            elif current is ChannelState.CLOSED:
                reconnecting = False

        provider.channel.add_state_listener(listener)
        self._listeners[id(provider)] = listener

    async def _rediscover(self, provider: ToolProvider) -> None:
        logger.info(f"Re-discovering tools of '{provider.provider_id}' after reconnect...")
        try:
            await self.registry.discover(provider)
        except DiscoveryFailedError as exc:
            logger.warning(f"Re-discovery of '{provider.provider_id}' failed, keeping previous tools: {exc}")

    def all_tools(self) -> List[ToolDescriptor]:
        """Returns the tools of all providers in discovery order."""
        return self.registry.all_descriptors()

    # --- Conversations --------------------------------------------------------

    def start_new_chat(
        self, system_prompt: Optional[str] = DEFAULT_SYSTEM_PROMPT, conversation_id: Optional[str] = None
    ) -> str:
        """
        Starts a conversation.

        Args:
            system_prompt: System message opening the conversation; None for none.
            conversation_id: Identifier to use; generated if omitted.

        Returns:
            The conversation id.
        """
        return self.store.create(conversation_id, system_prompt=system_prompt).id

    def get_conversation(self, conversation_id: str) -> Conversation:
        """
        Returns a snapshot of a conversation.

        Raises:
            ConversationNotFoundError: If the id is unknown.
        """
        return self.store.get(conversation_id)

    async def process_query(self, conversation_id: str, query: str) -> str:
        """
        Answers a query within an existing conversation.

        Raises:
            ConversationNotFoundError: If the conversation was never started.
            OrchestrationError: If the model returns nothing or keeps calling tools.
        """
        if conversation_id not in self.store:
            raise ConversationNotFoundError(conversation_id)
        return await self.engine.process_query(conversation_id, query)

    # --- Lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Closes every provider and forgets its tools."""
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

        for provider in reversed(self._providers):
            self.registry.remove(provider)
            listener = self._listeners.pop(id(provider), None)
            if listener is not None and isinstance(provider, RemoteToolProvider):
                provider.channel.remove_state_listener(listener)
            closer: Any = getattr(provider, "close", None)
            if closer is not None:
                await closer()
        self._providers.clear()
        logger.info("MCP host closed.")

    async def __aenter__(self) -> "MCPHost":
        return self

    async def __aexit__(
        self, exc_type: Optional[Type[BaseException]], exc_val: Optional[BaseException], exc_tb: Optional[TracebackType]
    ) -> None:
        await self.close()
