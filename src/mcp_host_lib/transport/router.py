"""Request/response correlation on top of a :class:`TransportChannel`."""

import asyncio
import itertools
from typing import Any, Awaitable, Callable, Dict, Optional

from ..llm_core.exceptions import ConnectionClosedError, JsonRpcRemoteError, TransportError
from ..llm_core.logger import get_logger
from .channel import ChannelState, TransportChannel
from .messages import INTERNAL_ERROR, METHOD_NOT_FOUND, JsonRpcMessage, RequestId

logger = get_logger(__name__)

RequestHandler = Callable[[Optional[Any]], Awaitable[Any]]
NotificationHandler = Callable[[str, Optional[Any]], Awaitable[None]]


class MessageRouter:
    """
    Correlates outgoing requests with their responses and dispatches server-initiated requests.

    Each ``request()`` registers a pending future under a fresh id before the
    message is sent, so a fast response can never arrive unclaimed. Futures
    complete in the order responses arrive. Responses nobody waits for are
    logged and dropped.

    The router installs itself as the channel's message handler.
    """

    def __init__(self, channel: TransportChannel, request_timeout: Optional[float] = 60.0) -> None:
        """
        Initializes the router.

        Args:
            channel: The channel to route messages over.
            request_timeout: Default seconds to wait for a response; None waits indefinitely.
        """
        self._channel = channel
        self._request_timeout = request_timeout
        self._ids = itertools.count(1)
        self._pending: Dict[RequestId, "asyncio.Future[Any]"] = {}
        self._request_handlers: Dict[str, RequestHandler] = {}
        self._notification_handler: Optional[NotificationHandler] = None
        self._handler_tasks: "set[asyncio.Task[None]]" = set()

        channel.on_message(self._on_message)
        channel.add_state_listener(self._on_state_change)

    @property
    def channel(self) -> TransportChannel:
        return self._channel

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def set_request_handler(self, method: str, handler: RequestHandler) -> None:
        """Register a coroutine answering server-initiated requests for ``method``.

        The handler receives the request params and returns the result. Raising
        :class:`JsonRpcRemoteError` answers with that error code.
        """
        self._request_handlers[method] = handler

    def set_notification_handler(self, handler: Optional[NotificationHandler]) -> None:
        """Register a coroutine receiving ``(method, params)`` for server notifications."""
        self._notification_handler = handler

    # --- Outbound -------------------------------------------------------------

    async def request(self, method: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        """
        Sends a request and waits for its response.

        Args:
            method: JSON-RPC method name.
            params: Request parameters.
            timeout: Seconds to wait; defaults to the router's ``request_timeout``.

        Returns:
            The ``result`` member of the response.

        Raises:
            JsonRpcRemoteError: If the server answers with an error.
            ConnectionClosedError: If the channel closes before the response arrives.
            NotConnectedError: If the channel is not open.
            asyncio.TimeoutError: If no response arrives in time.
        """
        request_id = next(self._ids)
        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._channel.send(JsonRpcMessage.request(request_id, method, params))
        except BaseException:
            self._pending.pop(request_id, None)
            raise

        logger.debug(f"Request {request_id} '{method}' sent.")
        wait = self._request_timeout if timeout is None else timeout
        try:
            if wait is None:
                return await future
            return await asyncio.wait_for(future, timeout=wait)
        except asyncio.TimeoutError:
            logger.warning(f"Request {request_id} '{method}' timed out after {wait} seconds.")
            raise
        finally:
            self._pending.pop(request_id, None)

    async def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Sends a notification. No response is expected."""
        await self._channel.send(JsonRpcMessage.notification(method, params))

    # --- Inbound --------------------------------------------------------------

    def _on_message(self, message: JsonRpcMessage) -> None:
        if message.is_error or message.is_response:
            self._complete(message)
        elif message.is_notification:
            self._spawn(self._dispatch_notification(message))
        elif message.is_request:
            self._spawn(self._dispatch_request(message))

    def _complete(self, message: JsonRpcMessage) -> None:
        future = self._pending.pop(message.id, None) if message.id is not None else None
        if future is None:
            logger.warning(f"Dropping response with unknown id {message.id!r}.")
            return
        if future.done():
            return

        if message.is_error and message.error is not None:
            error = message.error
            future.set_exception(JsonRpcRemoteError(error.code, error.message, error.data))
        else:
            future.set_result(message.result)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)

    async def _dispatch_request(self, message: JsonRpcMessage) -> None:
        method = message.method or ""
        handler = self._request_handlers.get(method)

        if handler is None:
            logger.warning(f"No handler for server request '{method}'.")
            reply = JsonRpcMessage.error_response(message.id, METHOD_NOT_FOUND, f"Method not found: {method}")
        else:
            try:
                result = await handler(message.params)
                reply = JsonRpcMessage.response(message.id, result)  # type: ignore[arg-type]
            except JsonRpcRemoteError as exc:
                reply = JsonRpcMessage.error_response(message.id, exc.code, exc.message, exc.data)
            except Exception as exc:
                logger.error(f"Handler for '{method}' failed: {exc}", exc_info=True)
                reply = JsonRpcMessage.error_response(message.id, INTERNAL_ERROR, str(exc))

        await self._reply(reply)

    async def _reply(self, reply: JsonRpcMessage) -> None:
        try:
            await self._channel.send(reply)
        except (TransportError, OSError) as exc:
            logger.warning(f"Could not answer server request {reply.id!r}: {exc!r}")

    async def _dispatch_notification(self, message: JsonRpcMessage) -> None:
        if self._notification_handler is None:
            logger.debug(f"Ignoring notification '{message.method}'.")
            return
        try:
            await self._notification_handler(message.method or "", message.params)
        except Exception as exc:
            logger.error(f"Notification handler for '{message.method}' failed: {exc}", exc_info=True)

    # --- Lifecycle ------------------------------------------------------------

    def _on_state_change(self, previous: ChannelState, current: ChannelState) -> None:
        if current is ChannelState.CLOSED:
            self.fail_pending(ConnectionClosedError("Channel closed before a response arrived."))

    def fail_pending(self, error: Exception) -> None:
        """Fail every in-flight request with ``error``."""
        if not self._pending:
            return
        logger.info(f"Failing {len(self._pending)} pending request(s): {error}")
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)
