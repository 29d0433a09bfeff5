"""Reconnecting message channel between the host and one protocol server."""

import asyncio
import inspect
from enum import Enum
from types import TracebackType
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    List,
    Optional,
    Protocol,
    Type,
    Union,
    runtime_checkable,
)

from ..llm_core.exceptions import (
    ConnectionClosedError,
    MalformedMessageError,
    NotConnectedError,
    TransportError,
    TransportTimeoutError,
)
from ..llm_core.logger import get_logger
from .messages import JsonRpcMessage

logger = get_logger(__name__)


class ChannelState(str, Enum):
    """Lifecycle of a :class:`TransportChannel`."""

    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"


@runtime_checkable
class Connection(Protocol):
    """One physical connection, e.g. an SSE stream plus its POST endpoint."""

    @property
    def session_id(self) -> Optional[str]:
        """Session id issued by the server during the handshake, if any."""
        ...

    def messages(self) -> AsyncIterator[str]:
        """Yield raw inbound payloads in arrival order; ends when the connection drops."""
        ...

    async def send(self, payload: str, session_id: Optional[str]) -> Optional[str]:
        """Deliver one serialized message. Returns a session id issued in the reply, if any."""
        ...

    async def close(self) -> None: ...


@runtime_checkable
class Connector(Protocol):
    """Factory for :class:`Connection` objects."""

    async def connect(self, session_id: Optional[str]) -> Connection:
        """Perform the handshake, resuming ``session_id`` when given."""
        ...


MessageHandler = Callable[[JsonRpcMessage], Union[None, Awaitable[None]]]
ErrorHandler = Callable[[Exception], None]
StateListener = Callable[[ChannelState, ChannelState], None]


class TransportChannel:
    """
    A bidirectional JSON-RPC channel that survives network failures.

    ``open()`` performs the first handshake. When an open connection drops,
    the channel moves to RECONNECTING and keeps trying every
    ``reconnect_interval`` seconds until it succeeds or ``close()`` is called.
    The session id issued by the server is kept for the lifetime of the
    channel and presented on every handshake and outgoing message.

    Inbound messages are parsed and handed to a single handler, one at a time,
    in arrival order. Payloads that do not parse are reported through the error
    callback and dropped.
    """

    # Failures of a single handshake attempt; the channel retries after these.
    CONNECT_ERRORS = (TransportError, OSError, asyncio.TimeoutError)

    def __init__(
        self,
        connector: Connector,
        *,
        open_timeout: float = 10.0,
        reconnect_interval: float = 5.0,
        open_attempts: int = 3,
        name: str = "channel",
    ) -> None:
        """
        Initializes the channel in the CLOSED state.

        Args:
            connector: Creates physical connections.
            open_timeout: Deadline in seconds for a single handshake.
            reconnect_interval: Seconds between connection attempts.
            open_attempts: Handshakes ``open()`` tries before giving up.
            name: Label used in log messages.
        """
        self._connector = connector
        self._open_timeout = open_timeout
        self._reconnect_interval = reconnect_interval
        self._open_attempts = max(1, open_attempts)
        self.name = name

        self._state = ChannelState.CLOSED
        self._session_id: Optional[str] = None
        self._connection: Optional[Connection] = None
        self._reader_task: Optional["asyncio.Task[None]"] = None
        self._reconnect_task: Optional["asyncio.Task[None]"] = None
        self._opened = asyncio.Event()

        self._message_handler: Optional[MessageHandler] = None
        self._error_handler: Optional[ErrorHandler] = None
        self._state_listeners: List[StateListener] = []

    # --- Properties & registration -------------------------------------------

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def is_open(self) -> bool:
        return self._state is ChannelState.OPEN

    @property
    def _open_budget(self) -> float:
        return self._open_attempts * self._open_timeout + (self._open_attempts - 1) * self._reconnect_interval

    def on_message(self, handler: Optional[MessageHandler]) -> None:
        """Register the handler for inbound messages, replacing any previous one."""
        self._message_handler = handler

    def on_error(self, handler: Optional[ErrorHandler]) -> None:
        """Register the callback for malformed inbound payloads and handler failures."""
        self._error_handler = handler

    def add_state_listener(self, listener: StateListener) -> None:
        """Register a callback receiving ``(previous, current)`` on every state change."""
        self._state_listeners.append(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        if listener in self._state_listeners:
            self._state_listeners.remove(listener)

    # --- Lifecycle ------------------------------------------------------------

    async def open(self) -> None:
        """
        Opens the channel.

        Each handshake gets ``open_timeout`` seconds. Failed attempts are retried
        every ``reconnect_interval`` seconds, up to ``open_attempts`` in total.
        Opening an open channel does nothing; opening a channel that is already
        (re)connecting waits for that attempt.

        Raises:
            TransportTimeoutError: If none of the attempts completes a handshake.
            ConnectionClosedError: If the channel is closed while opening.
        """
        if self._state is ChannelState.OPEN:
            return

        if self._state is not ChannelState.CLOSED:
            try:
                await asyncio.wait_for(self._opened.wait(), timeout=self._open_budget)
            except asyncio.TimeoutError as exc:
                raise TransportTimeoutError(
                    f"[{self.name}] Channel did not open within {self._open_budget} seconds."
                ) from exc
            return

        logger.info(f"[{self.name}] Opening channel...")
        self._transition(ChannelState.CONNECTING)
        try:
            connection = await self._connect_with_retries()
        except TransportTimeoutError:
            self._transition(ChannelState.CLOSED)
            raise

        self._attach(connection)

    async def _connect_with_retries(self) -> Connection:
        last_error: Optional[BaseException] = None

        for attempt in range(1, self._open_attempts + 1):
            if attempt > 1:
                await asyncio.sleep(self._reconnect_interval)
                if self._state is not ChannelState.CONNECTING:
                    raise ConnectionClosedError(f"[{self.name}] Channel was closed while opening.")

            try:
                connection = await asyncio.wait_for(
                    self._connector.connect(self._session_id), timeout=self._open_timeout
                )
            except self.CONNECT_ERRORS as exc:
                last_error = exc
                logger.warning(f"[{self.name}] Connection attempt {attempt}/{self._open_attempts} failed: {exc!r}")
                continue

            if self._state is not ChannelState.CONNECTING:
                await self._close_connection(connection)
                raise ConnectionClosedError(f"[{self.name}] Channel was closed while opening.")
            return connection

        msg = (
            f"[{self.name}] No successful handshake after {self._open_attempts} attempt(s) "
            f"of {self._open_timeout} seconds each."
        )
        logger.error(msg)
        raise TransportTimeoutError(msg) from last_error

    def _attach(self, connection: Connection) -> None:
        self._connection = connection
        if self._session_id is None and connection.session_id:
            self._session_id = connection.session_id
            logger.info(f"[{self.name}] Session established: {self._session_id}")

        self._transition(ChannelState.OPEN)
        self._reader_task = asyncio.create_task(self._read_loop(connection))

    async def close(self) -> None:
        """Tears the channel down. Safe to call more than once."""
        if self._state is ChannelState.CLOSED and self._connection is None:
            return

        logger.info(f"[{self.name}] Closing channel...")
        connection, self._connection = self._connection, None
        tasks = [task for task in (self._reconnect_task, self._reader_task) if task is not None]
        self._reconnect_task = None
        self._reader_task = None

        self._transition(ChannelState.CLOSED)

        current = asyncio.current_task()
        pending = [task for task in tasks if task is not current and not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if connection is not None:
            await self._close_connection(connection)
        self._session_id = None
        logger.info(f"[{self.name}] Channel closed.")

    async def __aenter__(self) -> "TransportChannel":
        await self.open()
        return self

    async def __aexit__(
        self, exc_type: Optional[Type[BaseException]], exc_val: Optional[BaseException], exc_tb: Optional[TracebackType]
    ) -> None:
        await self.close()

    # --- Outbound -------------------------------------------------------------

    async def send(self, message: JsonRpcMessage) -> None:
        """
        Sends one message. Nothing is queued while the channel is not open.

        Args:
            message: The message to send.

        Raises:
            NotConnectedError: If the channel is not OPEN.
            HttpStatusError: If the server rejects the message.
            TransportError: If the connection fails while sending.
        """
        connection = self._connection
        if self._state is not ChannelState.OPEN or connection is None:
            raise NotConnectedError(f"[{self.name}] Cannot send while channel is {self._state.value}.")

        issued = await connection.send(message.dump(), self._session_id)
        if issued and self._session_id is None:
            self._session_id = issued
            logger.info(f"[{self.name}] Session established: {issued}")

    # --- Inbound --------------------------------------------------------------

    async def _read_loop(self, connection: Connection) -> None:
        try:
            async for raw in connection.messages():
                await self._deliver(raw)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(f"[{self.name}] Connection lost: {exc!r}")
        else:
            logger.warning(f"[{self.name}] Connection closed by server.")

        if self._connection is connection and self._state is ChannelState.OPEN:
            self._start_reconnect(connection)

    async def _deliver(self, raw: str) -> None:
        try:
            message = JsonRpcMessage.parse(raw)
        except MalformedMessageError as exc:
            logger.warning(f"[{self.name}] Dropping malformed message: {exc}")
            self._report_error(exc)
            return

        if self._message_handler is None:
            logger.warning(f"[{self.name}] No message handler registered, dropping message.")
            return

        try:
            result = self._message_handler(message)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error(f"[{self.name}] Message handler failed: {exc}", exc_info=True)
            self._report_error(exc)

    def _report_error(self, error: Exception) -> None:
        if self._error_handler is None:
            return
        try:
            self._error_handler(error)
        except Exception:
            logger.exception(f"[{self.name}] Error callback failed.")

    # --- Reconnect ------------------------------------------------------------

    def _start_reconnect(self, lost: Connection) -> None:
        self._connection = None
        self._reader_task = None
        self._transition(ChannelState.RECONNECTING)
        self._reconnect_task = asyncio.create_task(self._reconnect_loop(lost))

    async def _reconnect_loop(self, lost: Connection) -> None:
        await self._close_connection(lost)
        attempt = 0

        while True:
            logger.info(f"[{self.name}] Reconnecting in {self._reconnect_interval} seconds...")
            await asyncio.sleep(self._reconnect_interval)
            attempt += 1
            self._transition(ChannelState.CONNECTING)
            try:
                connection = await asyncio.wait_for(
                    self._connector.connect(self._session_id), timeout=self._open_timeout
                )
            except self.CONNECT_ERRORS as exc:
                logger.warning(f"[{self.name}] Reconnect attempt {attempt} failed: {exc!r}")
                self._transition(ChannelState.RECONNECTING)
                continue

            self._reconnect_task = None
            logger.info(f"[{self.name}] Reconnected after {attempt} attempt(s).")
            self._attach(connection)
            return

    async def _close_connection(self, connection: Connection) -> None:
        try:
            await connection.close()
        except (TransportError, OSError) as exc:
            logger.debug(f"[{self.name}] Ignoring error while closing connection: {exc!r}")

    # --- State ----------------------------------------------------------------

    def _transition(self, state: ChannelState) -> None:
        previous = self._state
        if previous is state:
            return
        self._state = state
        if state is ChannelState.OPEN:
            self._opened.set()
        else:
            self._opened.clear()

        logger.debug(f"[{self.name}] {previous.value} -> {state.value}")
        for listener in list(self._state_listeners):
            try:
                listener(previous, state)
            except Exception:
                logger.exception(f"[{self.name}] State listener failed.")
