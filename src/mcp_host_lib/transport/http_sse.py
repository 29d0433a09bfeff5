"""HTTP transport: server events over an SSE stream, client messages over POST."""

import asyncio
import json
from typing import AsyncIterator, Dict, Mapping, Optional, Union
from urllib.parse import urljoin

import httpx
from httpx_sse import EventSource, ServerSentEvent

from ..llm_core.exceptions import HttpStatusError, TransportError
from ..llm_core.logger import get_logger

logger = get_logger(__name__)

SESSION_HEADER = "Mcp-Session-Id"

_END_OF_STREAM = object()


class HttpSseConnection:
    """
    One open event stream plus the URL that client messages are posted to.

    Events from the stream and message bodies returned by POST requests are
    merged into a single inbound queue, so ``messages()`` yields them in the
    order they arrived.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        *,
        url: str,
        headers: Mapping[str, str],
        session_id: Optional[str] = None,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._response = response
        self._base_url = url
        self._post_url = url
        self._headers = dict(headers)
        self._session_id = session_id
        self._owns_client = owns_client
        self._inbox: "asyncio.Queue[Union[str, Exception, object]]" = asyncio.Queue()
        self._closed = False
        self._first_event = asyncio.Event()
        self._pump_task = asyncio.create_task(self._pump())

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def post_url(self) -> str:
        return self._post_url

    async def messages(self) -> AsyncIterator[str]:
        while True:
            item = await self._inbox.get()
            if item is _END_OF_STREAM:
                return
            if isinstance(item, Exception):
                raise item
            yield str(item)

    async def wait_for_first_event(self, timeout: float) -> bool:
        """
        Waits until the stream delivered its first event or ended.

        Legacy SSE servers announce their message endpoint as the first event;
        waiting for it keeps the first POST from going to the stream URL.

        Returns:
            False if nothing arrived within ``timeout`` seconds.
        """
        try:
            await asyncio.wait_for(self._first_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _pump(self) -> None:
        try:
            async for sse in EventSource(self._response).aiter_sse():
                self._handle_event(sse)
                self._first_event.set()
        except httpx.HTTPError as exc:
            self._inbox.put_nowait(TransportError(f"Event stream failed: {exc}"))
            return
        finally:
            self._first_event.set()
        self._inbox.put_nowait(_END_OF_STREAM)

    def _handle_event(self, sse: ServerSentEvent) -> None:
        if sse.event == "endpoint":
            self._post_url = urljoin(self._base_url, sse.data.strip())
            logger.info(f"Server announced message endpoint: {self._post_url}")
        elif sse.event == "message":
            self._inbox.put_nowait(sse.data)
        else:
            logger.debug(f"Ignoring SSE event of type '{sse.event}'.")

    async def send(self, payload: str, session_id: Optional[str]) -> Optional[str]:
        """
        Posts one serialized message.

        Args:
            payload: JSON text of the message.
            session_id: Session id to present, if one was issued.

        Returns:
            The session id found in the response headers, if any.

        Raises:
            HttpStatusError: If the server answers with a status of 400 or above.
            TransportError: If the request cannot be completed.
        """
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
            **self._headers,
        }
        if session_id:
            headers[SESSION_HEADER] = session_id

        try:
            response = await self._client.post(self._post_url, content=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to send message to {self._post_url}: {exc}") from exc

        if response.status_code >= 400:
            raise HttpStatusError(response.status_code, response.text)

        await self._feed_body(response)
        return response.headers.get(SESSION_HEADER)

    async def _feed_body(self, response: httpx.Response) -> None:
        body = response.text
        if not body.strip():
            return

        content_type = response.headers.get("content-type", "")
        if "text/event-stream" in content_type:
            async for sse in EventSource(response).aiter_sse():
                self._handle_event(sse)
        elif "application/json" in content_type:
            try:
                decoded = json.loads(body)
            except json.JSONDecodeError:
                # Let the channel report it as malformed.
                self._inbox.put_nowait(body)
                return
            if isinstance(decoded, list):
                for item in decoded:
                    self._inbox.put_nowait(json.dumps(item))
            else:
                self._inbox.put_nowait(body)
        else:
            logger.debug(f"Ignoring POST response body with content type '{content_type}'.")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        self._pump_task.cancel()
        await asyncio.gather(self._pump_task, return_exceptions=True)
        await self._response.aclose()
        if self._owns_client:
            await self._client.aclose()
        self._inbox.put_nowait(_END_OF_STREAM)


class HttpSseConnector:
    """Opens :class:`HttpSseConnection` objects against one server URL."""

    def __init__(
        self,
        url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30.0,
        endpoint_timeout: float = 2.0,
    ) -> None:
        """
        Initializes the connector.

        Args:
            url: URL of the event stream; also the default message endpoint.
            client: Shared HTTP client. When omitted, each connection creates and owns one.
            headers: Extra headers sent with every request (e.g. authorization).
            timeout: Connect/write timeout in seconds. Reads on the stream never time out.
            endpoint_timeout: Seconds ``connect()`` waits for the stream's first event, which
                carries the message endpoint on legacy SSE servers. 0 disables the wait.
        """
        self.url = url
        self._client = client
        self._headers = headers or {}
        self._timeout = timeout
        self._endpoint_timeout = endpoint_timeout

    def __repr__(self) -> str:
        return f"HttpSseConnector({self.url!r})"

    async def connect(self, session_id: Optional[str]) -> HttpSseConnection:
        """
        Opens the event stream.

        Args:
            session_id: Session to resume, sent as the ``Mcp-Session-Id`` header.

        Returns:
            The open connection. When the server announces a message endpoint as
            its first event, the connection already posts to it.

        Raises:
            HttpStatusError: If the server rejects the stream request.
            TransportError: If the server cannot be reached.
        """
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=httpx.Timeout(self._timeout, read=None))

        headers = {"Accept": "text/event-stream", **self._headers}
        if session_id:
            headers[SESSION_HEADER] = session_id

        logger.debug(f"Opening event stream at {self.url}...")
        request = client.build_request("GET", self.url, headers=headers)
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            if owns_client:
                await client.aclose()
            raise TransportError(f"Failed to open event stream at {self.url}: {exc}") from exc

        if response.status_code >= 400:
            await response.aclose()
            if owns_client:
                await client.aclose()
            raise HttpStatusError(response.status_code, f"event stream request to {self.url} rejected")

        issued = response.headers.get(SESSION_HEADER) or session_id
        connection = HttpSseConnection(
            client,
            response,
            url=self.url,
            headers=self._headers,
            session_id=issued,
            owns_client=owns_client,
        )
        if self._endpoint_timeout > 0:
            try:
                primed = await connection.wait_for_first_event(self._endpoint_timeout)
            except asyncio.CancelledError:
                await connection.close()
                raise
            if not primed:
                logger.debug(f"No event within {self._endpoint_timeout}s, posting to {connection.post_url}.")
        return connection
