import asyncio
import json
from typing import List

import httpx
import pytest

from mcp_host_lib.llm_core import HttpStatusError, TransportError
from mcp_host_lib.transport import SESSION_HEADER, HttpSseConnector

SERVER = "http://mcp.test/sse"


def endless(*chunks: bytes):
    """An event stream body that stays open after sending ``chunks``."""

    async def body():
        for chunk in chunks:
            yield chunk
        await asyncio.Event().wait()

    return body()


def make_client(requests: List[httpx.Request], post_handler=None, stream=None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "GET":
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream", SESSION_HEADER: "sess-1"},
                content=stream if stream is not None else endless(b"event: endpoint\ndata: /messages\n\n"),
            )
        if post_handler is not None:
            return post_handler(request)
        return httpx.Response(202)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_connect_reads_endpoint_and_session():
    requests: List[httpx.Request] = []
    async with make_client(requests) as client:
        connection = await HttpSseConnector(SERVER, client=client, headers={"Authorization": "Bearer t"}).connect(None)

        assert connection.post_url == "http://mcp.test/messages"
        assert connection.session_id == "sess-1"
        assert requests[0].headers["accept"] == "text/event-stream"
        assert requests[0].headers["authorization"] == "Bearer t"
        assert SESSION_HEADER.lower() not in requests[0].headers
        await connection.close()


@pytest.mark.asyncio
async def test_connect_resumes_session():
    requests: List[httpx.Request] = []
    async with make_client(requests) as client:
        connection = await HttpSseConnector(SERVER, client=client).connect("old-session")

        assert requests[0].headers[SESSION_HEADER] == "old-session"
        await connection.close()


@pytest.mark.asyncio
async def test_stream_messages_are_yielded_until_stream_ends():
    requests: List[httpx.Request] = []
    stream = b'data: {"jsonrpc": "2.0", "method": "a"}\n\n: comment\n\ndata: {"jsonrpc": "2.0", "method": "b"}\n\n'
    async with make_client(requests, stream=stream) as client:
        connection = await HttpSseConnector(SERVER, client=client).connect(None)

        received = [json.loads(raw)["method"] async for raw in connection.messages()]

        assert received == ["a", "b"]
        await connection.close()


@pytest.mark.asyncio
async def test_send_posts_payload_and_feeds_json_reply():
    requests: List[httpx.Request] = []

    def on_post(request: httpx.Request) -> httpx.Response:
        reply = {"jsonrpc": "2.0", "id": 1, "result": {}}
        return httpx.Response(200, json=reply, headers={SESSION_HEADER: "sess-2"})

    async with make_client(requests, post_handler=on_post) as client:
        connection = await HttpSseConnector(SERVER, client=client).connect(None)

        issued = await connection.send('{"jsonrpc": "2.0", "id": 1, "method": "ping"}', "sess-1")
        inbound = connection.messages()
        first = await inbound.__anext__()

        post = requests[-1]
        assert post.method == "POST"
        assert str(post.url) == "http://mcp.test/messages"
        assert post.headers[SESSION_HEADER] == "sess-1"
        assert post.headers["content-type"] == "application/json"
        assert json.loads(post.content)["method"] == "ping"
        assert issued == "sess-2"
        assert json.loads(first)["id"] == 1
        await connection.close()


@pytest.mark.asyncio
async def test_send_splits_batch_and_sse_replies():
    requests: List[httpx.Request] = []
    replies = iter(
        [
            httpx.Response(200, json=[{"jsonrpc": "2.0", "id": 1, "result": 1}, {"jsonrpc": "2.0", "id": 2, "result": 2}]),
            httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=b'event: message\ndata: {"jsonrpc": "2.0", "id": 3, "result": 3}\n\n',
            ),
        ]
    )

    async with make_client(requests, post_handler=lambda request: next(replies)) as client:
        connection = await HttpSseConnector(SERVER, client=client).connect(None)
        await connection.send("{}", None)
        await connection.send("{}", None)

        inbound = connection.messages()
        ids = [json.loads(await inbound.__anext__())["id"] for _ in range(3)]

        assert ids == [1, 2, 3]
        await connection.close()


@pytest.mark.asyncio
async def test_send_raises_on_http_error_status():
    requests: List[httpx.Request] = []

    async with make_client(requests, post_handler=lambda request: httpx.Response(503, text="busy")) as client:
        connection = await HttpSseConnector(SERVER, client=client).connect(None)

        with pytest.raises(HttpStatusError) as excinfo:
            await connection.send("{}", None)

        assert excinfo.value.status_code == 503
        await connection.close()


@pytest.mark.asyncio
async def test_connect_rejected():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))

    with pytest.raises(HttpStatusError) as excinfo:
        await HttpSseConnector(SERVER, client=client).connect(None)

    assert excinfo.value.status_code == 404
    await client.aclose()


@pytest.mark.asyncio
async def test_connect_unreachable():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))

    with pytest.raises(TransportError, match="Failed to open event stream"):
        await HttpSseConnector(SERVER, client=client).connect(None)
    await client.aclose()


@pytest.mark.asyncio
async def test_close_is_idempotent():
    requests: List[httpx.Request] = []
    async with make_client(requests) as client:
        connection = await HttpSseConnector(SERVER, client=client).connect(None)

        await connection.close()
        await connection.close()

        assert [raw async for raw in connection.messages()] == []


@pytest.mark.asyncio
async def test_first_post_waits_for_delayed_endpoint_event():
    requests: List[httpx.Request] = []

    async def delayed_endpoint():
        await asyncio.sleep(0.05)
        yield b"event: endpoint\ndata: /messages?session=abc\n\n"
        await asyncio.Event().wait()

    async with make_client(requests, stream=delayed_endpoint()) as client:
        connection = await HttpSseConnector(SERVER, client=client).connect(None)
        await connection.send('{"jsonrpc": "2.0", "id": 1, "method": "initialize"}', None)

        assert [str(request.url) for request in requests if request.method == "POST"] == [
            "http://mcp.test/messages?session=abc"
        ]
        await connection.close()


@pytest.mark.asyncio
async def test_silent_stream_keeps_stream_url_after_endpoint_timeout():
    requests: List[httpx.Request] = []
    async with make_client(requests, stream=endless()) as client:
        connector = HttpSseConnector(SERVER, client=client, endpoint_timeout=0.05)

        connection = await connector.connect(None)

        assert connection.post_url == SERVER
        await connection.close()
