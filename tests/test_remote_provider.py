import json

import pytest

from fakes import FakeConnection, FakeConnector, FakeServer, ScriptedModel, eventually
from mcp_host_lib.llm_core import ProtocolError, ToolExecutionError
from mcp_host_lib.transport import MessageRouter, RemoteToolProvider, SamplingHandler, TransportChannel

INITIALIZE_RESULT = {
    "protocolVersion": "2024-11-05",
    "capabilities": {"tools": {}},
    "serverInfo": {"name": "weather-server", "version": "1.0"},
}

WEATHER_TOOL = {
    "name": "get-weather",
    "description": "Current weather",
    "inputSchema": {"type": "object", "properties": {"city": {"type": "string"}}, "required": ["city"]},
}


async def connect_provider(results, sampling_handler=None):
    connection = FakeConnection()
    server = FakeServer(connection, {"initialize": INITIALIZE_RESULT, **results})
    channel = TransportChannel(FakeConnector([connection]), open_timeout=1.0, reconnect_interval=0.05, name="weather")
    provider = RemoteToolProvider(MessageRouter(channel, request_timeout=1.0), sampling_handler=sampling_handler)
    await provider.connect()
    return provider, server


@pytest.mark.asyncio
async def test_connect_performs_handshake():
    provider, server = await connect_provider({})

    assert server.methods() == ["initialize", "notifications/initialized"]
    params = server.received[0].params
    assert params["protocolVersion"] == "2024-11-05"
    assert params["clientInfo"] == {"name": "mcp-host-lib", "version": "0.1.0"}
    assert params["capabilities"] == {}
    assert provider.server_info["name"] == "weather-server"
    assert provider.server_capabilities == {"tools": {}}
    assert provider.provider_id == "weather"
    await provider.close()


@pytest.mark.asyncio
async def test_sampling_capability_is_advertised_with_handler():
    provider, server = await connect_provider({}, sampling_handler=SamplingHandler(ScriptedModel([])))

    assert server.received[0].params["capabilities"] == {"sampling": {}}
    await provider.close()


@pytest.mark.asyncio
async def test_initialize_rejects_non_object_result():
    connection = FakeConnection()
    FakeServer(connection, {"initialize": "nope"})
    channel = TransportChannel(FakeConnector([connection]), open_timeout=1.0)
    provider = RemoteToolProvider(MessageRouter(channel, request_timeout=1.0))

    with pytest.raises(ProtocolError, match="Unexpected initialize result"):
        await provider.connect()
    await provider.close()


@pytest.mark.asyncio
async def test_list_tools_follows_pagination():
    pages = {
        None: {"tools": [WEATHER_TOOL], "nextCursor": "page-2"},
        "page-2": {"tools": [{"name": "get-forecast", "inputSchema": {"type": "object"}}]},
    }
    provider, server = await connect_provider({"tools/list": lambda params: pages[(params or {}).get("cursor")]})

    descriptors = await provider.list_tools()

    assert [d.name for d in descriptors] == ["get-weather", "get-forecast"]
    assert descriptors[0].input_schema["required"] == ["city"]
    assert descriptors[1].description == ""
    assert server.methods().count("tools/list") == 2
    await provider.close()


@pytest.mark.asyncio
async def test_list_tools_rejects_invalid_page():
    provider, _ = await connect_provider({"tools/list": {"tools": "not-a-list"}})

    with pytest.raises(ProtocolError, match="Invalid tools/list result"):
        await provider.list_tools()
    await provider.close()


@pytest.mark.asyncio
async def test_call_returns_text_content(weather_result):
    provider, server = await connect_provider(
        {"tools/call": {"content": [{"type": "text", "text": weather_result}], "isError": False}}
    )

    result = await provider.call("get-weather", {"city": "Linz"})

    assert result == weather_result
    assert server.received[-1].params == {"name": "get-weather", "arguments": {"city": "Linz"}}
    await provider.close()


@pytest.mark.asyncio
async def test_call_flattens_mixed_content():
    content = [
        {"type": "text", "text": "Map attached"},
        {"type": "image", "data": "aGk=", "mimeType": "image/png"},
    ]
    provider, _ = await connect_provider({"tools/call": {"content": content}})

    assert await provider.call("map", {}) == "Map attached\n[Image: image/png]"
    await provider.close()


@pytest.mark.asyncio
async def test_call_error_result_raises():
    provider, _ = await connect_provider(
        {"tools/call": {"content": [{"type": "text", "text": "city unknown"}], "isError": True}}
    )

    with pytest.raises(ToolExecutionError, match="city unknown"):
        await provider.call("get-weather", {"city": "Atlantis"})
    await provider.close()


@pytest.mark.asyncio
async def test_ping_from_server_is_answered():
    provider, server = await connect_provider({})
    connection = server.connection

    connection.push({"jsonrpc": "2.0", "id": "srv-ping", "method": "ping"})

    await eventually(lambda: any(json.loads(p).get("id") == "srv-ping" for p, _ in connection.sent))
    reply = [json.loads(p) for p, _ in connection.sent if json.loads(p).get("id") == "srv-ping"][0]
    assert reply["result"] == {}
    await provider.close()
