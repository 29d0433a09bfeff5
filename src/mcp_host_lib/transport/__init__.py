"""JSON-RPC transport: wire model, reconnecting channel, HTTP/SSE connection and router."""

from .messages import (
    JsonRpcMessage,
    JsonRpcErrorObject,
    JSONRPC_VERSION,
    PARSE_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    INTERNAL_ERROR,
)
from .channel import TransportChannel, ChannelState, Connection, Connector
from .http_sse import HttpSseConnector, HttpSseConnection, SESSION_HEADER
from .router import MessageRouter
from .sampling import SamplingHandler
from .provider import RemoteToolProvider, PROTOCOL_VERSION

__all__ = [
    "JsonRpcMessage",
    "JsonRpcErrorObject",
    "JSONRPC_VERSION",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "TransportChannel",
    "ChannelState",
    "Connection",
    "Connector",
    "HttpSseConnector",
    "HttpSseConnection",
    "SESSION_HEADER",
    "MessageRouter",
    "SamplingHandler",
    "RemoteToolProvider",
    "PROTOCOL_VERSION",
]
