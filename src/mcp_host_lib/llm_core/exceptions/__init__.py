"""Export the exception hierarchy used across transport, protocol and orchestration paths."""

from .exceptions import (
    MCPHostError,
    TransportError,
    TransportTimeoutError,
    NotConnectedError,
    ConnectionClosedError,
    HttpStatusError,
    ProtocolError,
    MalformedMessageError,
    DiscoveryFailedError,
    JsonRpcRemoteError,
    OrchestrationError,
    ToolNotFoundError,
    InvalidToolArgumentsError,
    EmptyModelResponseError,
    LoopLimitExceededError,
    ToolExecutionError,
    ConversationNotFoundError,
)

__all__ = [
    "MCPHostError",
    "TransportError",
    "TransportTimeoutError",
    "NotConnectedError",
    "ConnectionClosedError",
    "HttpStatusError",
    "ProtocolError",
    "MalformedMessageError",
    "DiscoveryFailedError",
    "JsonRpcRemoteError",
    "OrchestrationError",
    "ToolNotFoundError",
    "InvalidToolArgumentsError",
    "EmptyModelResponseError",
    "LoopLimitExceededError",
    "ToolExecutionError",
    "ConversationNotFoundError",
]
