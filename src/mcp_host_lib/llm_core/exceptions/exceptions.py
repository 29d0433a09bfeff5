"""
Custom exception classes for the MCP host library.

This module defines the hierarchy of exceptions raised by the transport layer,
the JSON-RPC protocol handling, and the tool-call orchestration engine.
"""

from typing import Any, Optional


class MCPHostError(Exception):
    """Base exception for all errors raised by the library."""

    pass


# --- Transport -----------------------------------------------------------------


class TransportError(MCPHostError):
    """Base class for transient transport failures."""

    pass


class TransportTimeoutError(TransportError):
    """Raised when no handshake completes within the open deadline."""

    pass


class NotConnectedError(TransportError):
    """Raised when sending on a channel that is not open. Messages are never queued."""

    pass


class ConnectionClosedError(TransportError):
    """Raised for pending requests when the channel is closed before a response arrives."""

    pass


class HttpStatusError(TransportError):
    """Raised when the server answers an outgoing message with an HTTP error status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(f"HTTP error {status_code}" + (f": {message}" if message else ""))


# --- Protocol ------------------------------------------------------------------


class ProtocolError(MCPHostError):
    """Base class for JSON-RPC and MCP protocol errors."""

    pass


class MalformedMessageError(ProtocolError):
    """Raised when an inbound payload is not a valid JSON-RPC 2.0 message."""

    pass


class DiscoveryFailedError(ProtocolError):
    """Raised when a provider's tool list cannot be fetched in time."""

    pass


class JsonRpcRemoteError(ProtocolError):
    """An error response returned by the remote peer for one of our requests."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"JSON-RPC error {code}: {message}")


# --- Orchestration -------------------------------------------------------------


class OrchestrationError(MCPHostError):
    """Base class for errors raised while driving the query/tool loop."""

    pass


class ToolNotFoundError(OrchestrationError):
    """Raised when a directive names a tool that no registered provider hosts."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' not found in any connected server.")


class InvalidToolArgumentsError(OrchestrationError):
    """Raised when directive arguments are not a JSON object."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid arguments for tool '{name}': {reason}")


class EmptyModelResponseError(OrchestrationError):
    """Raised when the language model returns no content."""

    pass


class LoopLimitExceededError(OrchestrationError):
    """Raised when the model keeps requesting tools beyond the round bound."""

    def __init__(self, rounds: int, max_rounds: int) -> None:
        self.rounds = rounds
        self.max_rounds = max_rounds
        super().__init__(f"Tool-call loop exceeded {max_rounds} rounds without a final answer.")


# --- Tools & conversations -----------------------------------------------------


class ToolExecutionError(MCPHostError):
    """Raised when a tool fails during execution."""

    pass


class ConversationNotFoundError(MCPHostError):
    """Raised when a conversation id is unknown to the store."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation with ID {conversation_id} not found.")
