"""MCP Host Library - drive a language model through tools served by MCP servers."""

from .llm_core import (
    GenericLLM,
    HostSettings,
    Message,
    UserMessage,
    AssistantMessage,
    SystemMessage,
    ToolMessage,
    Conversation,
    ConversationStore,
    ToolDescriptor,
    ToolRegistry,
    DirectivePolicy,
    parse_directives,
    OrchestrationEngine,
    LanguageModelPort,
    ToolCallingStyle,
    MCPHostError,
    setup_logging,
)
from .transport import TransportChannel, ChannelState, HttpSseConnector, MessageRouter, RemoteToolProvider
from .host import MCPHost

__all__ = [
    "GenericLLM",
    "HostSettings",
    "Message",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "ToolMessage",
    "Conversation",
    "ConversationStore",
    "ToolDescriptor",
    "ToolRegistry",
    "DirectivePolicy",
    "parse_directives",
    "OrchestrationEngine",
    "LanguageModelPort",
    "ToolCallingStyle",
    "MCPHostError",
    "setup_logging",
    "TransportChannel",
    "ChannelState",
    "HttpSseConnector",
    "MessageRouter",
    "RemoteToolProvider",
    "MCPHost",
]
