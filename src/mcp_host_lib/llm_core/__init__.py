"""Public exports for the core abstractions: messages, tools, conversations and the engine."""

from .logger import get_logger, setup_logging
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
from .messages import (
    Role,
    Message,
    SystemMessage,
    UserMessage,
    AssistantMessage,
    ToolMessage,
    Conversation,
)
from .tools import (
    ToolDescriptor,
    ToolInvocation,
    ToolExecutionPort,
    ToolProvider,
    ToolRegistry,
    Directive,
    DirectivePolicy,
    DIRECTIVE_PREFIX,
    parse_directives,
    format_directive,
    SchemaValidator,
)
from .conversation import ConversationStore
from .engine import (
    OrchestrationEngine,
    OrchestrationState,
    LanguageModelPort,
    ToolCallingStyle,
    DEFAULT_SYSTEM_PROMPT,
    build_tools_prompt,
)
from .base import GenericLLM
from .config import HostSettings

__all__ = [
    "get_logger",
    "setup_logging",
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
    "Role",
    "Message",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "Conversation",
    "ToolDescriptor",
    "ToolInvocation",
    "ToolExecutionPort",
    "ToolProvider",
    "ToolRegistry",
    "Directive",
    "DirectivePolicy",
    "DIRECTIVE_PREFIX",
    "parse_directives",
    "format_directive",
    "SchemaValidator",
    "ConversationStore",
    "OrchestrationEngine",
    "OrchestrationState",
    "LanguageModelPort",
    "ToolCallingStyle",
    "DEFAULT_SYSTEM_PROMPT",
    "build_tools_prompt",
    "GenericLLM",
    "HostSettings",
]
