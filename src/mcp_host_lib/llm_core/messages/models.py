"""Provider-agnostic message and conversation models."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Author of a message in the conversation log."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


class Message(BaseModel):
    """A single entry of a conversation.

    Messages are immutable once created; the order in which they are appended
    defines the context handed to the language model.

    Attributes:
        role: Role associated with the message.
        text: Text payload of the message.
        name: Tool name, set for tool-role messages.
        is_error: Whether a tool-role message reports a failure instead of a result.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str
    name: Optional[str] = None
    is_error: bool = False


class SystemMessage(Message):
    """Message authored by the system to steer behavior."""

    role: Role = Role.SYSTEM


class UserMessage(Message):
    """Message authored by an end user."""

    role: Role = Role.USER


class AssistantMessage(Message):
    """Message authored by the assistant, possibly containing tool-call directives."""

    role: Role = Role.ASSISTANT


class ToolMessage(Message):
    """Result (or error) of a tool invocation."""

    role: Role = Role.TOOL
    name: str


class Conversation(BaseModel):
    """An ordered message log.

    Attributes:
        id: Identifier of the conversation.
        created_at: Creation timestamp (UTC).
        messages: Messages in append order.
    """

    id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    messages: List[Message] = Field(default_factory=list)
