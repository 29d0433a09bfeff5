"""Expose provider-agnostic message model types shared by the engine and the model adapters."""

from .models import Role, Message, SystemMessage, UserMessage, AssistantMessage, ToolMessage, Conversation

__all__ = [
    "Role",
    "Message",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "Conversation",
]
