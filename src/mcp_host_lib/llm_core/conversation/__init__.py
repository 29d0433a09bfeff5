"""Conversation storage."""

from .store import ConversationStore

__all__ = ["ConversationStore"]
