"""In-memory conversation logs keyed by conversation id."""

import asyncio
import uuid
from typing import Dict, Iterable, List, Optional

from ..exceptions import ConversationNotFoundError
from ..logger import get_logger
from ..messages import Conversation, Message, SystemMessage

logger = get_logger(__name__)


class ConversationStore:
    """
    Holds ordered, append-only message logs keyed by conversation id.

    Conversations are created on demand and never deleted. Callers get
    snapshots; the only way to change a log is ``append``/``extend``. Each id
    also owns an ``asyncio.Lock`` so that one query at a time works on a given
    conversation.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._conversations: Dict[str, Conversation] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def create(self, conversation_id: Optional[str] = None, system_prompt: Optional[str] = None) -> Conversation:
        """Create a new conversation.

        Args:
            conversation_id: Identifier to use. A random one is generated if omitted.
            system_prompt: Optional system message that opens the conversation.

        Returns:
            A snapshot of the new conversation.

        Raises:
            ValueError: If a conversation with this id already exists.
        """
        conversation_id = conversation_id or uuid.uuid4().hex
        if conversation_id in self._conversations:
            raise ValueError(f"Conversation with ID {conversation_id} already exists.")

        conversation = Conversation(id=conversation_id)
        if system_prompt:
            conversation.messages.append(SystemMessage(text=system_prompt))
        self._conversations[conversation_id] = conversation
        logger.info("New conversation started: '%s'.", conversation_id)
        return self._snapshot(conversation)

    def get(self, conversation_id: str) -> Conversation:
        """Return a snapshot of a conversation.

        Raises:
            ConversationNotFoundError: If the id is unknown.
        """
        return self._snapshot(self._require(conversation_id))

    def get_or_create(self, conversation_id: str) -> Conversation:
        """Return the conversation, creating an empty one if it does not exist yet."""
        if conversation_id not in self._conversations:
            return self.create(conversation_id)
        return self.get(conversation_id)

    def messages(self, conversation_id: str) -> List[Message]:
        """Return a copy of the ordered message log."""
        return list(self._require(conversation_id).messages)

    def append(self, conversation_id: str, message: Message) -> None:
        """Append a single message to a conversation."""
        self._require(conversation_id).messages.append(message)

    def extend(self, conversation_id: str, messages: Iterable[Message]) -> None:
        """Append several messages in order, all at once."""
        batch = list(messages)
        self._require(conversation_id).messages.extend(batch)
        logger.debug("Appended %d message(s) to conversation '%s'.", len(batch), conversation_id)

    def lock(self, conversation_id: str) -> asyncio.Lock:
        """Return the lock serializing work on one conversation."""
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        return lock

    def ids(self) -> List[str]:
        """Return all conversation ids in creation order."""
        return list(self._conversations)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    def __len__(self) -> int:
        return len(self._conversations)

    def _require(self, conversation_id: str) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    @staticmethod
    def _snapshot(conversation: Conversation) -> Conversation:
        return conversation.model_copy(update={"messages": list(conversation.messages)})
