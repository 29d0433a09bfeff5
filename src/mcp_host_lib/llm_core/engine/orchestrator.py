"""Bounded query -> model -> tool -> model loop."""

from __future__ import annotations

import asyncio
import json
import uuid
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..conversation import ConversationStore
from ..exceptions import (
    EmptyModelResponseError,
    InvalidToolArgumentsError,
    LoopLimitExceededError,
    ProtocolError,
    ToolExecutionError,
    ToolNotFoundError,
    TransportError,
)
from ..logger import get_logger
from ..messages import AssistantMessage, Message, SystemMessage, ToolMessage, UserMessage
from ..tools import Directive, DirectivePolicy, ToolDescriptor, ToolInvocation, ToolRegistry, parse_directives
from .ports import LanguageModelPort, ToolCallingStyle
from .prompts import build_tools_prompt

logger = get_logger(__name__)


class OrchestrationState(str, Enum):
    """Lifecycle of one ``process_query`` call."""

    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    AWAITING_TOOL = "awaiting_tool"
    DONE = "done"
    FAILED = "failed"


class OrchestrationEngine:
    """Drives a conversation through model calls and tool calls until a final answer exists.

    Every round calls the model once and then executes the directives found in
    its response, one after another. Problems the model can fix itself
    (unknown tool, malformed arguments, failing tool) are reported back to it
    as tool-role messages. An empty model response or too many rounds end the
    query with an :class:`OrchestrationError`.

    A round's messages are committed to the conversation only once the round
    is complete, so a failing round leaves the history untouched.
    """

    # Expected tool failures, returned to the model without a traceback.
    # Any other exception raised by a tool is logged with its traceback and returned as well.
    RECOVERABLE_ERRORS = (
        ToolExecutionError,
        TransportError,
        ProtocolError,
        asyncio.TimeoutError,
        ConnectionError,
        RuntimeError,
        ValueError,
        TypeError,
        KeyError,
    )

    def __init__(
        self,
        *,
        model: LanguageModelPort,
        registry: ToolRegistry,
        store: ConversationStore,
        max_rounds: int = 5,
        tool_timeout: float = 180.0,
        directive_policy: DirectivePolicy = DirectivePolicy.STRICT,
        on_state_change: Optional[Callable[[str, OrchestrationState], None]] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            model: The language model backend.
            registry: Registry resolving tool names to providers.
            store: Conversation storage.
            max_rounds: Maximum number of tool rounds before giving up.
            tool_timeout: Timeout in seconds for a single tool execution.
            directive_policy: Whether bare ``name:{...}`` directives are accepted.
            on_state_change: Optional observer called with ``(conversation_id, state)``.
        """
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1.")
        self._model = model
        self._registry = registry
        self._store = store
        self._max_rounds = max_rounds
        self._tool_timeout = tool_timeout
        self._directive_policy = directive_policy
        self._on_state_change = on_state_change

    @property
    def max_rounds(self) -> int:
        return self._max_rounds

    async def process_query(self, conversation_id: str, query: str) -> str:
        """Answer ``query`` within the given conversation.

        The conversation is created if it does not exist. Concurrent calls for
        the same conversation are serialized.

        Args:
            conversation_id: Conversation to work in.
            query: The user's message.

        Returns:
            The model's final answer.

        Raises:
            EmptyModelResponseError: If the model returns no content.
            LoopLimitExceededError: If the model still requests tools after ``max_rounds`` rounds.
        """
        async with self._store.lock(conversation_id):
            self._store.get_or_create(conversation_id)
            self._transition(conversation_id, OrchestrationState.IDLE)
            try:
                return await self._run(conversation_id, query)
            except BaseException:
                self._transition(conversation_id, OrchestrationState.FAILED)
                raise

    async def _run(self, conversation_id: str, query: str) -> str:
        staged: List[Message] = [UserMessage(text=query)]
        rounds = 0

        while True:
            self._transition(conversation_id, OrchestrationState.AWAITING_MODEL)
            descriptors = self._registry.all_descriptors()
            context = self._build_context(self._store.messages(conversation_id) + staged, descriptors)

            response_text = await self._model.complete(context, descriptors)
            if not response_text or not response_text.strip():
                msg = "Language model returned an empty response."
                logger.error(msg)
                raise EmptyModelResponseError(msg)

            staged.append(AssistantMessage(text=response_text))
            directives = parse_directives(
                response_text,
                policy=self._directive_policy,
                known_names=self._registry.tool_names(),
            )

            if not directives:
                logger.debug("No directives found in response. Loop finished after %d round(s).", rounds)
                self._store.extend(conversation_id, staged)
                self._transition(conversation_id, OrchestrationState.DONE)
                return response_text

            logger.info(f"Round {rounds + 1}/{self._max_rounds}: Processing {len(directives)} tool call(s).")
            self._transition(conversation_id, OrchestrationState.AWAITING_TOOL)
            for directive in directives:
                staged.append(await self._handle_directive(directive))

            self._store.extend(conversation_id, staged)
            staged = []

            rounds += 1
            if rounds > self._max_rounds:
                logger.warning(f"Max tool rounds ({self._max_rounds}) exceeded. Stopping execution.")
                raise LoopLimitExceededError(rounds, self._max_rounds)

    def _build_context(self, history: List[Message], descriptors: Sequence[ToolDescriptor]) -> List[Message]:
        if self._model.tool_calling_style is ToolCallingStyle.NATIVE:
            return history
        tools_prompt = build_tools_prompt(descriptors)
        if not tools_prompt:
            return history
        return [SystemMessage(text=tools_prompt)] + history

    async def _handle_directive(self, directive: Directive) -> ToolMessage:
        """Execute one directive and describe the outcome as a tool-role message.

        Never raises for problems the model can correct; those become error messages.
        """
        logger.debug(f"Handling directive: {directive.name} ({directive.raw_arguments!r})")

        provider = self._registry.resolve(directive.name)
        if provider is None:
            return self._error_message(directive.name, ToolNotFoundError(directive.name))

        try:
            arguments = self._decode_arguments(directive)
        except InvalidToolArgumentsError as exc:
            return self._error_message(directive.name, exc)

        invocation = ToolInvocation(name=directive.name, arguments=arguments, correlation_id=uuid.uuid4().hex)

        try:
            logger.info(f"Executing tool '{invocation.name}' on '{provider.provider_id}'...")
            result = await asyncio.wait_for(
                provider.call(invocation.name, invocation.arguments),
                timeout=self._tool_timeout,
            )
            logger.info(f"Tool '{invocation.name}' executed successfully.")
        except asyncio.TimeoutError:
            msg = f"Tool execution timed out after {self._tool_timeout} seconds."
            return self._error_message(invocation.name, ToolExecutionError(msg))
        except self.RECOVERABLE_ERRORS as exc:
            return self._error_message(invocation.name, exc)
        except Exception as exc:
            logger.error(f"Tool '{invocation.name}' raised an unexpected error.", exc_info=True)
            return self._error_message(invocation.name, exc)

        return ToolMessage(name=invocation.name, text=str(result))

    @staticmethod
    def _decode_arguments(directive: Directive) -> Dict[str, Any]:
        """Decode directive arguments into a JSON object.

        Raises:
            InvalidToolArgumentsError: If the span is missing, not JSON, or not an object.
        """
        if not directive.raw_arguments.strip():
            raise InvalidToolArgumentsError(directive.name, "missing JSON object arguments")

        try:
            parsed = json.loads(directive.raw_arguments)
        except json.JSONDecodeError as exc:
            raise InvalidToolArgumentsError(directive.name, f"malformed JSON ({exc})") from exc

        if not isinstance(parsed, dict):
            raise InvalidToolArgumentsError(directive.name, "arguments must decode to a JSON object")
        return parsed

    @staticmethod
    def _error_message(tool_name: str, error: Exception) -> ToolMessage:
        logger.warning(f"Tool call '{tool_name}' failed: {error} ({type(error).__name__})")
        payload = {"error": f"Failed to call tool '{tool_name}': {error}"}
        return ToolMessage(name=tool_name, text=json.dumps(payload), is_error=True)

    def _transition(self, conversation_id: str, state: OrchestrationState) -> None:
        logger.debug("Conversation '%s' -> %s", conversation_id, state.value)
        if self._on_state_change is not None:
            self._on_state_change(conversation_id, state)
