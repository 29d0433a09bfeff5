"""Core abstractions for language model adapters."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Coroutine, Optional, Sequence, TypeVar

from ..engine.ports import ToolCallingStyle
from ..logger import get_logger
from ..messages import Message
from ..tools import ToolDescriptor

logger = get_logger(__name__)

ResultT = TypeVar("ResultT")


class GenericLLM(ABC):
    """Abstract base class for LanguageModelPort implementations.

    Subclasses implement ``_complete_impl``; ``complete`` wraps it with retries
    and exponential backoff.
    """

    tool_calling_style: ToolCallingStyle = ToolCallingStyle.PROMPT

    def __init__(self, max_retries: int = 3, base_retry_delay: float = 1.0):
        self.max_retries = max_retries
        self.base_retry_delay = base_retry_delay

    async def _execute_with_retry(
        self,
        func: Callable[..., Coroutine[Any, Any, ResultT]],
        *args: Any,
        **kwargs: Any,
    ) -> ResultT:
        """
        Executes a function with retry logic.

        Args:
            func: The asynchronous function to execute.
            *args: Positional arguments for the function.
            **kwargs: Keyword arguments for the function.

        Returns:
            The result of the function call.

        Raises:
            Exception: The last encountered exception if all retries fail.
        """
        delay = self.base_retry_delay
        for attempt in range(self.max_retries + 1):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if attempt == self.max_retries:
                    logger.error(f"API Error after {self.max_retries} retries: {e}")
                    raise

                logger.warning(f"API Error (Retry: {attempt + 1}/{self.max_retries}): {e}. Waiting {delay}s...")
                await asyncio.sleep(delay)
                delay *= 2  # Exponential backoff

        msg = f"Failed to get response after {self.max_retries} retries."
        logger.error(msg)
        raise TimeoutError(msg)

    async def complete(self, context: Sequence[Message], tool_descriptors: Sequence[ToolDescriptor]) -> Optional[str]:
        """
        Produces the next assistant response for an ordered context.

        Args:
            context: The conversation so far, oldest first.
            tool_descriptors: Tools the model may call.

        Returns:
            The response text, or None if the provider returned nothing.
        """
        return await self._execute_with_retry(self._complete_impl, list(context), list(tool_descriptors))

    @abstractmethod
    async def _complete_impl(self, context: Sequence[Message], tool_descriptors: Sequence[ToolDescriptor]) -> Optional[str]:
        pass
