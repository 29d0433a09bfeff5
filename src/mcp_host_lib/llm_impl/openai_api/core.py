from typing import Any, Dict, Iterable, List, Optional, Sequence, cast

from openai import AsyncOpenAI

from mcp_host_lib.llm_core import GenericLLM, ToolCallingStyle, get_logger
from mcp_host_lib.llm_core.messages import Message, Role
from mcp_host_lib.llm_core.tools import ToolDescriptor
from .adapter import OpenAIToolAdapter

logger = get_logger(__name__)


class GenericOpenAI(GenericLLM):
    """
    Implementation of GenericLLM for OpenAI's models.

    Uses native function calling; the calls the model makes are handed to the
    orchestration engine as directives.
    """

    tool_calling_style = ToolCallingStyle.NATIVE

    def __init__(
        self,
        client: AsyncOpenAI,
        model_name: str,
        sys_instruction: Optional[str] = None,
        temp: float = 1.0,
        max_tokens: int = 3000,
        max_retries: int = 3,
        base_retry_delay: float = 1.0,
    ):
        """
        Initializes the GenericOpenAI LLM wrapper.

        Args:
            client: The initialized AsyncOpenAI client.
            model_name: The identifier for the OpenAI model to use (e.g., 'gpt-4o-mini').
            sys_instruction: A system-level instruction used when the context carries none.
            temp: The temperature for text generation, controlling randomness.
            max_tokens: The maximum number of tokens to generate in the response.
            max_retries: Retries for failed API calls.
            base_retry_delay: Initial backoff delay in seconds.
        """
        super().__init__(max_retries=max_retries, base_retry_delay=base_retry_delay)
        self.model: str = model_name
        self.sys_instruction = sys_instruction
        self.temperature = temp
        self.max_tokens = max_tokens

        self.client: AsyncOpenAI = client

    async def _complete_impl(self, context: Sequence[Message], tool_descriptors: Sequence[ToolDescriptor]) -> Optional[str]:
        messages = OpenAIToolAdapter.convert_context(context)
        if self.sys_instruction and not any(msg.role is Role.SYSTEM for msg in context):
            messages.insert(0, {"role": "system", "content": self.sys_instruction})

        request: Dict[str, Any] = {
            "model": self.model,
            # The SDK expects a union of typed message params; plain dicts are structurally compatible.
            "messages": cast(Iterable[Any], messages),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        tools: List[Any] = list(OpenAIToolAdapter.build_tools(tool_descriptors))
        if tools:
            request["tools"] = tools

        logger.debug(f"Sending request to OpenAI model '{self.model}' ({len(messages)} messages, {len(tools)} tools).")
        response = await self.client.chat.completions.create(**request)
        return OpenAIToolAdapter.render_response(response)
