from google.genai import types
from typing import List, Optional, Sequence, Tuple

from google.genai.client import AsyncClient
from google.genai.types import GenerateContentResponse
from mcp_host_lib.llm_core import GenericLLM, ToolCallingStyle, get_logger
from mcp_host_lib.llm_core.engine import render_tool_result
from mcp_host_lib.llm_core.messages import Message, Role
from mcp_host_lib.llm_core.tools import ToolDescriptor

logger = get_logger(__name__)


class GenericGemini(GenericLLM):
    """
    Implementation of GenericLLM for Google's Gemini models.

    Tools are described in the prompt and called through directives, so the
    tool descriptors passed to ``complete`` are not forwarded to the API.
    """

    tool_calling_style = ToolCallingStyle.PROMPT

    def __init__(
        self,
        aclient: AsyncClient,
        model_name: str,
        sys_instruction: Optional[str] = None,
        temp: float = 1.0,
        max_tokens: int = 3000,
        max_retries: int = 3,
        base_retry_delay: float = 1.0,
    ):
        """
        Initializes the GenericGemini LLM wrapper.

        Args:
            aclient: The initialized Google GenAI client.
            model_name: The identifier for the Gemini model to use (e.g., 'gemini-2.5-flash').
            sys_instruction: A system-level instruction placed before any system messages of the context.
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

        self.client: AsyncClient = aclient
        logger.info(f"Initialized GenericGemini with model='{model_name}', temp={temp}, max_tokens={max_tokens}")

    async def _complete_impl(self, context: Sequence[Message], tool_descriptors: Sequence[ToolDescriptor]) -> Optional[str]:
        system_instruction, contents = self._convert_context(context)
        if self.sys_instruction:
            system_instruction = "\n\n".join(filter(None, [self.sys_instruction, system_instruction]))

        config = types.GenerateContentConfig(
            system_instruction=system_instruction or None,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
        )

        logger.debug(f"Sending request to Gemini model '{self.model}' ({len(contents)} contents).")
        response = await self.client.models.generate_content(model=self.model, contents=contents, config=config)
        return self._extract_text(response)

    @staticmethod
    def _convert_context(context: Sequence[Message]) -> Tuple[str, List[types.Content]]:
        """
        Converts messages to Gemini Content objects.

        Gemini has no system or tool role in its contents: system messages are
        merged into the system instruction and tool results are sent as user turns.

        Args:
            context: Messages, oldest first.

        Returns:
            The merged system instruction and the list of Gemini Content objects.
        """
        system_parts = []
        contents = []
        for msg in context:
            if msg.role is Role.SYSTEM:
                system_parts.append(msg.text)
            elif msg.role is Role.USER:
                contents.append(types.Content(role="user", parts=[types.Part(text=msg.text)]))
            elif msg.role is Role.ASSISTANT:
                contents.append(types.Content(role="model", parts=[types.Part(text=msg.text)]))
            elif msg.role is Role.TOOL:
                contents.append(types.Content(role="user", parts=[types.Part(text=render_tool_result(msg))]))
        return "\n\n".join(system_parts), contents

    @staticmethod
    def _extract_text(response: GenerateContentResponse) -> Optional[str]:
        if not response.candidates:
            logger.warning("Gemini response has no candidates.")
            return None
        parts = response.candidates[0].content.parts if response.candidates[0].content else None
        text = "".join([p.text for p in parts if p.text]) if parts else ""
        return text or None
