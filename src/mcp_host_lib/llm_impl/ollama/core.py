from typing import Any, Dict, Optional, Sequence

import httpx

from mcp_host_lib.llm_core import GenericLLM, ToolCallingStyle, get_logger
from mcp_host_lib.llm_core.messages import Message
from mcp_host_lib.llm_core.tools import ToolDescriptor

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:11434"


class OllamaRequestError(RuntimeError):
    """Raised when the Ollama server answers with an error status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        super().__init__(f"Ollama request failed with status {status_code}: {body}")


class GenericOllama(GenericLLM):
    """
    Implementation of GenericLLM for a local Ollama server.

    The context is flattened into a single ``role: text`` prompt and sent to
    ``/api/generate`` without streaming.
    """

    tool_calling_style = ToolCallingStyle.PROMPT

    def __init__(
        self,
        model_name: str = "llama3.1:8b",
        base_url: str = DEFAULT_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        max_tokens: int = 1000,
        timeout: float = 120.0,
        max_retries: int = 3,
        base_retry_delay: float = 1.0,
    ):
        """
        Initializes the GenericOllama LLM wrapper.

        Args:
            model_name: Name of an installed Ollama model.
            base_url: Root URL of the Ollama server.
            client: Shared HTTP client. When omitted, one is created per request.
            max_tokens: Maximum number of tokens to generate.
            timeout: Request timeout in seconds.
            max_retries: Retries for failed requests.
            base_retry_delay: Initial backoff delay in seconds.
        """
        super().__init__(max_retries=max_retries, base_retry_delay=base_retry_delay)
        self.model = model_name
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = client

    @staticmethod
    def build_prompt(context: Sequence[Message]) -> str:
        return "".join(f"{msg.role.value}: {msg.text}\n" for msg in context)

    async def _complete_impl(self, context: Sequence[Message], tool_descriptors: Sequence[ToolDescriptor]) -> Optional[str]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": self.build_prompt(context),
            "stream": False,
            "options": {"num_predict": self.max_tokens},
        }
        url = f"{self.base_url}/api/generate"
        logger.debug(f"Sending request to Ollama model '{self.model}' at {url}.")

        if self._client is not None:
            resp = await self._client.post(url, json=payload, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload)

        if resp.status_code >= 400:
            raise OllamaRequestError(resp.status_code, resp.text)

        data = resp.json()
        return data.get("response") or data.get("text") or None
