"""Answers ``sampling/createMessage`` requests with a local language model."""

from typing import Any, Dict, List, Optional

from mcp.types import CreateMessageRequestParams
from pydantic import ValidationError

from ..llm_core.engine.ports import LanguageModelPort
from ..llm_core.exceptions import JsonRpcRemoteError
from ..llm_core.logger import get_logger
from ..llm_core.messages import AssistantMessage, Message, SystemMessage, UserMessage
from .messages import INTERNAL_ERROR, INVALID_PARAMS

logger = get_logger(__name__)


class SamplingHandler:
    """
    Lets a server borrow the host's language model.

    The request's system prompt and text messages become the model context;
    non-text content is skipped. The answer is returned as a single assistant
    text message.
    """

    def __init__(self, model: LanguageModelPort, model_name: str = "mcp-host") -> None:
        """
        Args:
            model: The model answering sampling requests.
            model_name: Reported in the ``model`` field of the result.
        """
        self._model = model
        self._model_name = model_name

    async def __call__(self, params: Optional[Any]) -> Dict[str, Any]:
        try:
            request = CreateMessageRequestParams.model_validate(params or {})
        except ValidationError as exc:
            raise JsonRpcRemoteError(INVALID_PARAMS, f"Invalid sampling request: {exc}") from exc

        context = self._build_context(request)
        logger.info(f"Sampling request with {len(context)} message(s).")

        text = await self._model.complete(context, [])
        if not text:
            raise JsonRpcRemoteError(INTERNAL_ERROR, "Language model returned an empty response.")

        return {
            "role": "assistant",
            "content": {"type": "text", "text": text},
            "model": self._model_name,
            "stopReason": "endTurn",
        }

    @staticmethod
    def _build_context(request: CreateMessageRequestParams) -> List[Message]:
        context: List[Message] = []
        if request.systemPrompt:
            context.append(SystemMessage(text=request.systemPrompt))

        for message in request.messages:
            blocks = message.content if isinstance(message.content, list) else [message.content]
            for block in blocks:
                if getattr(block, "type", None) != "text":
                    logger.debug(f"Skipping non-text sampling content: {getattr(block, 'type', None)}")
                    continue
                if message.role == "assistant":
                    context.append(AssistantMessage(text=block.text))
                else:
                    context.append(UserMessage(text=block.text))
        return context
