import pytest
from unittest.mock import AsyncMock, patch
from typing import Optional, Sequence

from mcp_host_lib.llm_core.base import GenericLLM
from mcp_host_lib.llm_core.messages import Message, UserMessage
from mcp_host_lib.llm_core.tools import ToolDescriptor
from mcp_host_lib.llm_impl.gemini.core import GenericGemini
from mcp_host_lib.llm_impl.openai_api.core import GenericOpenAI

CONTEXT = [UserMessage(text="hello")]


# Mock implementation for testing GenericLLM base logic
class MockLLM(GenericLLM):
    def __init__(self, max_retries: int = 3, base_retry_delay: float = 0.1):
        super().__init__(max_retries=max_retries, base_retry_delay=base_retry_delay)
        self.complete_impl_mock = AsyncMock()

    async def _complete_impl(
        self, context: Sequence[Message], tool_descriptors: Sequence[ToolDescriptor]
    ) -> Optional[str]:
        return await self.complete_impl_mock(context, tool_descriptors)


@pytest.mark.asyncio
async def test_initialization():
    """Test initialization of GenericLLM."""
    llm = MockLLM(max_retries=5, base_retry_delay=2.0)
    assert llm.max_retries == 5
    assert llm.base_retry_delay == 2.0


@pytest.mark.asyncio
async def test_complete_happy_path():
    """Test that complete works correctly on the first attempt."""
    llm = MockLLM()
    llm.complete_impl_mock.return_value = "Success"

    result = await llm.complete(CONTEXT, [])
    assert result == "Success"
    assert llm.complete_impl_mock.call_count == 1
    assert llm.complete_impl_mock.call_args.args == (CONTEXT, [])


@pytest.mark.asyncio
async def test_complete_retry_success():
    """Test that complete retries and eventually succeeds."""
    llm = MockLLM(max_retries=3, base_retry_delay=0.01)

    # Fail twice, then succeed
    llm.complete_impl_mock.side_effect = [Exception("Fail 1"), Exception("Fail 2"), "Success"]

    result = await llm.complete(CONTEXT, [])
    assert result == "Success"
    assert llm.complete_impl_mock.call_count == 3


@pytest.mark.asyncio
async def test_complete_failure_capture():
    """Test that complete raises the last exception after max retries."""
    llm = MockLLM(max_retries=2, base_retry_delay=0.01)

    # Always fail
    llm.complete_impl_mock.side_effect = Exception("Persistent Failure")

    with pytest.raises(Exception) as excinfo:
        await llm.complete(CONTEXT, [])

    assert "Persistent Failure" in str(excinfo.value)
    # Initial call + 2 retries = 3 calls
    assert llm.complete_impl_mock.call_count == 3


@pytest.mark.asyncio
async def test_zero_retries():
    """Edge Case: Test behavior when max_retries is 0."""
    llm = MockLLM(max_retries=0, base_retry_delay=0.01)

    llm.complete_impl_mock.side_effect = Exception("Fail immediately")

    with pytest.raises(Exception) as excinfo:
        await llm.complete(CONTEXT, [])

    assert "Fail immediately" in str(excinfo.value)
    assert llm.complete_impl_mock.call_count == 1


@pytest.mark.asyncio
async def test_empty_response_is_not_retried():
    """None means "no content", not a failure."""
    llm = MockLLM(base_retry_delay=0.01)
    llm.complete_impl_mock.return_value = None

    assert await llm.complete(CONTEXT, []) is None
    assert llm.complete_impl_mock.call_count == 1


@pytest.mark.asyncio
async def test_gemini_retry_integration():
    """Test that GenericGemini uses the retry logic."""
    gemini = GenericGemini(aclient=AsyncMock(), model_name="test-model", sys_instruction="sys")
    gemini.max_retries = 2
    gemini.base_retry_delay = 0.01

    with patch.object(gemini, "_complete_impl", side_effect=[Exception("Gemini Fail"), "Recovered"]) as mock_impl:
        result = await gemini.complete(CONTEXT, [])

        assert result == "Recovered"
        assert mock_impl.call_count == 2


@pytest.mark.asyncio
async def test_openai_retry_integration():
    """Test that GenericOpenAI uses the retry logic."""
    openai_llm = GenericOpenAI(client=AsyncMock(), model_name="test-model", sys_instruction="sys")
    openai_llm.max_retries = 2
    openai_llm.base_retry_delay = 0.01

    with patch.object(
        openai_llm, "_complete_impl", side_effect=[Exception("Fail 1"), Exception("Fail 2"), "Recovered"]
    ) as mock_impl:
        result = await openai_llm.complete(CONTEXT, [])

        assert result == "Recovered"
        assert mock_impl.call_count == 3
