import os
from typing import Any

import pytest
from dotenv import load_dotenv, find_dotenv
from google.genai.client import Client, AsyncClient
from openai import AsyncOpenAI

from mcp_host_lib.llm_core import ConversationStore, ToolRegistry

# Load environment variables from .env file
env_file = find_dotenv(usecwd=True)
if env_file:
    load_dotenv(env_file)


@pytest.fixture
def genai_client() -> AsyncClient:
    # The tests never reach the network; a dummy key is enough to build the client.
    api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY") or "dummy_key"
    return Client(api_key=api_key).aio


@pytest.fixture
def openai_client() -> AsyncOpenAI:
    api_key = os.getenv("OPENAI_API_KEY") or "dummy_key"
    return AsyncOpenAI(api_key=api_key, base_url=os.getenv("OPENAI_BASE_URL"))


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry(discovery_timeout=0.5)


@pytest.fixture
def weather_result() -> Any:
    return '{"temp":"5C"}'
