import asyncio
import logging
import os

from dotenv import load_dotenv
from openai import AsyncOpenAI

from mcp_host_lib import HostSettings, MCPHost, MCPHostError, setup_logging
from mcp_host_lib.llm_core import GenericLLM
from mcp_host_lib.llm_impl import GenericOllama, GenericOpenAI

# Load environment variables
load_dotenv()


def build_model() -> GenericLLM:
    """Use OpenAI when a key is configured, a local Ollama server otherwise."""
    api_key = os.getenv("OPENAI_API_KEY")
    if api_key:
        print("Using OpenAI.")
        return GenericOpenAI(client=AsyncOpenAI(api_key=api_key), model_name="gpt-4o-mini")

    print("OPENAI_API_KEY not set, using Ollama.")
    return GenericOllama(model_name=os.getenv("OLLAMA_MODEL", "llama3.1:8b"))


async def main() -> None:
    """
    Connects the servers listed in MCP_HOST_SERVER_ENDPOINTS and chats on the command line.
    """
    setup_logging(logging.WARNING)
    print("Welcome to the MCP host CLI chat!")

    settings = HostSettings.from_env()
    async with MCPHost(build_model(), settings) as host:
        try:
            await host.connect_all()
        except MCPHostError as e:
            print(f"Could not connect to all servers: {e}")

        print(f"Available tools: {[tool.name for tool in host.all_tools()] or 'none'}")
        conversation_id = host.start_new_chat()

        print("\nStart chatting! Type 'exit' or 'quit' to stop.")
        while True:
            user_input = (await asyncio.to_thread(input, "\nYou: ")).strip()
            if user_input.lower() in ["exit", "quit"]:
                print("Goodbye!")
                break

            if not user_input:
                continue

            try:
                answer = await host.process_query(conversation_id, user_input)
                print(f"Assistant: {answer}")
            except MCPHostError as e:
                print(f"An error occurred: {e}")


if __name__ == "__main__":
    asyncio.run(main())
