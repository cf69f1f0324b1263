"""
Basic single-shot completion with error handling.

Reads AZUREOPENAI_API_URL / AZUREOPENAI_API_KEY (and optionally
AZUREOPENAI_DEPLOYMENT) from the environment or a .env file.
"""

import asyncio

from azure_gpt.llm.clients import GptClient
from azure_gpt.llm.errors import ApiError, ConfigError, GptError
from azure_gpt.llm.orchestrator import ask_with_timeout
from azure_gpt.utils.logger import setup_logging


async def basic_llm_call(prompt: str) -> str:
    """
    Make a simple completion call with error handling.

    Args:
        prompt: User prompt

    Returns:
        Reply text, or an error description
    """
    try:
        client = GptClient.from_settings()
    except ConfigError as e:
        return f"Error: {e}"

    async with client:
        try:
            return await ask_with_timeout(client, prompt, timeout=30.0)
        except ApiError as e:
            return f"Error: API returned {e.status_code}: {e.message}"
        except GptError as e:
            return f"Error: {e}"


if __name__ == "__main__":
    setup_logging()
    result = asyncio.run(basic_llm_call("What is Azure OpenAI?"))
    print(result)
