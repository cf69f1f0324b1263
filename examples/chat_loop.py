"""
Interactive chat loop.

Each line typed is sent as a streamed request and the reply is printed as
it arrives. Type "exit" to quit. Every turn is independent; no history is
carried between turns.
"""

import asyncio

from azure_gpt.llm.clients import GptClient
from azure_gpt.llm.errors import ConfigError, GptError
from azure_gpt.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_COMMAND = "exit"


async def chat_loop(client: GptClient) -> None:
    while True:
        try:
            line = await asyncio.to_thread(input, "You: ")
        except EOFError:
            break

        prompt = line.strip()
        if prompt.lower() == EXIT_COMMAND:
            break
        if not prompt:
            continue

        print("Assistant: ", end="", flush=True)
        try:
            stream = await client.ask_stream(prompt)
            async with stream:
                async for fragment in stream:
                    print(fragment, end="", flush=True)
        except GptError as e:
            print(f"\n[error] {e}")
            continue
        print()


async def main() -> None:
    try:
        client = GptClient.from_settings()
    except ConfigError as e:
        logger.error("client_setup_failed", error=str(e), field=e.field)
        print(f"Cannot start chat: {e}")
        return

    print(f'Chatting with {client.deployment or "default deployment"}. Type "{EXIT_COMMAND}" to quit.')
    async with client:
        await chat_loop(client)


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
