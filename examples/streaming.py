"""
Streaming a reply fragment by fragment.
"""

import asyncio

from azure_gpt.llm.clients import GptClient
from azure_gpt.utils.logger import setup_logging


async def stream_llm_response(prompt: str):
    """
    Print the reply as it arrives.

    Fragments are printed without buffering; the connection is released
    when the stream ends or the ``async with`` block exits.
    """
    async with GptClient.from_settings() as client:
        stream = await client.ask_stream(prompt)

        print("Response: ", end="")
        async with stream:
            async for fragment in stream:
                print(fragment, end="", flush=True)
        print()  # New line at end
        print(f"[finish_reason={stream.finish_reason}, fragments={stream.fragment_count}]")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(stream_llm_response("Write a haiku about coding"))
