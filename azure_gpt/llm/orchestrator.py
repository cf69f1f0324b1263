"""
Higher-level helpers for timeouts, stream collection and concurrent fan-out.

All helpers take an existing client so many requests can share one
connection pool.
"""

import asyncio

from azure_gpt.llm.clients import BaseLLMClient
from azure_gpt.llm.errors import GptError, RequestError
from azure_gpt.utils.logger import get_logger

logger = get_logger(__name__)


async def ask_with_timeout(client: BaseLLMClient, prompt: str, timeout: float) -> str:
    """
    Single-shot ask bounded by ``timeout`` seconds.

    On expiry the in-flight request is cancelled, which closes its connection.

    Raises:
        RequestError: If the timeout expires
    """
    try:
        return await asyncio.wait_for(client.ask(prompt), timeout=timeout)
    except TimeoutError as e:
        logger.warning("ask_timeout", timeout=timeout)
        raise RequestError(f"request timed out after {timeout}s", original_error=e) from e


async def collect_stream(client: BaseLLMClient, prompt: str, timeout: float | None = None) -> str:
    """
    Stream a reply and return it concatenated.

    Args:
        client: Client to stream from
        prompt: User prompt
        timeout: Overall deadline in seconds covering setup and every fragment

    Raises:
        RequestError: If the timeout expires (the stream is closed first)
        GptError: Any error raised while setting up or reading the stream
    """

    async def _collect() -> str:
        stream = await client.ask_stream(prompt)
        async with stream:
            fragments = [fragment async for fragment in stream]
        logger.info("collect_stream_complete", fragments=len(fragments))
        return "".join(fragments)

    if timeout is None:
        return await _collect()

    try:
        return await asyncio.wait_for(_collect(), timeout=timeout)
    except TimeoutError as e:
        logger.warning("stream_timeout", timeout=timeout)
        raise RequestError(f"stream timed out after {timeout}s", original_error=e) from e


async def ask_many(
    client: BaseLLMClient,
    prompts: list[str],
    timeout: float | None = None,
) -> list[str | GptError]:
    """
    Ask several prompts concurrently through one client.

    Results keep the order of ``prompts``. A failed prompt yields its
    ``GptError`` in place instead of aborting the others; unexpected
    exceptions propagate.
    """

    async def call(prompt: str) -> str | GptError:
        try:
            if timeout is None:
                return await client.ask(prompt)
            return await ask_with_timeout(client, prompt, timeout)
        except GptError as exc:
            return exc

    logger.info("ask_many_start", prompts=len(prompts))
    results = await asyncio.gather(*(call(prompt) for prompt in prompts))

    failed = sum(1 for result in results if isinstance(result, GptError))
    logger.info("ask_many_complete", succeeded=len(results) - failed, failed=failed)
    return list(results)
