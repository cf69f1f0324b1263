"""
Concurrent calls with different sampling parameters.

One client per configuration; prompts within a configuration share a
connection pool through ``ask_many``.
"""

import asyncio

from azure_gpt.llm.clients import GptClient
from azure_gpt.llm.config import GptConfig
from azure_gpt.llm.errors import GptError
from azure_gpt.llm.orchestrator import ask_many
from azure_gpt.utils.config import get_settings
from azure_gpt.utils.logger import setup_logging

VARIANTS = {
    "conservative (temp=0.2)": {"temperature": 0.2},
    "creative (temp=0.9)": {"temperature": 0.9},
    "short (max_tokens=60)": {"max_tokens": 60},
}


def make_client(**overrides) -> GptClient:
    settings = get_settings()
    base = GptConfig.from_settings(settings).model_dump()
    config = GptConfig.create(**{**base, **overrides})
    return (
        GptClient.builder()
        .api_url(settings.azureopenai_api_url)
        .api_key(settings.azureopenai_api_key)
        .api_version(settings.azureopenai_api_version)
        .config(config)
        .build()
    )


async def run_variant(name: str, overrides: dict, prompts: list[str]) -> dict:
    async with make_client(**overrides) as client:
        results = await ask_many(client, prompts, timeout=30.0)
    return {"variant": name, "results": results}


async def parallel_parameter_testing(prompts: list[str]) -> list[dict]:
    """
    Run every variant concurrently.

    Latency: max(t1, t2, t3) instead of t1 + t2 + t3
    """
    tasks = [run_variant(name, overrides, prompts) for name, overrides in VARIANTS.items()]
    return await asyncio.gather(*tasks)


async def main():
    """Example usage of parallel parameter testing."""
    print("Testing different configurations in parallel...\n")

    prompts = ["Write a haiku about programming", "Name three sorting algorithms"]
    variants = await parallel_parameter_testing(prompts)

    for variant in variants:
        print(f"--- {variant['variant']} ---")
        for prompt, result in zip(prompts, variant["results"]):
            if isinstance(result, GptError):
                print(f"{prompt}: failed ({result})\n")
            else:
                print(f"{prompt}:\n{result}\n")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
