"""
Canned transcripts and transport doubles shared by the test modules.
"""

import asyncio
import json

import httpx

ENDPOINT = "https://example.openai.azure.com"
API_KEY = "test-azure-key"

# Mock API responses
MOCK_GPT_RESPONSE = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "created": 1677652288,
    "model": "gpt-4o",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "Hello there, friend!"},
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
}

# Same reply as MOCK_GPT_RESPONSE, delivered as deltas
MOCK_STREAM_DELTAS = ["Hello", " there", ",", " friend", "!"]


def sse_chunk(content: str | None = None, role: str | None = None, finish_reason=None, index=0):
    """Encode one streaming chunk as an SSE ``data:`` frame."""
    delta = {}
    if role is not None:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    chunk = {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "choices": [{"index": index, "delta": delta, "finish_reason": finish_reason}],
    }
    return f"data: {json.dumps(chunk, ensure_ascii=False)}\n\n".encode()


def sse_body(deltas: list[str], done: bool = True) -> bytes:
    """Build a complete streaming body the way the service sends it."""
    parts = [b'data: {"choices":[],"prompt_filter_results":[]}\n\n', sse_chunk(role="assistant")]
    parts.extend(sse_chunk(content=d) for d in deltas)
    parts.append(sse_chunk(finish_reason="stop"))
    if done:
        parts.append(b"data: [DONE]\n\n")
    return b"".join(parts)


class ChunkedStream(httpx.AsyncByteStream):
    """
    Async response body delivered in the given pieces.

    ``error`` is raised after the last piece; ``hang`` blocks after the last
    piece until cancelled. ``closed`` records whether the body was released.
    """

    def __init__(
        self,
        pieces: list[bytes],
        error: Exception | None = None,
        hang: bool = False,
    ) -> None:
        self.pieces = pieces
        self.error = error
        self.hang = hang
        self.closed = False
        self.delivered = 0

    async def __aiter__(self):
        for piece in self.pieces:
            self.delivered += 1
            yield piece
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


def stream_response(
    stream: ChunkedStream,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers={"content-type": "text/event-stream", **(headers or {})},
        stream=stream,
    )


