"""
Server-sent event decoding for streaming chat completions.

``SSEDecoder`` is a synchronous state machine fed with raw body bytes in
whatever pieces the transport delivers. It reassembles lines across read
boundaries, parses each ``data:`` payload as a ``GptStreamChunk`` and yields
the text deltas in arrival order. ``aiter_fragments`` drives a decoder from
an async byte iterator such as ``httpx.Response.aiter_raw()``.

Output is independent of how the body was split into pieces.
"""

from collections.abc import AsyncIterable, AsyncIterator, Iterator
from enum import Enum

from pydantic import ValidationError

from azure_gpt.llm.errors import ParseError
from azure_gpt.llm.models import GptStreamChunk
from azure_gpt.utils.logger import get_logger, log_error

logger = get_logger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class DecoderState(Enum):
    """Lifecycle of an ``SSEDecoder``."""

    ACCUMULATING = "accumulating"
    TERMINATED = "terminated"
    FAILED = "failed"


class SSEDecoder:
    """
    Incremental decoder for one streaming response body.

    Each decoder owns its buffer and must not be shared between requests.

    Example:
        decoder = SSEDecoder()
        for fragment in decoder.feed(b'data: {"choices": [...]}\\n\\n'):
            print(fragment, end="")
        list(decoder.finish())
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.state = DecoderState.ACCUMULATING
        self.finish_reason: str | None = None
        self.chunks_seen = 0

    @property
    def closed(self) -> bool:
        return self.state is not DecoderState.ACCUMULATING

    def feed(self, data: bytes) -> Iterator[str]:
        """
        Accept the next piece of the body.

        The bytes are buffered immediately; complete lines are processed as
        the returned iterator is consumed.

        Raises:
            ParseError: From the iterator, when a ``data:`` payload is malformed
            RuntimeError: If the decoder already failed
        """
        if self.state is DecoderState.FAILED:
            raise RuntimeError("decoder has failed; no further input is accepted")
        if self.state is DecoderState.ACCUMULATING:
            self._buffer.extend(data)
        return self._drain()

    def finish(self) -> Iterator[str]:
        """
        Signal end of body.

        A trailing line without a terminator is processed as a final line.
        Reaching the end without the ``[DONE]`` sentinel is a normal end.
        """
        if self.state is DecoderState.FAILED:
            raise RuntimeError("decoder has failed; no further input is accepted")
        return self._drain(final=True)

    def _drain(self, final: bool = False) -> Iterator[str]:
        while self.state is DecoderState.ACCUMULATING:
            # Lines end at "\n" (a preceding "\r" is stripped); a lone "\r" is not a terminator
            newline = self._buffer.find(b"\n")
            if newline == -1:
                if not final:
                    return
                raw_line = bytes(self._buffer)
                self._buffer.clear()
                yield from self._process_line(raw_line)
                if self.state is DecoderState.ACCUMULATING:
                    self.state = DecoderState.TERMINATED
                    logger.debug("stream_closed_without_sentinel", chunks=self.chunks_seen)
                return

            raw_line = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]
            yield from self._process_line(raw_line)

    def _process_line(self, raw_line: bytes) -> Iterator[str]:
        if raw_line.endswith(b"\r"):
            raw_line = raw_line[:-1]
        if not raw_line:
            # Frame separator
            return

        try:
            line = raw_line.decode("utf-8")
        except UnicodeDecodeError as e:
            self._fail()
            raise ParseError(
                f"stream line is not valid UTF-8: {e}",
                raw=raw_line.decode("utf-8", errors="replace"),
            ) from e

        if not line.startswith(DATA_PREFIX):
            # Comments, event:, id: and retry: fields carry nothing for us
            return

        payload = line[len(DATA_PREFIX) :]
        if payload.startswith(" "):
            payload = payload[1:]

        if payload.strip() == DONE_SENTINEL:
            self.state = DecoderState.TERMINATED
            self._buffer.clear()
            logger.debug("stream_done", chunks=self.chunks_seen)
            return

        try:
            chunk = GptStreamChunk.model_validate_json(payload)
        except ValidationError as e:
            self._fail()
            log_error("parse_error", "invalid stream chunk", payload=payload[:200])
            raise ParseError(f"invalid stream chunk: {e.errors()[0]['msg']}", raw=payload) from e

        self.chunks_seen += 1
        for choice in chunk.choices:
            if choice.finish_reason is not None:
                self.finish_reason = choice.finish_reason

        yield from chunk.fragments()

    def _fail(self) -> None:
        self.state = DecoderState.FAILED
        self._buffer.clear()


async def aiter_fragments(
    byte_stream: AsyncIterable[bytes],
    decoder: SSEDecoder | None = None,
) -> AsyncIterator[str]:
    """
    Decode an async byte stream into text fragments.

    Stops at the ``[DONE]`` sentinel without reading further, or when the
    byte stream is exhausted. A malformed payload raises ``ParseError`` after
    every earlier fragment has been yielded.

    Args:
        byte_stream: Raw body pieces in arrival order
        decoder: Decoder to drive (a fresh one by default); pass one in to
            inspect ``finish_reason`` afterwards
    """
    decoder = decoder or SSEDecoder()

    async for data in byte_stream:
        for fragment in decoder.feed(data):
            yield fragment
        if decoder.closed:
            return

    for fragment in decoder.finish():
        yield fragment
