"""
Pydantic models mirroring the chat completions wire format.

The full response and the streaming chunk are modelled as distinct types:
a ``Choice`` always carries a complete ``message`` while a ``StreamChoice``
always carries a ``delta``.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Request Models
# ============================================================================


class Message(BaseModel):
    """
    One conversation turn sent to the model.

    Example:
        {"role": "user", "content": "Explain quantum computing"}
    """

    role: Literal["system", "user", "assistant"] = "user"
    content: str


class GptRequest(BaseModel):
    """
    Request body for the chat completions endpoint.

    Example:
        {
            "messages": [{"role": "user", "content": "Hi"}],
            "temperature": 0.7,
            "max_tokens": 800,
            "top_p": 0.95,
            "frequency_penalty": 0.0,
            "presence_penalty": 0.0,
            "stream": false
        }
    """

    messages: list[Message]
    temperature: float
    max_tokens: int
    top_p: float
    frequency_penalty: float
    presence_penalty: float
    stop: list[str] | None = None
    stream: bool = False

    def to_payload(self) -> dict:
        """JSON-ready body; ``stop`` is omitted when unset."""
        return self.model_dump(mode="json", exclude_none=True)


# ============================================================================
# Response Models
# ============================================================================


class ResponseMessage(BaseModel):
    """A complete message in a non-streaming response."""

    role: str | None = None
    content: str


class Choice(BaseModel):
    """A choice in a non-streaming response."""

    message: ResponseMessage
    finish_reason: str | None = None
    index: int = 0


class TokenUsage(BaseModel):
    """Token usage statistics."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class GptResponse(BaseModel):
    """
    Non-streaming completion response.

    Example:
        {
            "id": "chatcmpl-123",
            "choices": [
                {
                    "message": {"role": "assistant", "content": "Hi"},
                    "finish_reason": "stop",
                    "index": 0
                }
            ]
        }
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    choices: list[Choice]
    usage: TokenUsage | None = None


class Delta(BaseModel):
    """A partial update received during streaming."""

    role: str | None = None
    content: str | None = None


class StreamChoice(BaseModel):
    """A choice inside one streaming chunk."""

    delta: Delta = Field(default_factory=Delta)
    finish_reason: str | None = None
    index: int = 0


class GptStreamChunk(BaseModel):
    """
    One ``data:`` payload of a streaming response.

    Example:
        {"choices": [{"delta": {"content": "Hel"}, "index": 0}]}
    """

    id: str | None = None
    choices: list[StreamChoice]

    def fragments(self) -> list[str]:
        """Non-empty text deltas, in choice index order."""
        ordered = sorted(self.choices, key=lambda choice: choice.index)
        return [choice.delta.content for choice in ordered if choice.delta.content]


# ============================================================================
# Error Models
# ============================================================================


class ApiErrorDetail(BaseModel):
    """Structured error reported by the service."""

    message: str
    type: str | None = None
    code: str | int | None = None


class ApiErrorBody(BaseModel):
    """
    Error envelope returned with non-success statuses.

    Example:
        {"error": {"message": "rate limited", "code": "429"}}
    """

    error: ApiErrorDetail
