"""
Azure OpenAI chat completions client.

Provides single-shot and streaming completions over ``httpx``, sharing one
configuration and error model between the two paths.
"""

import asyncio
import time
import warnings
from abc import ABC, abstractmethod

import httpx
from pydantic import ValidationError

from azure_gpt.llm.config import ClientIdentity, GptConfig
from azure_gpt.llm.errors import ApiError, ConfigError, GptError, ParseError, RequestError
from azure_gpt.llm.models import ApiErrorBody, GptResponse
from azure_gpt.llm.request_builder import build_request
from azure_gpt.llm.streaming import SSEDecoder, aiter_fragments
from azure_gpt.utils.config import Settings, get_settings
from azure_gpt.utils.logger import get_logger, log_error, log_llm_call, mask_secret

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds


class BaseLLMClient(ABC):
    """
    Abstract base class for completion clients.

    Implementations must offer both a single-shot and a streaming entry point
    with the same error behavior.
    """

    @abstractmethod
    async def ask(self, message: str) -> str:
        """
        Send one user message and return the complete reply text.

        Raises:
            RequestError: On transport failure
            ApiError: On a non-success HTTP status
            ParseError: If the body cannot be decoded
        """
        pass

    @abstractmethod
    async def ask_stream(self, message: str) -> "TextStream":
        """
        Send one user message and return its reply as a stream of fragments.

        Fails before returning only if the request itself fails; later
        failures are raised while iterating.
        """
        pass


class TextStream:
    """
    Lazy, forward-only sequence of reply fragments.

    Iterate with ``async for``. The HTTP response is released when the
    stream ends, fails, is closed with ``aclose()``, leaves an ``async with``
    block, or when the consuming task is cancelled.

    Leaving an ``async for`` early with ``break`` does not release anything:
    use ``async with`` or call ``aclose()``. A stream dropped while still
    open emits a ``ResourceWarning``.

    Example:
        async with await client.ask_stream("Hi") as stream:
            async for fragment in stream:
                print(fragment, end="")
    """

    def __init__(
        self,
        response: httpx.Response,
        deployment: str | None = None,
        started_at: float | None = None,
    ) -> None:
        self._response = response
        self._deployment = deployment
        self._started_at = started_at if started_at is not None else time.time()
        self._decoder = SSEDecoder()
        self._fragments = aiter_fragments(response.aiter_bytes(), self._decoder)
        self._closed = False
        self.fragment_count = 0

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            warnings.warn(
                f"unclosed stream {self!r}; use 'async with' or aclose()",
                ResourceWarning,
                source=self,
            )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def finish_reason(self) -> str | None:
        """Finish reason reported by the last chunk that carried one."""
        return self._decoder.finish_reason

    def __aiter__(self) -> "TextStream":
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration

        try:
            fragment = await self._fragments.__anext__()
        except StopAsyncIteration:
            await self._release()
            self._log(success=True)
            raise
        except httpx.HTTPError as e:
            await self._release()
            error = _map_http_error(e, context="stream interrupted")
            self._log(success=False, error=str(error))
            raise error from e
        except ParseError as e:
            await self._release()
            self._log(success=False, error=str(e))
            raise
        except asyncio.CancelledError:
            await self._release()
            self._log(success=False, error="cancelled")
            raise
        except Exception as e:
            await self._release()
            self._log(success=False, error=repr(e))
            raise

        self.fragment_count += 1
        return fragment

    async def aclose(self) -> None:
        """Stop consuming and release the connection. Safe to call repeatedly."""
        if self._closed:
            return
        await self._release()
        logger.info("stream_closed_early", fragments=self.fragment_count)
        self._log(success=False, error="closed by caller")

    async def collect(self) -> str:
        """Consume the remaining fragments and return them concatenated."""
        return "".join([fragment async for fragment in self])

    async def __aenter__(self) -> "TextStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _release(self) -> None:
        self._closed = True
        await self._fragments.aclose()
        await self._response.aclose()

    def _log(self, success: bool, error: str | None = None) -> None:
        log_llm_call(
            deployment=self._deployment,
            latency_ms=(time.time() - self._started_at) * 1000,
            stream=True,
            success=success,
            fragments=self.fragment_count,
            finish_reason=self.finish_reason,
            error=error,
        )


class GptClient(BaseLLMClient):
    """
    Client for one Azure OpenAI chat completions endpoint.

    Safe to share between concurrent tasks: identity and config are
    immutable and each request owns its own decoder state.
    """

    def __init__(
        self,
        identity: ClientIdentity,
        config: GptConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize the client.

        Args:
            identity: Endpoint and API key
            config: Sampling parameters (defaults when None)
            http_client: Pre-configured ``httpx.AsyncClient`` (for testing)
            timeout: HTTP timeout in seconds for a client created here
        """
        self.identity = identity
        self.config = config if config is not None else GptConfig()
        self._owns_http_client = http_client is None
        self._http = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(timeout=timeout or DEFAULT_TIMEOUT)
        )

    @classmethod
    def builder(cls) -> "GptClientBuilder":
        return GptClientBuilder()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "GptClient":
        """
        Build a client from environment settings.

        Raises:
            ConfigError: If the endpoint or API key is missing
        """
        settings = settings or get_settings()
        return (
            cls.builder()
            .api_url(settings.azureopenai_api_url)
            .api_key(settings.azureopenai_api_key)
            .api_version(settings.azureopenai_api_version)
            .config(GptConfig.from_settings(settings))
            .timeout(settings.default_timeout)
            .http_client(http_client)
            .build()
        )

    @property
    def deployment(self) -> str | None:
        return self.config.model

    async def ask(self, message: str) -> str:
        """Generate a complete reply."""
        logger.info("gpt_request", deployment=self.deployment, stream=False)
        logger.debug("gpt_request_message", message_length=len(message))

        start_time = time.time()
        try:
            request = build_request(self.identity, self.config, message, stream=False)
            response = await self._send(request, stream=False)
            parsed = self._parse_response(response)
        except GptError as e:
            log_llm_call(
                deployment=self.deployment,
                latency_ms=(time.time() - start_time) * 1000,
                stream=False,
                success=False,
                error=str(e),
            )
            raise

        choice = parsed.choices[0]
        log_llm_call(
            deployment=self.deployment,
            latency_ms=(time.time() - start_time) * 1000,
            stream=False,
            finish_reason=choice.finish_reason,
        )
        return choice.message.content

    async def ask_stream(self, message: str) -> TextStream:
        """Generate a streamed reply."""
        logger.info("gpt_request", deployment=self.deployment, stream=True)
        logger.debug("gpt_request_message", message_length=len(message))

        start_time = time.time()
        try:
            request = build_request(self.identity, self.config, message, stream=True)
            response = await self._send(request, stream=True)
        except GptError as e:
            log_llm_call(
                deployment=self.deployment,
                latency_ms=(time.time() - start_time) * 1000,
                stream=True,
                success=False,
                error=str(e),
            )
            raise

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("text/event-stream"):
            logger.warning("unexpected_stream_content_type", content_type=content_type)

        return TextStream(response, deployment=self.deployment, started_at=start_time)

    async def aclose(self) -> None:
        """Close the underlying connection pool if this client created it."""
        if self._owns_http_client:
            await self._http.aclose()

    async def __aenter__(self) -> "GptClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _send(self, request: httpx.Request, stream: bool) -> httpx.Response:
        logger.debug("gpt_request_send", url=str(request.url))
        try:
            response = await self._http.send(request, stream=stream)
        except httpx.HTTPError as e:
            log_error("http_error", str(e), error_class=type(e).__name__)
            raise _map_http_error(e) from e

        logger.debug("gpt_response_status", status_code=response.status_code)
        if response.is_success:
            return response

        try:
            await response.aread()
        except httpx.HTTPError as e:
            raise _map_http_error(e) from e
        finally:
            await response.aclose()

        error = _api_error(response)
        log_error("api_error", error.message, status_code=error.status_code, code=error.code)
        raise error

    @staticmethod
    def _parse_response(response: httpx.Response) -> GptResponse:
        try:
            parsed = GptResponse.model_validate_json(response.content)
        except ValidationError as e:
            logger.error("gpt_response_invalid", errors=e.error_count())
            raise ParseError(e.errors()[0]["msg"], raw=response.text) from e

        if not parsed.choices:
            logger.error("gpt_response_no_choices", response_id=parsed.id)
            raise ParseError("No response choices available", raw=response.text)
        return parsed


def _map_http_error(error: httpx.HTTPError, context: str | None = None) -> GptError:
    """
    Translate an ``httpx`` failure into the client's error taxonomy.

    A body that fails ``Content-Encoding`` decoding is a ``ParseError``;
    everything else httpx raises while sending or reading is a ``RequestError``.
    """
    detail = str(error) or type(error).__name__
    if isinstance(error, httpx.DecodingError):
        return ParseError(f"could not decode response body: {detail}")
    if context:
        detail = f"{context}: {detail}"
    return RequestError(detail, original_error=error)


def _api_error(response: httpx.Response) -> ApiError:
    """Build an ``ApiError`` from a failed response, preferring the structured body."""
    try:
        body = ApiErrorBody.model_validate_json(response.content)
    except ValidationError:
        message = response.text.strip() or response.reason_phrase or "Unknown error"
        return ApiError(response.status_code, message)

    code = body.error.code
    return ApiError(
        response.status_code, body.error.message, code=str(code) if code is not None else None
    )


class GptClientBuilder:
    """
    Step-by-step construction of a ``GptClient``.

    Example:
        client = (
            GptClient.builder()
            .api_url("https://example.openai.azure.com")
            .api_key("...")
            .config(GptConfig.builder().model("gpt-4o").build())
            .build()
        )
    """

    def __init__(self) -> None:
        self._api_url: str | None = None
        self._api_key: str | None = None
        self._api_version: str | None = None
        self._config: GptConfig | None = None
        self._http_client: httpx.AsyncClient | None = None
        self._timeout: float | None = None

    def api_url(self, url: str) -> "GptClientBuilder":
        logger.debug("client_api_url", url=url)
        self._api_url = url
        return self

    def api_key(self, key: str) -> "GptClientBuilder":
        logger.debug("client_api_key", api_key=mask_secret(key))
        self._api_key = key
        return self

    def api_version(self, version: str | None) -> "GptClientBuilder":
        self._api_version = version
        return self

    def config(self, config: GptConfig) -> "GptClientBuilder":
        logger.debug("client_config", **config.model_dump())
        self._config = config
        return self

    def http_client(self, http_client: httpx.AsyncClient | None) -> "GptClientBuilder":
        self._http_client = http_client
        return self

    def timeout(self, seconds: float) -> "GptClientBuilder":
        self._timeout = seconds
        return self

    def build(self) -> GptClient:
        """
        Build the client.

        Raises:
            ConfigError: If the API URL or key is missing or invalid
        """
        logger.info("building_gpt_client")

        if not self._api_url:
            logger.error("missing_api_url")
            raise ConfigError("API URL is required", field="api_url")
        if not self._api_key:
            logger.error("missing_api_key")
            raise ConfigError("API key is required", field="api_key")

        identity = ClientIdentity.create(
            endpoint=self._api_url,
            api_key=self._api_key,
            api_version=self._api_version,
        )
        return GptClient(
            identity,
            config=self._config,
            http_client=self._http_client,
            timeout=self._timeout,
        )
