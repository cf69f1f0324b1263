"""
Builds authenticated chat completion requests.

Everything here is a pure function of its inputs: no network I/O happens
until the client sends the returned ``httpx.Request``.
"""

from urllib.parse import quote

import httpx

from azure_gpt.llm.config import ClientIdentity, GptConfig
from azure_gpt.llm.errors import ConfigError
from azure_gpt.llm.models import GptRequest, Message
from azure_gpt.utils.logger import get_logger

logger = get_logger(__name__)

DEPLOYMENT_PATH = "openai/deployments/{deployment}/chat/completions"
API_KEY_HEADER = "api-key"
EVENT_STREAM = "text/event-stream"


def build_url(identity: ClientIdentity, config: GptConfig) -> httpx.URL:
    """
    Resolve the target URL.

    With a deployment configured the deployment path is appended to the
    endpoint; otherwise the endpoint is already the full completions URL.
    """
    if config.model:
        path = DEPLOYMENT_PATH.format(deployment=quote(config.model, safe=""))
        url = httpx.URL(f"{identity.endpoint}/{path}")
    else:
        url = httpx.URL(identity.endpoint)

    if identity.api_version:
        url = url.copy_merge_params({"api-version": identity.api_version})
    return url


def build_headers(identity: ClientIdentity, stream: bool) -> dict[str, str]:
    """
    Build request headers.

    Raises:
        ConfigError: If the API key cannot be sent as a header value
    """
    api_key = identity.api_key
    if not api_key.isascii() or not api_key.isprintable():
        logger.error("invalid_api_key_header")
        raise ConfigError(
            "API key contains characters that are not valid in a header", field="api_key"
        )

    headers = {
        "Content-Type": "application/json",
        API_KEY_HEADER: api_key,
    }
    if stream:
        headers["Accept"] = EVENT_STREAM
    return headers


def build_body(config: GptConfig, message: str, stream: bool) -> GptRequest:
    """Build the request body for a single user turn."""
    return GptRequest(
        messages=[Message(role="user", content=message)],
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        top_p=config.top_p,
        frequency_penalty=config.frequency_penalty,
        presence_penalty=config.presence_penalty,
        stop=list(config.stop) if config.stop is not None else None,
        stream=stream,
    )


def build_request(
    identity: ClientIdentity,
    config: GptConfig,
    message: str,
    stream: bool = False,
) -> httpx.Request:
    """
    Build a fully formed POST request.

    Args:
        identity: Endpoint and credential
        config: Sampling parameters
        message: User prompt
        stream: Whether to request a server-sent event stream

    Returns:
        Request ready to be sent by an ``httpx`` client

    Raises:
        ConfigError: If headers cannot be constructed
    """
    headers = build_headers(identity, stream)
    body = build_body(config, message, stream)
    url = build_url(identity, config)

    logger.debug("request_built", url=str(url), stream=stream, message_length=len(message))
    return httpx.Request("POST", url, headers=headers, json=body.to_payload())
