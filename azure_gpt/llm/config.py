"""
Sampling configuration for completion requests.

``GptConfig`` is immutable and validated on construction. ``GptConfigBuilder``
starts from the defaults and lets callers override fields independently
before ``build()`` validates the result:

    config = GptConfig.builder().temperature(0.2).max_tokens(256).build()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from azure_gpt.llm.errors import ConfigError
from azure_gpt.utils.logger import get_logger

if TYPE_CHECKING:
    from azure_gpt.utils.config import Settings

logger = get_logger(__name__)

MAX_STOP_SEQUENCES = 4


def _validate(model_cls: type[BaseModel], values: dict[str, Any]) -> Any:
    """Instantiate ``model_cls``, converting validation failures to ``ConfigError``."""
    try:
        return model_cls(**values)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(loc) for loc in error["loc"]) or None
        logger.error("invalid_config", model=model_cls.__name__, field=field, reason=error["msg"])
        raise ConfigError(f"invalid {field}: {error['msg']}", field=field) from e


class GptConfig(BaseModel):
    """Validated, immutable sampling parameters."""

    model_config = ConfigDict(frozen=True)

    temperature: float = Field(
        default=0.7, ge=0.0, le=2.0, allow_inf_nan=False, description="Sampling temperature"
    )
    max_tokens: int = Field(default=800, gt=0, strict=True, description="Maximum tokens to generate")
    model: str | None = Field(default=None, min_length=1, description="Deployment name")
    top_p: float = Field(
        default=0.95, ge=0.0, le=1.0, allow_inf_nan=False, description="Nucleus sampling mass"
    )
    frequency_penalty: float = Field(default=0.0, ge=-2.0, le=2.0, allow_inf_nan=False)
    presence_penalty: float = Field(default=0.0, ge=-2.0, le=2.0, allow_inf_nan=False)
    stop: tuple[str, ...] | None = Field(default=None, description="Stop sequences")

    @field_validator("stop")
    @classmethod
    def _validate_stop(cls, v: tuple[str, ...] | None) -> tuple[str, ...] | None:
        if v is None:
            return v
        if not 0 < len(v) <= MAX_STOP_SEQUENCES:
            raise ValueError(f"between 1 and {MAX_STOP_SEQUENCES} stop sequences are allowed")
        if any(not s for s in v):
            raise ValueError("stop sequences must be non-empty")
        return v

    @classmethod
    def builder(cls) -> GptConfigBuilder:
        return GptConfigBuilder()

    @classmethod
    def create(cls, **values: Any) -> GptConfig:
        """
        Validate ``values`` and build a config.

        Raises:
            ConfigError: naming the first offending field
        """
        return _validate(cls, values)

    @classmethod
    def from_settings(cls, settings: Settings) -> GptConfig:
        """Seed temperature, max_tokens and deployment from environment settings."""
        return cls.create(
            temperature=settings.default_temperature,
            max_tokens=settings.default_max_tokens,
            model=settings.azureopenai_deployment,
        )


class GptConfigBuilder:
    """
    Collects overrides for ``GptConfig``; validation is deferred to ``build()``.
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def _set(self, field: str, value: Any) -> GptConfigBuilder:
        logger.debug("config_override", field=field, value=value)
        self._values[field] = value
        return self

    def temperature(self, temperature: float) -> GptConfigBuilder:
        return self._set("temperature", temperature)

    def max_tokens(self, max_tokens: int) -> GptConfigBuilder:
        return self._set("max_tokens", max_tokens)

    def model(self, model: str) -> GptConfigBuilder:
        return self._set("model", model)

    def top_p(self, top_p: float) -> GptConfigBuilder:
        return self._set("top_p", top_p)

    def frequency_penalty(self, penalty: float) -> GptConfigBuilder:
        return self._set("frequency_penalty", penalty)

    def presence_penalty(self, penalty: float) -> GptConfigBuilder:
        return self._set("presence_penalty", penalty)

    def stop(self, stop: list[str]) -> GptConfigBuilder:
        return self._set("stop", tuple(stop))

    def build(self) -> GptConfig:
        """
        Validate the collected values and return an immutable config.

        Raises:
            ConfigError: If any value is out of range
        """
        config = GptConfig.create(**self._values)
        logger.debug("config_built", **config.model_dump())
        return config


class ClientIdentity(BaseModel):
    """
    Endpoint and credential shared by every request from one client.

    ``endpoint`` is either the full chat completions URL or, when a deployment
    is configured, the resource root such as ``https://x.openai.azure.com``.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(min_length=1)
    api_key: str = Field(min_length=1, repr=False)
    api_version: str | None = None

    @field_validator("endpoint")
    @classmethod
    def _validate_endpoint(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError("endpoint must be an http(s) URL")
        return v.rstrip("/")

    @classmethod
    def create(cls, **values: Any) -> ClientIdentity:
        """
        Validate ``values`` and build an identity.

        Raises:
            ConfigError: naming the missing or invalid field
        """
        return _validate(cls, values)
