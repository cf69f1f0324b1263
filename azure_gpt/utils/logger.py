"""
Structured logging configuration using structlog.

Provides JSON-formatted logs for production with human-readable
output for development. The library itself only emits events;
applications call ``setup_logging()`` once at startup.

Usage:
    from azure_gpt.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("gpt_request", deployment="gpt-4o", stream=True)
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

from azure_gpt.utils.config import get_settings, is_development


def setup_logging() -> None:
    """
    Configure structlog with appropriate processors for the environment.

    Development: Human-readable console output with colors
    Production: JSON-formatted logs for parsing/aggregation

    When ``LOG_DIR`` is set, a daily rotating file handler is added.
    """
    settings = get_settings()

    renderer = (
        structlog.dev.ConsoleRenderer(colors=True)
        if is_development()
        else structlog.processors.JSONRenderer()
    )

    # Shared processors (pre-chain for stdlib logging)
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [console_handler]

    if settings.log_dir:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=log_dir / "azure_gpt.log",
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.getLevelName(settings.log_level),
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def mask_secret(value: str) -> str:
    """Replace a credential with asterisks of the same length."""
    return "*" * len(value)


def log_llm_call(
    deployment: str | None,
    latency_ms: float,
    stream: bool,
    success: bool = True,
    fragments: int | None = None,
    finish_reason: str | None = None,
    error: str | None = None,
) -> None:
    """
    Log a completion call with standardized fields.

    Args:
        deployment: Deployment name the request targeted (None for a full URL endpoint)
        latency_ms: Wall time from request start to completion or failure
        stream: Whether the call used the streaming endpoint
        success: Whether the call succeeded
        fragments: Number of text fragments delivered (streaming only)
        finish_reason: Finish reason reported by the service
        error: Error message if failed
    """
    logger = get_logger("azure_gpt.llm")

    log_data: dict[str, Any] = {
        "event": "llm_call",
        "deployment": deployment,
        "stream": stream,
        "latency_ms": round(latency_ms, 2),
        "success": success,
    }
    if fragments is not None:
        log_data["fragments"] = fragments
    if finish_reason is not None:
        log_data["finish_reason"] = finish_reason

    if error:
        log_data["error"] = error
        logger.error(**log_data)
    else:
        logger.info(**log_data)


def log_error(error_type: str, message: str, **extra: Any) -> None:
    """
    Log an error with standardized format.

    Args:
        error_type: Type of error (api_error, parse_error, etc.)
        message: Error message
        **extra: Additional context fields
    """
    logger = get_logger("azure_gpt.error")

    logger.error("error_occurred", error_type=error_type, message=message, **extra)
