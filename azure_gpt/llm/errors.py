"""
Error taxonomy for the Azure OpenAI client.

Every expected failure surfaces as exactly one subclass of ``GptError``:

- ``RequestError``: the HTTP call could not complete (connect, TLS, timeout,
  broken connection mid-body)
- ``ApiError``: the service answered with a non-success status
- ``ParseError``: a response body or stream chunk could not be decoded
- ``ConfigError``: invalid local parameters, detected before any network call
"""

# Longest raw fragment rendered in str(ParseError)
RAW_PREVIEW_LIMIT = 200


class GptError(Exception):
    """Base exception for all client errors"""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class RequestError(GptError):
    """Raised when the HTTP request could not be completed"""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        self.original_error = original_error
        super().__init__(f"HTTP request failed: {message}")


class ApiError(GptError):
    """Raised when the service returns a non-success status"""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        self.status_code = status_code
        self.code = code
        super().__init__(f"API response error: {status_code} - {message}")
        # str() keeps the rendered form; message is the text the service sent
        self.message = message


class ParseError(GptError):
    """Raised when a response body or stream chunk cannot be decoded"""

    def __init__(self, detail: str, raw: str | None = None) -> None:
        self.detail = detail
        self.raw = raw
        message = f"Failed to parse API response: {detail}"
        if raw is not None:
            preview = raw if len(raw) <= RAW_PREVIEW_LIMIT else raw[:RAW_PREVIEW_LIMIT] + "..."
            message = f"{message} (payload: {preview!r})"
        super().__init__(message)


class ConfigError(GptError):
    """Raised when configuration values are missing or invalid"""

    def __init__(self, detail: str, field: str | None = None) -> None:
        self.detail = detail
        self.field = field
        super().__init__(f"Configuration error: {detail}")
