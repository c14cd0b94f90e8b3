"""Exception hierarchy raised by the API client.

Configuration errors are raised before any network call and are never
retried. ``ProviderHttpError`` carries the upstream status so the retry
engine can decide whether to try again.
"""


def is_retryable_status(status: int | None) -> bool:
    """Rate limiting and server errors are transient; everything else is final."""
    if status is None:
        return False
    return status == 429 or 500 <= status < 600


class ApiClientError(Exception):
    """Base class for all API client failures."""


class UnknownProviderError(ApiClientError):
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unknown API provider: {provider}")


class MissingConfigurationError(ApiClientError):
    """Provider is not fully configured (missing key, endpoint or model)."""

    def __init__(self, provider: str, detail: str):
        self.provider = provider
        self.detail = detail
        super().__init__(f"Provider {provider} is not properly configured: {detail}")


class UnsupportedOperationError(ApiClientError):
    def __init__(self, provider: str, operation: str):
        self.provider = provider
        self.operation = operation
        super().__init__(f"Provider {provider} does not support {operation}")


class InvalidResponseShapeError(ApiClientError):
    """A successful response is missing the field the caller needs."""

    def __init__(self, expected: str):
        self.expected = expected
        super().__init__(f"Invalid response format: missing {expected}")


class ProviderHttpError(ApiClientError):
    """Non-2xx response (or transport failure) from an upstream provider."""

    def __init__(self, status: int, provider: str, endpoint: str, message: str = "Unknown error"):
        self.status = status
        self.provider = provider
        self.endpoint = endpoint
        self.message = message
        self.retryable = is_retryable_status(status)
        super().__init__(f"API error ({status}) from {provider}:{endpoint}: {message}")


class RetriesExhaustedError(ApiClientError):
    def __init__(self, provider: str, endpoint: str, attempts: int, last_error: ProviderHttpError):
        self.provider = provider
        self.endpoint = endpoint
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Maximum retries ({attempts}) exceeded for {provider}:{endpoint}: {last_error.message}"
        )


class QueueTimeoutError(ApiClientError):
    """A rate-limited request waited in the queue longer than its timeout."""

    def __init__(self, provider: str, endpoint: str, timeout: float):
        self.provider = provider
        self.endpoint = endpoint
        self.timeout = timeout
        super().__init__(
            f"Request to {provider}:{endpoint} queued with a {timeout}s timeout did not complete in time"
        )
