"""Custom exception classes for the backoff client."""

from typing import Optional


class BackoffError(Exception):
    """Base exception class for all backoff client errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(BackoffError):
    """Raised when there are configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.config_file = config_file
        self.field = field


class TransportError(BackoffError):
    """Raised when the underlying request could not be executed."""


class NetworkError(TransportError):
    """Raised when network-related errors occur."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(f"Network error: {message}", cause)


class RequestTimeoutError(TransportError):
    """Raised when requests timeout."""

    def __init__(
        self,
        message: str = "Request timed out",
        timeout_seconds: Optional[int] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, cause)
        self.timeout_seconds = timeout_seconds


class MetadataError(BackoffError):
    """Raised when a throttled response lacks usable rate-limit metadata."""

    def __init__(
        self,
        message: str,
        header: Optional[str] = None,
        value: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, cause)
        self.header = header
        self.value = value


class BackoffExceededError(BackoffError):
    """Raised when the attempt ceiling is reached while still throttled."""

    def __init__(self, attempts: int, message: Optional[str] = None):
        super().__init__(message or f"Backoff exceeded after {attempts} attempts")
        self.attempts = attempts
