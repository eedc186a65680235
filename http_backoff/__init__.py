"""Async HTTP client that backs off on provider-specific rate limits."""

from .exceptions import (
    BackoffError,
    BackoffExceededError,
    ConfigurationError,
    MetadataError,
    NetworkError,
    RequestTimeoutError,
    TransportError,
)
from .http import BackoffClient, BackoffExecutor
from .models import (
    BackoffConfig,
    BackoffRequest,
    Duplicable,
    HostPolicy,
    NotDuplicable,
)

__all__ = [
    "BackoffClient",
    "BackoffExecutor",
    "BackoffError",
    "BackoffExceededError",
    "ConfigurationError",
    "MetadataError",
    "NetworkError",
    "RequestTimeoutError",
    "TransportError",
    "BackoffConfig",
    "BackoffRequest",
    "Duplicable",
    "HostPolicy",
    "NotDuplicable",
]
