"""HTTP client infrastructure with rate-limit backoff."""

from http_backoff.http.client import BackoffClient
from http_backoff.http.retry import BackoffExecutor

__all__ = [
    "BackoffClient",
    "BackoffExecutor",
]
