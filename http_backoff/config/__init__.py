"""Configuration management for the backoff client."""

from .loader import ConfigLoader
from .models import BackoffConfig, HostPolicy

__all__ = [
    "ConfigLoader",
    "BackoffConfig",
    "HostPolicy",
]
