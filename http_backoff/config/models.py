"""Configuration data models - re-exported from main models module."""

from ..models import BackoffConfig, HostPolicy

__all__ = ["BackoffConfig", "HostPolicy"]
