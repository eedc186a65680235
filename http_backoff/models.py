"""Data models for backoff configuration and replayable requests."""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from yarl import URL

from .exceptions import ConfigurationError


class HostPolicy(Enum):
    """Backoff policy category derived from a request's target host."""

    TWITCH = "twitch"
    GOOGLE = "google"
    YOUTUBE = "youtube"
    OTHER = "other"

    @classmethod
    def from_name(cls, name: str) -> "HostPolicy":
        """Look up a policy by its case-insensitive name."""
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            valid = ", ".join(policy.value for policy in cls)
            raise ConfigurationError(
                f"Unknown host policy '{name}' (expected one of: {valid})"
            )


DEFAULT_HOSTS = {
    "twitch.tv": HostPolicy.TWITCH,
    "google.com": HostPolicy.GOOGLE,
    "youtube.com": HostPolicy.YOUTUBE,
}

DEFAULT_MAX_ATTEMPTS = {
    HostPolicy.TWITCH: 50,
    HostPolicy.GOOGLE: 50,
    HostPolicy.YOUTUBE: 50,
    HostPolicy.OTHER: 50,
}

# Leaf values that can be sent again without consuming anything.
REPLAYABLE_VALUE_TYPES = (bytes, bytearray, str, int, float, bool)


@dataclass
class BackoffConfig:
    """Static backoff tables shared by every request of a client."""

    hosts: dict[str, HostPolicy] = field(default_factory=lambda: dict(DEFAULT_HOSTS))
    max_attempts: dict[HostPolicy, int] = field(
        default_factory=lambda: dict(DEFAULT_MAX_ATTEMPTS)
    )
    google_base: int = 2
    google_ceiling_seconds: int = 3600
    other_backoff_seconds: int = 5
    twitch_reset_header: str = "Ratelimit-Reset"
    match_subdomains: bool = False
    timeout: int = 30
    max_connections: int = 100

    def __post_init__(self):
        """Validate backoff configuration after initialization."""
        self.hosts = {
            domain.strip().lower(): policy
            for domain, policy in self.hosts.items()
        }
        if any(not domain for domain in self.hosts):
            raise ConfigurationError("Host domains cannot be empty", field="hosts")

        missing = [policy.value for policy in HostPolicy if policy not in self.max_attempts]
        if missing:
            raise ConfigurationError(
                f"Max attempts missing for policies: {', '.join(missing)}",
                field="max_attempts",
            )

        for policy, attempts in self.max_attempts.items():
            if attempts < 0:
                raise ConfigurationError(
                    f"Max attempts cannot be negative for policy '{policy.value}'",
                    field="max_attempts",
                )

        if self.google_base < 1:
            raise ConfigurationError("Google backoff base must be at least 1", field="google_base")

        if self.google_ceiling_seconds <= 0:
            raise ConfigurationError(
                "Google backoff ceiling must be positive", field="google_ceiling_seconds"
            )

        if self.other_backoff_seconds <= 0:
            raise ConfigurationError(
                "Fallback backoff must be positive", field="other_backoff_seconds"
            )

        if not self.twitch_reset_header:
            raise ConfigurationError(
                "Twitch reset header name cannot be empty", field="twitch_reset_header"
            )

        if self.timeout <= 0:
            raise ConfigurationError("Timeout must be positive", field="timeout")

        if self.max_connections <= 0:
            raise ConfigurationError(
                "Max connections must be positive", field="max_connections"
            )

    @classmethod
    def from_dict(
        cls, config_dict: dict[str, Any], config_file: str = ""
    ) -> "BackoffConfig":
        """Create BackoffConfig from dictionary.

        Policy names are given as strings, e.g. ``{"hosts": {"twitch.tv": "twitch"}}``.
        A ``hosts`` section replaces the default table; ``max_attempts`` entries
        override the defaults one policy at a time.

        Args:
          config_dict: Configuration dictionary
          config_file: Source file path for error reporting

        Returns:
          BackoffConfig instance

        Raises:
          ConfigurationError: If configuration is invalid
        """
        values = dict(config_dict)

        hosts_dict = values.pop("hosts", None)
        if hosts_dict is not None:
            if not isinstance(hosts_dict, dict):
                raise ConfigurationError(
                    "Hosts section must be a dictionary",
                    config_file=config_file,
                    field="hosts",
                )
            values["hosts"] = {
                str(domain): _policy(name, config_file, f"hosts.{domain}")
                for domain, name in hosts_dict.items()
            }

        attempts_dict = values.pop("max_attempts", None)
        if attempts_dict is not None:
            if not isinstance(attempts_dict, dict):
                raise ConfigurationError(
                    "Max attempts section must be a dictionary",
                    config_file=config_file,
                    field="max_attempts",
                )
            max_attempts = dict(DEFAULT_MAX_ATTEMPTS)
            for name, attempts in attempts_dict.items():
                max_attempts[_policy(name, config_file, f"max_attempts.{name}")] = attempts
            values["max_attempts"] = max_attempts

        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigurationError(
                f"Invalid backoff configuration: {e}",
                config_file=config_file,
            )
        except ConfigurationError as e:
            e.config_file = config_file
            raise

    @classmethod
    def from_file(cls, config_dir: Path, config_name: str = "default-backoff") -> "BackoffConfig":
        """Load configuration from a single file in ``config_dir``."""
        from .config.loader import ConfigLoader

        return ConfigLoader(config_dir).load_config(config_name)


def _policy(name: Any, config_file: str, field_path: str) -> HostPolicy:
    try:
        return HostPolicy.from_name(name)
    except ConfigurationError as e:
        e.config_file = config_file
        e.field = field_path
        raise


def _unreplayable_value(value: Any) -> Optional[Any]:
    """Return the first value in a request body that cannot be sent twice.

    Form mappings and lists of pairs are walked, so ``{"file": open(...)}``
    is caught by the file object it holds.
    """
    if value is None or isinstance(value, REPLAYABLE_VALUE_TYPES):
        return None
    if isinstance(value, Mapping):
        items = value.values()
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return value

    for item in items:
        blocker = _unreplayable_value(item)
        if blocker is not None:
            return blocker
    return None


@dataclass
class BackoffRequest:
    """An outbound request that can be sent again on every backoff attempt."""

    method: str
    url: Union[str, URL]
    headers: Optional[dict[str, str]] = None
    params: Optional[dict[str, Any]] = None
    data: Optional[Any] = None
    json: Optional[Any] = None

    def __post_init__(self):
        self.method = self.method.upper()
        if self.data is not None and self.json is not None:
            raise ValueError("data and json parameters can not be used at the same time")

    def try_clone(self) -> Union["Duplicable", "NotDuplicable"]:
        """Copy the request for another attempt, if its body allows it.

        Returns:
          Duplicable carrying an independent copy, or NotDuplicable naming why
          the body cannot be sent twice
        """
        blocker = _unreplayable_value(self.data)
        if blocker is not None:
            return NotDuplicable(
                reason=f"request body of type {type(blocker).__name__} cannot be replayed"
            )
        # URLs are immutable; headers and bodies are copied per attempt
        return Duplicable(
            request=replace(
                self,
                headers=copy.deepcopy(self.headers),
                params=copy.deepcopy(self.params),
                data=copy.deepcopy(self.data),
                json=copy.deepcopy(self.json),
            )
        )

    def to_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``aiohttp.ClientSession.request``."""
        kwargs = {
            "headers": self.headers,
            "params": self.params,
            "data": self.data,
            "json": self.json,
        }
        return {key: value for key, value in kwargs.items() if value is not None}


@dataclass(frozen=True)
class Duplicable:
    """A request copy that is safe to send."""

    request: BackoffRequest


@dataclass(frozen=True)
class NotDuplicable:
    """Marker for requests that can only be sent once."""

    reason: str
