"""Structured logging support for the backoff client."""

import logging
import sys
from typing import Any, Dict, Optional

import structlog


class SensitiveDataFilter:
  """Masks credential headers (Twitch ``Client-Id``, OAuth ``Authorization``, API keys) in log context."""

  SENSITIVE_KEYS = ("authorization", "client_id", "api_key", "token", "secret", "cookie")

  @classmethod
  def filter_sensitive_data(cls, data: Any) -> Any:
    """Return ``data`` with the values of credential-like keys masked.

    Nested dictionaries, such as a ``headers`` entry, are filtered too.
    """
    if not isinstance(data, dict):
      return data
    return {
      key: cls._mask(value) if cls._is_sensitive_key(key) else cls.filter_sensitive_data(value)
      for key, value in data.items()
    }

  @classmethod
  def _is_sensitive_key(cls, key: Any) -> bool:
    normalized = str(key).lower().replace("-", "_")
    return any(sensitive in normalized for sensitive in cls.SENSITIVE_KEYS)

  @staticmethod
  def _mask(value: Any) -> str:
    # Values over 8 characters keep their first and last four
    text = str(value)
    if len(text) <= 8:
      return "[REDACTED]"
    return f"{text[:4]}...{text[-4:]}"


def configure_logging(level: str = "INFO", structured: bool = True) -> None:
  """Route structlog events through the standard library to stderr.

  Args:
    level: Threshold name (DEBUG, INFO, WARNING, ERROR)
    structured: Render JSON lines instead of the console format
  """
  numeric_level = getattr(logging, level.upper(), logging.INFO)

  renderer = structlog.processors.JSONRenderer() if structured else structlog.dev.ConsoleRenderer()
  structlog.configure(
    processors=[
      structlog.stdlib.filter_by_level,
      structlog.stdlib.add_logger_name,
      structlog.stdlib.add_log_level,
      structlog.processors.TimeStamper(fmt="iso"),
      structlog.processors.format_exc_info,
      _filter_sensitive_processor,
      renderer,
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
  )

  logging.basicConfig(
    level=numeric_level,
    handlers=[logging.StreamHandler(sys.stderr)],
    format="%(message)s",
  )

  # aiohttp logs every connection at debug level
  logging.getLogger("aiohttp").setLevel(logging.WARNING)


def _filter_sensitive_processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
  return SensitiveDataFilter.filter_sensitive_data(event_dict)


class BackoffLogger:
  """Logger for backoff decisions with bound request context."""

  def __init__(self, name: str, host: Optional[str] = None):
    """Initialize backoff logger with context.

    Args:
      name: Logger name
      host: Optional host policy name for context
    """
    self.name = name
    self.logger = structlog.get_logger(name)
    self.context: Dict[str, Any] = {}

    if host:
      self.context["host_policy"] = host

  def bind(self, **kwargs: Any) -> "BackoffLogger":
    """Bind additional context to the logger.

    Args:
      **kwargs: Context key-value pairs

    Returns:
      New logger instance with bound context
    """
    new_logger = BackoffLogger(self.name)
    new_logger.context = {**self.context, **kwargs}
    new_logger.logger = self.logger.bind(**SensitiveDataFilter.filter_sensitive_data(new_logger.context))
    return new_logger

  def debug(self, message: str, **kwargs: Any) -> None:
    self.logger.debug(message, **SensitiveDataFilter.filter_sensitive_data(kwargs))

  def info(self, message: str, **kwargs: Any) -> None:
    self.logger.info(message, **SensitiveDataFilter.filter_sensitive_data(kwargs))

  def warning(self, message: str, **kwargs: Any) -> None:
    self.logger.warning(message, **SensitiveDataFilter.filter_sensitive_data(kwargs))

  def error(self, message: str, **kwargs: Any) -> None:
    self.logger.error(message, **SensitiveDataFilter.filter_sensitive_data(kwargs))

  def log_request(
    self,
    method: str,
    url: str,
    attempt: int,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
  ) -> None:
    """Log an outgoing request attempt.

    Args:
      method: HTTP method
      url: Request URL
      attempt: Attempt number (1-based)
      headers: Request headers (filtered for credentials)
      **kwargs: Additional context
    """
    context = {
      "event_type": "request_sent",
      "method": method,
      "url": url,
      "attempt": attempt,
      **kwargs
    }

    if headers and is_debug_enabled():
      context["headers"] = dict(headers)

    self.debug("Request sent", **context)

  def log_throttle(self, status_code: int, policy: str, **kwargs: Any) -> None:
    """Log a response recognised as a rate-limit signal.

    Args:
      status_code: HTTP status code of the throttled response
      policy: Host policy that classified the response
      **kwargs: Additional context
    """
    self.warning(
      "Throttled response detected",
      event_type="throttle_detected",
      status_code=status_code,
      policy=policy,
      **kwargs
    )

  def log_backoff(self, delay_seconds: int, attempt: int, **kwargs: Any) -> None:
    """Log the wait before the next attempt."""
    self.info(
      f"Sleeping for {delay_seconds} seconds",
      event_type="backoff_sleep",
      delay_seconds=delay_seconds,
      attempt=attempt,
      **kwargs
    )

  def log_retry(self, attempt: int, **kwargs: Any) -> None:
    self.info(f"Backoff attempt #{attempt}", event_type="backoff_retry", attempt=attempt, **kwargs)

  def log_limit_exceeded(self, attempts: int, **kwargs: Any) -> None:
    self.error(
      "Backoff attempt limit reached",
      event_type="backoff_exceeded",
      attempts=attempts,
      **kwargs
    )

  def log_not_replayable(self, reason: str, method: str, url: str, **kwargs: Any) -> None:
    """Log that a request is sent once because it cannot be duplicated.

    Args:
      reason: Why the request cannot be duplicated
      method: HTTP method
      url: Request URL
      **kwargs: Additional context
    """
    self.warning(
      "Failed to clone request. No backoff possible.",
      event_type="backoff_disabled",
      reason=reason,
      method=method,
      url=url,
      **kwargs
    )


def get_backoff_logger(name: str, host: Optional[str] = None) -> BackoffLogger:
  """Get a backoff logger instance with optional host policy context.

  Args:
    name: Logger name
    host: Optional host policy name

  Returns:
    BackoffLogger instance
  """
  return BackoffLogger(name, host)


def is_debug_enabled() -> bool:
  """Check if debug logging is enabled."""
  return logging.getLogger().isEnabledFor(logging.DEBUG)
