"""Host-aware throttle detection and backoff calculation.

Every function here is pure apart from logging: they read the response and the
static ``BackoffConfig`` tables and never keep state between calls.
"""

import re
import time
from datetime import datetime, timezone
from typing import Optional, Union

from aiohttp import ClientResponse
from yarl import URL

from http_backoff.exceptions import MetadataError
from http_backoff.logging import get_backoff_logger
from http_backoff.models import BackoffConfig, HostPolicy

logger = get_backoff_logger(__name__)

# ASCII decimal seconds only; int() alone would also take "1_000" and non-ASCII digits
TIMESTAMP_PATTERN = re.compile(r"[+-]?[0-9]+")


def classify_host(url: Union[str, URL], config: BackoffConfig) -> HostPolicy:
  """Map the host of a request URL to its backoff policy.

  Matching is an exact, case-insensitive comparison against ``config.hosts``;
  a fully qualified ``twitch.tv.`` does not match ``twitch.tv``.
  With ``config.match_subdomains`` enabled, ``api.twitch.tv`` also matches a
  ``twitch.tv`` entry. Missing or unparseable hosts map to ``OTHER``.

  Args:
    url: Request URL
    config: Backoff configuration holding the host table

  Returns:
    Host policy for the URL
  """
  try:
    host = URL(str(url)).host
  except (TypeError, ValueError):
    return HostPolicy.OTHER

  if not host:
    return HostPolicy.OTHER

  host = host.lower()
  policy = config.hosts.get(host)
  if policy is not None:
    return policy

  if config.match_subdomains:
    for domain, policy in config.hosts.items():
      if host.endswith(f".{domain}"):
        return policy

  return HostPolicy.OTHER


def is_throttled(response: ClientResponse, policy: HostPolicy) -> bool:
  """Determine if a response is a rate-limit signal for its host policy.

  Args:
    response: Response to inspect
    policy: Policy of the request's host

  Returns:
    True if the request should be retried after a backoff
  """
  status = response.status
  if 200 <= status < 300:
    return False

  if policy is HostPolicy.TWITCH:
    return status == 429

  if policy in (HostPolicy.GOOGLE, HostPolicy.YOUTUBE):
    # 400 and 403 are both treated as quota errors for these APIs
    if status not in (400, 403):
      return False
    logger.log_throttle(
      status,
      policy.value,
      url=str(response.url),
      reason=response.reason,
    )
    return True

  return False


def backoff_seconds(
  response: ClientResponse,
  policy: HostPolicy,
  attempt: int,
  config: BackoffConfig,
  now: Optional[float] = None,
) -> int:
  """Calculate how long to wait before the next attempt.

  Args:
    response: The throttled response
    policy: Policy of the request's host
    attempt: Current attempt number (1-based)
    config: Backoff configuration
    now: Current Unix time, defaults to ``time.time()``

  Returns:
    Whole seconds to wait, always at least 1

  Raises:
    MetadataError: If a Twitch response has no usable reset header
  """
  if policy is HostPolicy.TWITCH:
    reset = twitch_reset_timestamp(response, config.twitch_reset_header)
    current = time.time() if now is None else now
    wait = int(reset - current)
    return wait if wait > 0 else 1

  if policy in (HostPolicy.GOOGLE, HostPolicy.YOUTUBE):
    return min(config.google_base ** attempt, config.google_ceiling_seconds)

  return config.other_backoff_seconds


def twitch_reset_timestamp(response: ClientResponse, header: str = "Ratelimit-Reset") -> int:
  """Read the Unix timestamp at which the Twitch rate-limit bucket refills.

  Args:
    response: Throttled Twitch response
    header: Name of the reset header

  Returns:
    Reset time as Unix seconds (UTC)

  Raises:
    MetadataError: If the header is absent, not an integer, or out of range
  """
  value = response.headers.get(header)
  if value is None:
    raise MetadataError(f"Missing {header} header on throttled response", header=header)

  text = str(value).strip()
  if not TIMESTAMP_PATTERN.fullmatch(text):
    raise MetadataError(
      f"Invalid {header} header value: {value!r}", header=header, value=str(value)
    )
  timestamp = int(text)

  try:
    datetime.fromtimestamp(timestamp, tz=timezone.utc)
  except (OverflowError, OSError, ValueError) as e:
    raise MetadataError(
      "Could not convert the provided timestamp", header=header, value=str(value), cause=e
    )

  return timestamp


def limit_reached(attempt: int, policy: HostPolicy, config: BackoffConfig) -> bool:
  """Check whether ``attempt`` is past the ceiling for ``policy``."""
  return attempt > config.max_attempts[policy]
