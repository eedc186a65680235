"""Retry loop that backs off on host-specific rate-limit responses."""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from aiohttp import ClientResponse

from http_backoff.exceptions import BackoffExceededError, MetadataError
from http_backoff.logging import get_backoff_logger
from http_backoff.models import BackoffConfig, BackoffRequest, NotDuplicable
from http_backoff.policy import backoff_seconds, classify_host, is_throttled, limit_reached

SendFunc = Callable[[BackoffRequest], Awaitable[ClientResponse]]


class BackoffExecutor:
  """Re-sends a request while its host keeps answering with rate-limit signals."""

  def __init__(
    self,
    config: Optional[BackoffConfig] = None,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    clock: Optional[Callable[[], float]] = None,
  ):
    """Initialize backoff executor.

    Args:
      config: Backoff tables, defaults to the built-in ones
      sleep: Coroutine used to wait between attempts
      clock: Returns the current Unix time, used for reset-header waits
    """
    self.config = config or BackoffConfig()
    self.sleep = sleep or asyncio.sleep
    self.clock = clock or time.time
    self.logger = get_backoff_logger(__name__)

  async def execute(self, send: SendFunc, request: BackoffRequest) -> ClientResponse:
    """Send ``request`` and back off until the response is not throttled.

    The host is classified once. Each attempt gets its own copy of the
    request, and throttled responses are released before sleeping.

    Args:
      send: Async function that performs one HTTP exchange
      request: Replayable request to send

    Returns:
      The first response that is not a throttle signal for the host

    Raises:
      BackoffExceededError: When the attempt ceiling is reached
      MetadataError: When the wait cannot be computed from the response
      TransportError: Raised by ``send``, never retried
      ValueError: If the request body cannot be replayed
    """
    policy = classify_host(request.url, self.config)
    logger = self.logger.bind(host_policy=policy.value, method=request.method, url=str(request.url))

    attempt = 1
    logger.log_request(request.method, str(request.url), attempt, headers=request.headers)
    response = await send(self._replay(request))
    while is_throttled(response, policy):
      if limit_reached(attempt, policy, self.config):
        response.release()
        logger.log_limit_exceeded(attempt)
        raise BackoffExceededError(attempt)

      try:
        delay = backoff_seconds(response, policy, attempt, self.config, now=self.clock())
      except MetadataError as e:
        response.release()
        logger.error("Could not compute backoff", error=str(e), status_code=response.status)
        raise

      response.release()
      logger.log_backoff(delay, attempt)
      await self.sleep(delay)

      attempt += 1
      logger.log_retry(attempt)
      logger.log_request(request.method, str(request.url), attempt, headers=request.headers)
      response = await send(self._replay(request))

    return response

  @staticmethod
  def _replay(request: BackoffRequest) -> BackoffRequest:
    clone = request.try_clone()
    if isinstance(clone, NotDuplicable):
      raise ValueError(f"Cannot back off on a request that is not replayable: {clone.reason}")
    return clone.request
