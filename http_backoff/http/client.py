"""HTTP client with connection pooling and rate-limit backoff."""

import asyncio
from typing import Any, Dict, Optional, Union

import aiohttp
from aiohttp import ClientResponse, ClientTimeout, TCPConnector
from aiohttp.client_exceptions import ClientConnectorError, ClientError
from yarl import URL

from http_backoff.exceptions import NetworkError, RequestTimeoutError
from http_backoff.http.retry import BackoffExecutor
from http_backoff.logging import get_backoff_logger
from http_backoff.models import BackoffConfig, BackoffRequest, NotDuplicable


class BackoffClient:
  """HTTP client that waits out provider rate limits before giving up."""

  def __init__(
    self,
    config: Optional[BackoffConfig] = None,
    session: Optional[aiohttp.ClientSession] = None,
    executor: Optional[BackoffExecutor] = None,
  ):
    """Initialize backoff client.

    Args:
      config: Backoff tables and connection settings
      session: Existing session to send requests with; it is never closed
        by this client
      executor: Retry loop, built from ``config`` when omitted
    """
    self.config = config or BackoffConfig()
    self.max_connections = self.config.max_connections
    self.timeout = self.config.timeout
    self.session = session
    self._owns_session = session is None
    self.executor = executor or BackoffExecutor(self.config)
    self.logger = get_backoff_logger(__name__)

  async def _get_session(self) -> aiohttp.ClientSession:
    """Get or create aiohttp session with connection pooling.

    Returns:
      Configured ClientSession instance
    """
    if self.session is None:
      connector = TCPConnector(limit=self.max_connections)
      timeout = ClientTimeout(total=self.timeout)

      self.session = aiohttp.ClientSession(
        connector=connector,
        timeout=timeout
      )
      self._owns_session = True

    return self.session

  async def execute_with_backoff(self, request: BackoffRequest) -> ClientResponse:
    """Send a request, backing off while its host signals rate limiting.

    Requests whose body cannot be duplicated are sent exactly once and the
    raw response is returned, throttled or not.

    Args:
      request: Request to send

    Returns:
      First response that is not a rate-limit signal for the request's host

    Raises:
      NetworkError: For network-related errors
      RequestTimeoutError: For timeout errors
      MetadataError: When a rate-limit response has no usable reset time
      BackoffExceededError: When the attempt ceiling for the host is reached
    """
    clone = request.try_clone()
    if isinstance(clone, NotDuplicable):
      self.logger.log_not_replayable(clone.reason, request.method, str(request.url))
      return await self._make_request(request)

    return await self.executor.execute(self._make_request, clone.request)

  async def request(
    self,
    method: str,
    url: Union[str, URL],
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    data: Optional[Any] = None,
    json: Optional[Any] = None,
  ) -> ClientResponse:
    """Build a request from the arguments and send it with backoff."""
    return await self.execute_with_backoff(
      BackoffRequest(method, url, headers=headers, params=params, data=data, json=json)
    )

  async def get(
    self,
    url: Union[str, URL],
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
  ) -> ClientResponse:
    return await self.request("GET", url, headers=headers, params=params)

  async def post(
    self,
    url: Union[str, URL],
    json: Optional[Any] = None,
    data: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
  ) -> ClientResponse:
    return await self.request("POST", url, headers=headers, params=params, data=data, json=json)

  async def _make_request(self, request: BackoffRequest) -> ClientResponse:
    """Make one HTTP exchange using the session.

    Args:
      request: Request to send

    Returns:
      HTTP response

    Raises:
      NetworkError: For network-related errors
      RequestTimeoutError: For timeout errors
    """
    session = await self._get_session()

    try:
      # The caller reads and releases the response, so no async with here
      return await session.request(request.method, request.url, **request.to_kwargs())
    except asyncio.TimeoutError as e:
      raise RequestTimeoutError(f"Request timeout: {str(e)}", timeout_seconds=self.timeout, cause=e)
    except ClientConnectorError as e:
      raise NetworkError(f"Connection failed: {str(e)}", cause=e)
    except ClientError as e:
      raise NetworkError(f"HTTP request failed: {str(e)}", cause=e)

  async def close(self) -> None:
    """Close the HTTP session if this client created it."""
    if self.session is not None and self._owns_session:
      await self.session.close()
      self.session = None

  async def __aenter__(self) -> "BackoffClient":
    return self

  async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
    await self.close()
