"""HTTP client abstraction for push gateway requests.

This module provides the aiohttp-backed implementation of the HTTPClient
Protocol. One ClientSession is shared by every request of a host process;
each request runs under its own deadline and its response is fully read
and released inside the request context, on success and failure alike.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Self

import aiohttp

from push_relay.types.models import Response


class AIOHTTPClient:
    """Async HTTP client implementing the HTTPClient Protocol with aiohttp.

    Example:
        >>> async with AIOHTTPClient() as client:
        ...     response = await client.post(
        ...         "https://gateway.example.com/messages",
        ...         body=b'{"data": {"k": "v"}}',
        ...         headers={"Content-Type": "application/json"},
        ...         timeout=10.0,
        ...     )
    """

    def __init__(
        self,
        *,
        default_timeout_seconds: float = 30.0,
        connection_limit: int = 100,
    ) -> None:
        """Initialize HTTP client.

        Args:
            default_timeout_seconds: Session-wide upper bound for a request (default: 30.0)
            connection_limit: Maximum simultaneous connections, 0 for unlimited (default: 100)
        """
        if default_timeout_seconds <= 0:
            msg = "default_timeout_seconds must be positive"
            raise ValueError(msg)
        if connection_limit < 0:
            msg = "connection_limit must not be negative"
            raise ValueError(msg)

        self._default_timeout_seconds: float = default_timeout_seconds
        self._connection_limit: int = connection_limit

        # aiohttp session (created in __aenter__)
        self._session: aiohttp.ClientSession | None = None

        self._logger: logging.Logger = logging.getLogger(__name__)

    async def __aenter__(self) -> Self:
        """Enter async context manager and create aiohttp session."""
        timeout = aiohttp.ClientTimeout(total=self._default_timeout_seconds)
        connector = aiohttp.TCPConnector(limit=self._connection_limit)
        self._session = aiohttp.ClientSession(timeout=timeout, connector=connector)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager and close the session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def post(
        self,
        url: str,
        *,
        body: bytes,
        headers: Mapping[str, str],
        timeout: float,
    ) -> Response:
        """Send HTTP POST request with timeout.

        Args:
            url: Target URL for the POST request
            body: Encoded request body
            headers: Request headers
            timeout: Request timeout in seconds (keyword-only)

        Returns:
            HTTP response with status, body, and headers

        Raises:
            TimeoutError: If request exceeds timeout
            ValueError: If URL is malformed
            aiohttp.ClientError: For connection issues
        """
        if self._session is None:
            msg = "HTTP client session not initialized. Use 'async with' context manager."
            raise RuntimeError(msg)

        self._logger.debug("Initiating POST request to %s", url)

        try:
            async with asyncio.timeout(timeout):
                async with self._session.post(url, data=body, headers=dict(headers)) as response:
                    content = await response.read()
                    return Response(
                        status=response.status,
                        body=content,
                        headers=dict(response.headers),
                    )
        except TimeoutError:
            self._logger.warning("Request to %s timed out after %.1fs", url, timeout)
            raise
        except aiohttp.InvalidURL as exc:
            self._logger.error("Invalid URL: %s", url)
            raise ValueError(f"Malformed URL: {url}") from exc
        except aiohttp.ClientError as exc:
            self._logger.warning("Client error for %s: %s", url, exc)
            raise
