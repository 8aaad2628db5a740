"""Unit tests for HTTP client abstraction.

Tests cover:
- Session lifecycle
- Basic POST requests with raw bodies
- Timeout handling
- Error mapping for malformed URLs and connection failures
"""

import asyncio
from unittest.mock import AsyncMock

import aiohttp
import pytest

from push_relay.utils.http_client import AIOHTTPClient


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create mock aiohttp ClientSession."""
    session = AsyncMock(spec=aiohttp.ClientSession)
    return session


@pytest.fixture
def mock_response() -> AsyncMock:
    """Create mock aiohttp ClientResponse."""
    response = AsyncMock()
    response.status = 200
    response.read = AsyncMock(return_value=b'{"registrationID": "regid-0"}')
    response.headers = {"Content-Type": "application/json", "x-amzn-RequestId": "req-1"}
    return response


@pytest.fixture
def client() -> AIOHTTPClient:
    """Create AIOHTTPClient instance for testing."""
    return AIOHTTPClient(default_timeout_seconds=5.0, connection_limit=10)


class TestAIOHTTPClientBasics:
    """Test basic HTTP client functionality."""

    async def test_context_manager_creates_session(self) -> None:
        """Test that async context manager creates aiohttp session."""
        client = AIOHTTPClient()

        async with client:
            assert client._session is not None  # pyright: ignore[reportPrivateUsage]  # testing internal state
            assert isinstance(client._session, aiohttp.ClientSession)  # pyright: ignore[reportPrivateUsage]  # testing internal state

        # Session should be closed after context exit
        assert client._session is None  # pyright: ignore[reportPrivateUsage]  # testing internal state

    async def test_context_manager_closes_session_on_error(self) -> None:
        """Test that session is closed even when exception occurs."""
        client = AIOHTTPClient()

        with pytest.raises(ValueError, match="Test error"):
            async with client:
                assert client._session is not None  # pyright: ignore[reportPrivateUsage]  # testing internal state
                raise ValueError("Test error")

        assert client._session is None  # pyright: ignore[reportPrivateUsage]  # testing internal state

    async def test_post_without_session_raises_error(self, client: AIOHTTPClient) -> None:
        """Test that post() raises error if session not initialized."""
        with pytest.raises(RuntimeError, match="session not initialized"):
            _ = await client.post("https://example.com", body=b"", headers={}, timeout=5.0)

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"default_timeout_seconds": 0}, "default_timeout_seconds"),
            ({"connection_limit": -1}, "connection_limit"),
        ],
    )
    def test_invalid_settings_rejected(self, kwargs: dict[str, float], message: str) -> None:
        with pytest.raises(ValueError, match=message):
            _ = AIOHTTPClient(**kwargs)  # pyright: ignore[reportArgumentType]


class TestPostMethod:
    """Test basic POST method functionality."""

    async def test_post_success(self, client: AIOHTTPClient, mock_session: AsyncMock, mock_response: AsyncMock) -> None:
        """Test successful POST request returns the raw body and headers."""
        mock_session.post.return_value.__aenter__.return_value = mock_response  # pyright: ignore[reportAny]  # mock object
        client._session = mock_session  # pyright: ignore[reportPrivateUsage]  # testing internal state

        response = await client.post(
            "https://gateway.example.com/messages",
            body=b'{"data":{"msg":"hello"}}',
            headers={"Content-Type": "application/json"},
            timeout=5.0,
        )

        assert response.status == 200
        assert response.body == b'{"registrationID": "regid-0"}'
        assert response.header("X-Amzn-RequestId") == "req-1"
        mock_session.post.assert_called_once_with(  # pyright: ignore[reportAny]  # mock method
            "https://gateway.example.com/messages",
            data=b'{"data":{"msg":"hello"}}',
            headers={"Content-Type": "application/json"},
        )

    async def test_post_error_status_is_returned(
        self,
        client: AIOHTTPClient,
        mock_session: AsyncMock,
        mock_response: AsyncMock,
    ) -> None:
        """Non-2xx responses are returned to the caller, not raised."""
        mock_response.status = 400
        mock_response.read = AsyncMock(return_value=b'{"reason": "InvalidRegistrationId"}')
        mock_session.post.return_value.__aenter__.return_value = mock_response  # pyright: ignore[reportAny]  # mock object
        client._session = mock_session  # pyright: ignore[reportPrivateUsage]  # testing internal state

        response = await client.post("https://gateway.example.com/messages", body=b"{}", headers={}, timeout=5.0)

        assert response.status == 400
        assert response.body == b'{"reason": "InvalidRegistrationId"}'
        assert response.text() == '{"reason": "InvalidRegistrationId"}'

    async def test_post_timeout(self, client: AIOHTTPClient, mock_session: AsyncMock) -> None:
        """Test POST request timeout handling."""

        async def slow_request(*args: object, **kwargs: object) -> None:  # pyright: ignore[reportUnusedParameter]
            await asyncio.sleep(10)

        mock_session.post.return_value.__aenter__.side_effect = slow_request  # pyright: ignore[reportAny]  # mock object
        client._session = mock_session  # pyright: ignore[reportPrivateUsage]  # testing internal state

        with pytest.raises(TimeoutError):
            _ = await client.post("https://gateway.example.com/messages", body=b"{}", headers={}, timeout=0.1)

    async def test_post_invalid_url(self, client: AIOHTTPClient, mock_session: AsyncMock) -> None:
        """Test POST with invalid URL raises ValueError."""
        mock_session.post.side_effect = aiohttp.InvalidURL("invalid")  # pyright: ignore[reportAny]  # mock object
        client._session = mock_session  # pyright: ignore[reportPrivateUsage]  # testing internal state

        with pytest.raises(ValueError, match="Malformed URL"):
            _ = await client.post("invalid-url", body=b"{}", headers={}, timeout=5.0)

    async def test_post_connection_error(self, client: AIOHTTPClient, mock_session: AsyncMock) -> None:
        """Test POST with connection error propagates exception."""
        mock_session.post.side_effect = aiohttp.ClientConnectionError("Connection refused")  # pyright: ignore[reportAny]  # mock object
        client._session = mock_session  # pyright: ignore[reportPrivateUsage]  # testing internal state

        with pytest.raises(aiohttp.ClientConnectionError):
            _ = await client.post("https://gateway.example.com/messages", body=b"{}", headers={}, timeout=5.0)
