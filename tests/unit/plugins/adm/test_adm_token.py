"""Tests for the ADM token manager."""

from __future__ import annotations

import asyncio

import pytest

from push_relay.core.exceptions import AuthRejectedError, MissingCredentialError, TokenRequestError
from push_relay.plugins.adm.token import ADM_SCOPE, ADM_TOKEN_URL, EXPIRY_MARGIN_SECONDS, ADMTokenManager
from push_relay.types import Response, TokenState
from tests.fixtures.push_fakes import (
    FakeHTTPClient,
    RecordedRequest,
    json_response,
    make_provider,
    token_response,
)

NOW = 1_700_000_000


def _manager(http_client: FakeHTTPClient) -> ADMTokenManager:
    return ADMTokenManager(http_client=http_client, clock=lambda: float(NOW))


async def _grant(request: RecordedRequest) -> Response:
    _ = request
    return token_response()


class TestCachedToken:
    async def test_valid_token_reused_without_request(self, http_client: FakeHTTPClient) -> None:
        provider = make_provider(token="Atza|cached", expires_at=NOW + 10)

        state = await _manager(http_client).ensure_token(provider)

        assert state is TokenState.CACHED
        assert http_client.requests == []
        assert provider.credential.token == "Atza|cached"

    async def test_token_expiring_now_is_refreshed(self, http_client: FakeHTTPClient) -> None:
        http_client.handler = _grant
        provider = make_provider(token="Atza|old", expires_at=NOW)

        state = await _manager(http_client).ensure_token(provider)

        assert state is TokenState.REFRESHED
        assert provider.credential.token == "Atza|token-1"


class TestTokenExchange:
    async def test_request_format(self, http_client: FakeHTTPClient) -> None:
        http_client.handler = _grant
        provider = make_provider()

        _ = await _manager(http_client).ensure_token(provider)

        assert len(http_client.requests) == 1
        request = http_client.requests[0]
        assert request.url == ADM_TOKEN_URL
        assert request.headers == {"Content-Type": "application/x-www-form-urlencoded"}
        assert request.timeout == 30.0
        assert request.form() == {
            "grant_type": "client_credentials",
            "scope": ADM_SCOPE,
            "client_id": "amzn1.application-oa2-client.abc",
            "client_secret": "s3cr3t",
        }

    async def test_credential_stored_with_margin(self, http_client: FakeHTTPClient) -> None:
        http_client.handler = _grant
        provider = make_provider()

        state = await _manager(http_client).ensure_token(provider)

        assert state is TokenState.REFRESHED
        assert provider.credential.token == "Atza|token-1"
        assert provider.credential.token_type == "bearer"
        assert provider.credential.expires_at == NOW + 3600 - EXPIRY_MARGIN_SECONDS

    async def test_missing_token_type_stored_as_none(self, http_client: FakeHTTPClient) -> None:
        async def handler(request: RecordedRequest) -> Response:
            _ = request
            return json_response(200, {"access_token": "Atza|bare", "expires_in": 120})

        http_client.handler = handler
        provider = make_provider()

        _ = await _manager(http_client).ensure_token(provider)

        assert provider.credential.token_type is None
        assert provider.credential.expires_at == NOW + 60

    async def test_concurrent_checks_share_one_exchange(self) -> None:
        async def slow_grant(request: RecordedRequest) -> Response:
            _ = request
            await asyncio.sleep(0.01)
            return token_response()

        http_client = FakeHTTPClient(slow_grant)
        manager = _manager(http_client)
        provider = make_provider()

        states = await asyncio.gather(*(manager.ensure_token(provider) for _ in range(5)))

        assert len(http_client.requests) == 1
        assert states.count(TokenState.REFRESHED) == 1
        assert states.count(TokenState.CACHED) == 4

    def test_rejects_non_positive_timeout(self, http_client: FakeHTTPClient) -> None:
        with pytest.raises(ValueError, match="request_timeout"):
            _ = ADMTokenManager(http_client=http_client, request_timeout=0)


class TestTokenFailures:
    @pytest.mark.parametrize(
        ("client_id", "client_secret", "reason"),
        [
            ("", "s3cr3t", "NoClientID"),
            ("amzn1.application-oa2-client.abc", "", "NoClientSecret"),
        ],
    )
    async def test_missing_credentials_fail_before_request(
        self,
        http_client: FakeHTTPClient,
        client_id: str,
        client_secret: str,
        reason: str,
    ) -> None:
        provider = make_provider(client_id=client_id, client_secret=client_secret)

        with pytest.raises(MissingCredentialError) as exc_info:
            _ = await _manager(http_client).ensure_token(provider)

        assert exc_info.value.reason == reason
        assert http_client.requests == []

    async def test_invalid_scope_explained(self, http_client: FakeHTTPClient) -> None:
        async def handler(request: RecordedRequest) -> Response:
            _ = request
            return json_response(400, {"error": "invalid_scope", "error_description": "scope not allowed"})

        http_client.handler = handler

        with pytest.raises(AuthRejectedError) as exc_info:
            _ = await _manager(http_client).ensure_token(make_provider())

        error = exc_info.value
        assert error.reason.startswith("400:ADM is not enabled")
        assert error.status == 400
        assert error.description == "scope not allowed"

    async def test_rejection_code_uppercased(self, http_client: FakeHTTPClient) -> None:
        async def handler(request: RecordedRequest) -> Response:
            _ = request
            return json_response(401, {"error": "invalid_client"})

        http_client.handler = handler
        provider = make_provider()

        with pytest.raises(AuthRejectedError) as exc_info:
            _ = await _manager(http_client).ensure_token(provider)

        assert exc_info.value.reason == "401:INVALID_CLIENT"
        assert exc_info.value.description is None
        assert provider.credential.token is None

    async def test_undecodable_error_response(self, http_client: FakeHTTPClient) -> None:
        """A non-200 status is a credential rejection even when the body is not a token error."""

        async def handler(request: RecordedRequest) -> Response:
            _ = request
            return Response(status=503, body=b"<html>unavailable</html>", headers={})

        http_client.handler = handler
        provider = make_provider()

        with pytest.raises(AuthRejectedError) as exc_info:
            _ = await _manager(http_client).ensure_token(provider)

        error = exc_info.value
        assert error.reason == "503:"
        assert error.status == 503
        assert error.description == "<html>unavailable</html>"
        assert error.provider is provider
        assert provider.credential.token is None

    async def test_empty_error_response(self, http_client: FakeHTTPClient) -> None:
        async def handler(request: RecordedRequest) -> Response:
            _ = request
            return Response(status=401, body=b"", headers={})

        http_client.handler = handler

        with pytest.raises(AuthRejectedError) as exc_info:
            _ = await _manager(http_client).ensure_token(make_provider())

        assert exc_info.value.reason == "401:"
        assert exc_info.value.description is None

    async def test_undecodable_error_response_redacts_credentials(self, http_client: FakeHTTPClient) -> None:
        async def handler(request: RecordedRequest) -> Response:
            _ = request
            return Response(status=400, body=b"bad client_secret=s3cr3t", headers={})

        http_client.handler = handler

        with pytest.raises(AuthRejectedError) as exc_info:
            _ = await _manager(http_client).ensure_token(make_provider())

        assert exc_info.value.description is not None
        assert "s3cr3t" not in exc_info.value.description

    async def test_undecodable_success_response(self, http_client: FakeHTTPClient) -> None:
        async def handler(request: RecordedRequest) -> Response:
            _ = request
            return json_response(200, {"token_type": "bearer"})

        http_client.handler = handler

        with pytest.raises(TokenRequestError, match="undecodable token response"):
            _ = await _manager(http_client).ensure_token(make_provider())

    async def test_transport_timeout(self, http_client: FakeHTTPClient) -> None:
        async def handler(request: RecordedRequest) -> Response:
            _ = request
            raise TimeoutError

        http_client.handler = handler

        with pytest.raises(TokenRequestError, match="token request timed out after 30.00s"):
            _ = await _manager(http_client).ensure_token(make_provider())

    async def test_transport_error_is_sanitized(self, http_client: FakeHTTPClient) -> None:
        async def handler(request: RecordedRequest) -> Response:
            _ = request
            raise ConnectionError("reset while sending client_secret=s3cr3t")

        http_client.handler = handler

        with pytest.raises(TokenRequestError) as exc_info:
            _ = await _manager(http_client).ensure_token(make_provider())

        assert "ConnectionError" in exc_info.value.reason
        assert "s3cr3t" not in str(exc_info.value)
