"""ADM OAuth2 client-credentials token lifecycle.

The token manager keeps one bearer token per provider record. A token that
is still valid is reused without any network traffic; otherwise a single
exchange against the Login with Amazon token endpoint is performed while
holding the provider's lock, so concurrent pushes for the same provider
never request more than one token.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Final
from urllib.parse import urlencode

from pydantic import BaseModel, ValidationError

from push_relay.core.exceptions import (
    AuthRejectedError,
    MissingCredentialError,
    TokenRequestError,
)
from push_relay.types import HTTPClient, Provider, Response, TokenState
from push_relay.utils.logging import log_with_context
from push_relay.utils.sanitization import sanitize_exception, sanitize_text

__all__ = [
    "ADM_SCOPE",
    "ADM_TOKEN_URL",
    "ADMTokenManager",
    "EXPIRY_MARGIN_SECONDS",
]

ADM_TOKEN_URL: Final[str] = "https://api.amazon.com/auth/O2/token"
ADM_SCOPE: Final[str] = "messaging:push"

# Tokens are treated as expired this many seconds before the gateway says so
EXPIRY_MARGIN_SECONDS: Final[int] = 60

_INVALID_SCOPE: Final[str] = "INVALID_SCOPE"
_INVALID_SCOPE_EXPLANATION: Final[str] = (
    "ADM is not enabled. Enable it on the Amazon Mobile App Distribution Portal"
)


class TokenGrant(BaseModel):
    """Successful token endpoint response."""

    access_token: str
    expires_in: int
    scope: str = ""
    token_type: str = ""


class TokenFailure(BaseModel):
    """Token endpoint error response."""

    error: str = ""
    error_description: str = ""


@dataclass(slots=True)
class ADMTokenManager:
    """Obtain and cache bearer tokens for ADM providers.

    Attributes:
        http_client: Transport used for the token exchange
        token_url: Token endpoint
        scope: Requested OAuth2 scope
        request_timeout: Transport deadline for one exchange in seconds
        clock: Returns the current Unix time
    """

    http_client: HTTPClient
    token_url: str = ADM_TOKEN_URL
    scope: str = ADM_SCOPE
    request_timeout: float = 30.0
    clock: Callable[[], float] = time.time
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            msg = "request_timeout must be positive"
            raise ValueError(msg)
        self._logger = logging.getLogger(__name__)

    async def ensure_token(self, provider: Provider) -> TokenState:
        """Return ``CACHED`` for a valid token, otherwise exchange credentials.

        Raises:
            MissingCredentialError: If the client id or secret is empty
            AuthRejectedError: If the token endpoint answers with a non-200 status
            TokenRequestError: If the exchange fails in transport or the grant cannot be decoded
        """
        if provider.credential.is_valid(self.clock()):
            return TokenState.CACHED

        async with provider.token_lock:
            # Another push may have refreshed the token while we waited
            if provider.credential.is_valid(self.clock()):
                return TokenState.CACHED
            await self._request_token(provider)
            return TokenState.REFRESHED

    async def _request_token(self, provider: Provider) -> None:
        if not provider.client_id:
            raise MissingCredentialError(provider, "NoClientID")
        if not provider.client_secret:
            raise MissingCredentialError(provider, "NoClientSecret")

        body = urlencode(
            {
                "grant_type": "client_credentials",
                "scope": self.scope,
                "client_id": provider.client_id,
                "client_secret": provider.client_secret,
            }
        ).encode("ascii")

        self._logger.debug("Requesting ADM token for %s", provider.name)
        try:
            response = await self.http_client.post(
                self.token_url,
                body=body,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.request_timeout,
            )
        except TimeoutError as exc:
            msg = f"token request timed out after {self.request_timeout:.2f}s"
            raise TokenRequestError(provider, msg) from exc
        except Exception as exc:
            # aiohttp.ClientError, malformed URL, connection failures
            raise TokenRequestError(provider, sanitize_exception(exc)) from exc

        if response.status != 200:
            raise self._rejection(provider, response)

        try:
            grant = TokenGrant.model_validate_json(response.body)
        except ValidationError as exc:
            msg = f"undecodable token response: {exc.error_count()} validation error(s)"
            raise TokenRequestError(provider, msg) from exc

        expires_at = int(self.clock()) + grant.expires_in - EXPIRY_MARGIN_SECONDS
        provider.credential.token = grant.access_token
        provider.credential.token_type = grant.token_type or None
        provider.credential.expires_at = expires_at

        log_with_context(
            self._logger,
            logging.INFO,
            "Obtained ADM token",
            extra={
                "provider_name": provider.name,
                "expires_at": expires_at,
                "granted_scope": grant.scope,
            },
        )

    def _rejection(self, provider: Provider, response: Response) -> AuthRejectedError:
        try:
            failure = TokenFailure.model_validate_json(response.body)
        except ValidationError:
            log_with_context(
                self._logger,
                logging.WARNING,
                "ADM token request rejected with undecodable body",
                extra={"provider_name": provider.name, "status": response.status},
            )
            return AuthRejectedError(
                provider,
                f"{response.status}:",
                status=response.status,
                description=sanitize_text(response.text()) or None,
            )

        explanation = failure.error.upper()
        if explanation == _INVALID_SCOPE:
            explanation = _INVALID_SCOPE_EXPLANATION

        log_with_context(
            self._logger,
            logging.WARNING,
            "ADM token request rejected",
            extra={
                "provider_name": provider.name,
                "status": response.status,
                "error_code": failure.error,
            },
        )
        return AuthRejectedError(
            provider,
            f"{response.status}:{explanation}",
            status=response.status,
            description=failure.error_description or None,
        )
