"""ADM messaging API client.

Sends one serialized message to one device registration and returns the
gateway request identifier. Failures are raised as push errors scoped to
the provider (missing token) or the destination (everything else); the
client never retries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Final
from urllib.parse import quote

from push_relay.core.exceptions import (
    DeliveryError,
    DeliveryTimeoutError,
    GatewayRejectedError,
    InvalidDestinationError,
    NoTokenError,
)
from push_relay.types import Destination, HTTPClient, Provider
from push_relay.utils.sanitization import sanitize_exception

__all__ = ["ADMAPIClient", "ADM_SERVICE_URL", "REQUEST_ID_HEADER"]

ADM_SERVICE_URL: Final[str] = "https://api.amazon.com/messaging/registrations/"
REQUEST_ID_HEADER: Final[str] = "x-amzn-RequestId"

_MESSAGE_TYPE_VERSION: Final[str] = "com.amazon.device.messaging.ADMMessage@1.0"
_RESULT_TYPE_VERSION: Final[str] = "com.amazon.device.messaging.ADMSendResult@1.0"


@dataclass(slots=True)
class ADMAPIClient:
    """HTTP client wrapper for the ADM send-message endpoint."""

    http_client: HTTPClient
    service_url: str = ADM_SERVICE_URL
    request_timeout: float = 15.0
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            msg = "request_timeout must be positive"
            raise ValueError(msg)
        if not self.service_url.endswith("/"):
            self.service_url = f"{self.service_url}/"
        self._logger = logging.getLogger(__name__)

    def message_url(self, destination: Destination) -> str:
        """Return the send URL for a destination.

        Raises:
            InvalidDestinationError: If the registration id is empty
        """
        if not destination.registration_id:
            raise InvalidDestinationError(destination, "empty delivery point")
        return f"{self.service_url}{quote(destination.registration_id, safe='')}/messages"

    def build_headers(self, provider: Provider) -> dict[str, str]:
        """Return the request headers carrying the provider's bearer token.

        Raises:
            NoTokenError: If the provider holds no token
        """
        token = provider.credential.token
        if not token:
            raise NoTokenError(provider, "NoToken")
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-amzn-type-version": _MESSAGE_TYPE_VERSION,
            "x-amzn-accept-type": _RESULT_TYPE_VERSION,
            "Authorization": f"Bearer {token}",
        }

    async def send(self, provider: Provider, destination: Destination, payload: bytes) -> str:
        """POST ``payload`` to the destination and return the gateway request id.

        Raises:
            NoTokenError: If the provider holds no token
            InvalidDestinationError: If the registration id is empty
            GatewayRejectedError: If the gateway answers with a non-200 status
            DeliveryError: If the request fails in transport
        """
        headers = self.build_headers(provider)
        url = self.message_url(destination)

        try:
            response = await self.http_client.post(
                url,
                body=payload,
                headers=headers,
                timeout=self.request_timeout,
            )
        except TimeoutError as exc:
            raise DeliveryTimeoutError(destination, timeout_seconds=self.request_timeout) from exc
        except Exception as exc:
            raise DeliveryError(destination, sanitize_exception(exc)) from exc

        if response.status != 200:
            self._logger.debug(
                "ADM rejected message for %s (status=%d)",
                destination.subscriber,
                response.status,
            )
            raise GatewayRejectedError(destination, status=response.status, body=response.text())

        return response.header(REQUEST_ID_HEADER) or ""
