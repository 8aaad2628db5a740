"""ADM push service.

Wires the ADM token manager, message builder, and API client into the
provider-agnostic dispatcher. The service is the adapter the dispatcher
drives and the entry registered under ``adm`` in the push service registry.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Final

from push_relay.core.dispatcher import PushDispatcher
from push_relay.core.results import ResultStream
from push_relay.plugins.adm.client import ADM_SERVICE_URL, ADMAPIClient
from push_relay.plugins.adm.config import parse_destination_settings, parse_provider_settings
from push_relay.plugins.adm.message import build_message
from push_relay.plugins.adm.token import ADM_TOKEN_URL, ADMTokenManager
from push_relay.types import (
    ConfigMap,
    Destination,
    DestinationSource,
    HTTPClient,
    Notification,
    Provider,
    TokenState,
)

__all__ = ["ADMPushService", "SERVICE_TYPE", "create_service"]

SERVICE_TYPE: Final[str] = "adm"


@dataclass(slots=True)
class ADMPushService:
    """Amazon Device Messaging push service.

    Attributes:
        http_client: Shared transport for token and send requests
        max_concurrency: Concurrent sends per push, None for one task per destination
        token_timeout_seconds: Deadline for the token exchange
        send_timeout_seconds: Deadline for one send
        token_url: Token endpoint override
        service_url: Messaging endpoint override
        clock: Returns the current Unix time
    """

    http_client: HTTPClient
    max_concurrency: int | None = 16
    token_timeout_seconds: float = 30.0
    send_timeout_seconds: float = 15.0
    token_url: str = ADM_TOKEN_URL
    service_url: str = ADM_SERVICE_URL
    clock: Callable[[], float] = time.time
    token_manager: ADMTokenManager = field(init=False, repr=False)
    client: ADMAPIClient = field(init=False, repr=False)
    dispatcher: PushDispatcher = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.token_manager = ADMTokenManager(
            http_client=self.http_client,
            token_url=self.token_url,
            request_timeout=self.token_timeout_seconds,
            clock=self.clock,
        )
        self.client = ADMAPIClient(
            http_client=self.http_client,
            service_url=self.service_url,
            request_timeout=self.send_timeout_seconds,
        )
        self.dispatcher = PushDispatcher(
            self,
            max_concurrency=self.max_concurrency,
            token_timeout_seconds=self.token_timeout_seconds,
            send_timeout_seconds=self.send_timeout_seconds,
        )

    @property
    def name(self) -> str:
        return SERVICE_TYPE

    def build_provider(self, settings: ConfigMap) -> Provider:
        """Build a provider from ``service``, ``clientid`` and ``clientsecret``.

        Raises:
            ProviderConfigError: If a key is missing or empty
        """
        config = parse_provider_settings(settings)
        return Provider(
            service_type=SERVICE_TYPE,
            service=config.service,
            client_id=config.clientid,
            client_secret=config.clientsecret,
        )

    def build_destination(self, settings: ConfigMap) -> Destination:
        """Build a destination from ``service``, ``subscriber`` and ``regid``.

        Raises:
            DestinationConfigError: If a key is missing or empty
        """
        config = parse_destination_settings(settings)
        return Destination(
            service=config.service,
            subscriber=config.subscriber,
            registration_id=config.regid,
        )

    async def ensure_token(self, provider: Provider) -> TokenState:
        return await self.token_manager.ensure_token(provider)

    def build_payload(self, notification: Notification | None) -> bytes:
        return build_message(notification).serialize()

    async def send(self, provider: Provider, destination: Destination, payload: bytes) -> str:
        return await self.client.send(provider, destination, payload)

    async def push(
        self,
        provider: Provider,
        destinations: DestinationSource,
        sink: ResultStream,
        notification: Notification | None,
    ) -> None:
        await self.dispatcher.push(provider, destinations, sink, notification)


def create_service(
    *,
    http_client: HTTPClient,
    max_concurrency: int | None = 16,
    token_timeout_seconds: float = 30.0,
    send_timeout_seconds: float = 15.0,
) -> ADMPushService:
    """Factory function for creating ADMPushService instances.

    Args:
        http_client: Shared HTTP transport (keyword-only)
        max_concurrency: Concurrent sends per push
        token_timeout_seconds: Deadline for the token exchange
        send_timeout_seconds: Deadline for one send

    Returns:
        Fully initialized ADMPushService instance

    Raises:
        ValueError: If a limit or deadline is not positive
    """
    return ADMPushService(
        http_client=http_client,
        max_concurrency=max_concurrency,
        token_timeout_seconds=token_timeout_seconds,
        send_timeout_seconds=send_timeout_seconds,
    )
