"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols that establish
contracts between the dispatch engine, push services, and the HTTP
transport without requiring inheritance.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable, Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from push_relay.types.models import (
    Destination,
    Notification,
    Provider,
    Response,
    TokenState,
)

if TYPE_CHECKING:
    from push_relay.core.results import ResultStream

type DestinationSource = Iterable[Destination] | AsyncIterable[Destination]


class HTTPClient(Protocol):
    """Protocol for HTTP client operations.

    Defines the single capability the push services need from the
    transport: send a POST with a raw body and read the full response.
    """

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
        """
        ...


@runtime_checkable
class PushAdapter(Protocol):
    """Gateway-specific operations driven by the dispatch engine."""

    async def ensure_token(self, provider: Provider) -> TokenState:
        """Make sure ``provider`` holds an unexpired bearer token.

        Returns:
            ``TokenState.REFRESHED`` when the provider record was updated and
            must be persisted, ``TokenState.CACHED`` otherwise

        Raises:
            BadProviderError: If a token cannot be obtained
        """
        ...

    def build_payload(self, notification: Notification | None) -> bytes:
        """Translate a notification into the serialized wire message.

        Raises:
            BadNotificationError: If the notification carries no usable data
        """
        ...

    async def send(self, provider: Provider, destination: Destination, payload: bytes) -> str:
        """Deliver ``payload`` to one destination.

        Returns:
            Gateway-assigned message identifier
        """
        ...


@runtime_checkable
class PushService(Protocol):
    """Contract every registered push service type implements."""

    @property
    def name(self) -> str:
        """Service type name used as the registry key."""
        ...

    def build_provider(self, settings: Mapping[str, str]) -> Provider:
        """Build a provider record from flat configuration keys."""
        ...

    def build_destination(self, settings: Mapping[str, str]) -> Destination:
        """Build a destination from flat configuration keys."""
        ...

    async def push(
        self,
        provider: Provider,
        destinations: DestinationSource,
        sink: ResultStream,
        notification: Notification | None,
    ) -> None:
        """Push one notification to every destination, writing results to ``sink``."""
        ...
