"""Error taxonomy for push delivery.

Errors fall into two groups. Provider-level errors (bad configuration,
rejected credentials, unusable notification) abort a whole batch and are
reported once. Destination-level errors are isolated to the destination
that raised them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, override

from push_relay.utils.sanitization import sanitize_text

if TYPE_CHECKING:
    from push_relay.types.models import Destination, Provider


class PushError(Exception):
    """Base exception for all push-related errors."""

    def __init__(self, reason: str, context: Mapping[str, object] | None = None) -> None:
        """Initialize PushError.

        Args:
            reason: Short machine-friendly reason (e.g. ``NoClientID``) or message
            context: Additional context information for debugging
        """
        super().__init__(reason)
        self.reason: str = reason
        self.context: dict[str, object] = dict(context or {})

    @override
    def __str__(self) -> str:
        if not self.context:
            return self.reason
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.reason} ({details})"


class ConfigError(PushError):
    """Raised when a flat configuration map is missing required fields."""


class ProviderConfigError(ConfigError):
    """Raised when a provider configuration map is invalid."""


class DestinationConfigError(ConfigError):
    """Raised when a destination configuration map is invalid."""


class BadProviderError(PushError):
    """Base exception for failures attributable to the provider account."""

    def __init__(
        self,
        provider: Provider,
        reason: str,
        context: Mapping[str, object] | None = None,
    ) -> None:
        full_context: dict[str, object] = {"provider": provider.name}
        full_context.update(context or {})
        super().__init__(reason, full_context)
        self.provider: Provider = provider


class MissingCredentialError(BadProviderError):
    """Raised when the client id or client secret is absent."""


class AuthRejectedError(BadProviderError):
    """Raised when the gateway rejects the client credentials or scope."""

    def __init__(
        self,
        provider: Provider,
        reason: str,
        *,
        status: int,
        description: str | None = None,
    ) -> None:
        context: dict[str, object] = {"status": status}
        if description:
            context["description"] = description
        super().__init__(provider, reason, context)
        self.status: int = status
        self.description: str | None = description


class TokenRequestError(BadProviderError):
    """Raised when the token exchange fails in transport or decoding."""


class NoTokenError(BadProviderError):
    """Raised when a send is attempted without a cached token."""


class BadNotificationError(PushError):
    """Base exception for notifications that cannot be sent."""


class EmptyNotificationError(BadNotificationError):
    """Raised when a notification has no application data."""

    def __init__(self, reason: str = "empty notification") -> None:
        super().__init__(reason)


class BadDestinationError(PushError):
    """Base exception for destinations that cannot be addressed."""

    def __init__(
        self,
        destination: Destination | None,
        reason: str,
        context: Mapping[str, object] | None = None,
    ) -> None:
        full_context: dict[str, object] = {}
        if destination is not None:
            full_context["subscriber"] = destination.subscriber
        full_context.update(context or {})
        super().__init__(reason, full_context)
        self.destination: Destination | None = destination


class InvalidDestinationError(BadDestinationError):
    """Raised when a destination lacks a registration identifier."""


class DeliveryError(PushError):
    """Raised when delivery to one destination fails."""

    def __init__(
        self,
        destination: Destination | None,
        reason: str,
        context: Mapping[str, object] | None = None,
    ) -> None:
        full_context: dict[str, object] = {}
        if destination is not None:
            full_context["subscriber"] = destination.subscriber
        full_context.update(context or {})
        super().__init__(reason, full_context)
        self.destination: Destination | None = destination


class DeliveryTimeoutError(DeliveryError):
    """Raised when delivery to one destination exceeds its deadline."""

    def __init__(self, destination: Destination | None, *, timeout_seconds: float) -> None:
        super().__init__(
            destination,
            f"delivery timed out after {timeout_seconds:.2f}s",
            {"timeout_seconds": timeout_seconds},
        )
        self.timeout_seconds: float = timeout_seconds


class GatewayRejectedError(DeliveryError):
    """Raised when the gateway answers a send with a non-success status.

    ``body`` keeps the raw response text; the message has credentials redacted.
    """

    def __init__(self, destination: Destination | None, *, status: int, body: str) -> None:
        super().__init__(destination, f"{status}: {sanitize_text(body)}", {"status": status})
        self.status: int = status
        self.body: str = body


class ResultStreamClosedError(RuntimeError):
    """Raised when writing to or closing an already closed result stream."""
