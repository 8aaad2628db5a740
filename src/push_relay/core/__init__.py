"""Provider-agnostic push engine: errors, result stream, dispatcher, config."""

from push_relay.core.dispatcher import PushDispatcher
from push_relay.core.exceptions import (
    AuthRejectedError,
    BadDestinationError,
    BadNotificationError,
    BadProviderError,
    ConfigError,
    DeliveryError,
    DeliveryTimeoutError,
    DestinationConfigError,
    EmptyNotificationError,
    GatewayRejectedError,
    InvalidDestinationError,
    MissingCredentialError,
    NoTokenError,
    ProviderConfigError,
    PushError,
    ResultStreamClosedError,
    TokenRequestError,
)
from push_relay.core.results import ResultStream

__all__ = [
    "AuthRejectedError",
    "BadDestinationError",
    "BadNotificationError",
    "BadProviderError",
    "ConfigError",
    "DeliveryError",
    "DeliveryTimeoutError",
    "DestinationConfigError",
    "EmptyNotificationError",
    "GatewayRejectedError",
    "InvalidDestinationError",
    "MissingCredentialError",
    "NoTokenError",
    "ProviderConfigError",
    "PushDispatcher",
    "PushError",
    "ResultStream",
    "ResultStreamClosedError",
    "TokenRequestError",
]
