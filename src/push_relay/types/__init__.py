"""Type definitions and protocols for push-relay.

This package provides:
- Data models (dataclasses)
- Protocol definitions (structural subtyping interfaces)
- Type aliases (PEP 695 modern syntax)
"""

from push_relay.types.aliases import (
    ConfigMap,
    CredentialState,
    DestinationSource,
)
from push_relay.types.models import (
    Credential,
    Destination,
    Notification,
    Provider,
    PushResult,
    Response,
    ResultKind,
    TokenState,
)
from push_relay.types.protocols import (
    HTTPClient,
    PushAdapter,
    PushService,
)

__all__ = [
    # Type aliases
    "ConfigMap",
    "CredentialState",
    "DestinationSource",
    # Data models
    "Credential",
    "Destination",
    "Notification",
    "Provider",
    "PushResult",
    "Response",
    "ResultKind",
    "TokenState",
    # Protocols
    "HTTPClient",
    "PushAdapter",
    "PushService",
]
