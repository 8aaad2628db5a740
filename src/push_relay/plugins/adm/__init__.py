"""Amazon Device Messaging (ADM) push service plugin."""

from __future__ import annotations

import re
from typing import Final

from push_relay.core.config import DispatchConfig
from push_relay.plugins.adm.service import SERVICE_TYPE, ADMPushService, create_service
from push_relay.plugins.registry import PushServiceRegistry
from push_relay.types import HTTPClient, PushService
from push_relay.utils.sanitization import REDACTED, register_sanitization_pattern

__all__ = ["ADMPushService", "SERVICE_TYPE", "create_service", "install"]

# Login with Amazon access tokens: Atza|<opaque>
_ADM_ACCESS_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"Atza\|[A-Za-z0-9_\-+/=.|]+")


def install(
    registry: PushServiceRegistry[PushService],
    http_client: HTTPClient,
    settings: DispatchConfig | None = None,
) -> ADMPushService:
    """Create the ADM service and register it under ``adm``.

    Raises:
        ValueError: If a service is already registered under ``adm``
    """
    dispatch = settings or DispatchConfig()
    service = create_service(
        http_client=http_client,
        max_concurrency=dispatch.max_concurrency,
        token_timeout_seconds=dispatch.token_timeout_seconds,
        send_timeout_seconds=dispatch.send_timeout_seconds,
    )
    registry.register(SERVICE_TYPE, service)
    return service


# Registered at import time so tokens are redacted even before a service exists
register_sanitization_pattern(_ADM_ACCESS_TOKEN_PATTERN, REDACTED)
