"""Application runner wiring configuration, services, and credential state."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping

from push_relay.app.state import CredentialStateStore
from push_relay.core.config import DispatchConfig, MainConfig
from push_relay.core.results import ResultStream
from push_relay.plugins import adm
from push_relay.plugins.registry import PushServiceRegistry
from push_relay.types import (
    Destination,
    HTTPClient,
    Notification,
    Provider,
    PushResult,
    PushService,
    ResultKind,
)
from push_relay.utils.logging import log_with_context

__all__ = ["PushRunner", "build_registry"]


def build_registry(
    http_client: HTTPClient,
    settings: DispatchConfig | None = None,
) -> PushServiceRegistry[PushService]:
    """Create a registry with every built-in push service installed."""
    registry: PushServiceRegistry[PushService] = PushServiceRegistry()
    _ = adm.install(registry, http_client, settings)
    return registry


class PushRunner:
    """Resolve configured providers and push notifications through them.

    Provider records are built lazily from the configuration and kept for
    the life of the runner, so the cached token and the per-provider lock
    are shared by every push to the same provider.
    """

    def __init__(
        self,
        config: MainConfig,
        http_client: HTTPClient,
        *,
        state_store: CredentialStateStore | None = None,
    ) -> None:
        self.config: MainConfig = config
        self.registry: PushServiceRegistry[PushService] = build_registry(http_client, config.dispatch)
        if state_store is None and config.state_file is not None:
            state_store = CredentialStateStore(config.state_file)
        self._state_store: CredentialStateStore | None = state_store
        self._providers: dict[str, tuple[PushService, Provider]] = {}
        self._logger: logging.Logger = logging.getLogger(__name__)

    def resolve(self, provider_name: str) -> tuple[PushService, Provider]:
        """Return the service and provider record for a configured provider.

        Raises:
            KeyError: If the provider or its service type is unknown
            ProviderConfigError: If the provider settings are invalid
        """
        cached = self._providers.get(provider_name)
        if cached is not None:
            return cached

        entry = self.config.providers.get(provider_name)
        if entry is None:
            known = ", ".join(sorted(self.config.providers)) or "none"
            msg = f"Provider {provider_name!r} is not configured (configured: {known})"
            raise KeyError(msg)

        service = self.registry.require(entry.type)
        provider = service.build_provider(entry.settings)
        if self._state_store is not None:
            _ = self._state_store.restore(provider)

        self._providers[provider_name] = (service, provider)
        return service, provider

    def build_destinations(
        self,
        provider_name: str,
        settings: Iterable[Mapping[str, str]],
    ) -> list[Destination]:
        """Build destinations, defaulting ``service`` to the provider's service.

        Raises:
            DestinationConfigError: If a destination is missing a required key
        """
        service, provider = self.resolve(provider_name)
        return [service.build_destination({"service": provider.service, **entry}) for entry in settings]

    async def send(
        self,
        provider_name: str,
        destinations: Iterable[Destination],
        notification: Notification | None,
    ) -> tuple[PushResult, ...]:
        """Push one notification and return every result in completion order.

        A refreshed credential is persisted once the push has finished.
        """
        service, provider = self.resolve(provider_name)
        sink = ResultStream()
        results: list[PushResult] = []

        async with asyncio.TaskGroup() as task_group:
            _ = task_group.create_task(service.push(provider, destinations, sink, notification))
            async for result in sink:
                results.append(result)

        if any(result.kind is ResultKind.PROVIDER_UPDATED for result in results):
            self._persist(provider)

        log_with_context(
            self._logger,
            logging.INFO,
            "Push finished",
            extra={
                "provider_name": provider.name,
                "results": len(results),
                "failures": sum(1 for result in results if result.failed),
            },
        )
        return tuple(results)

    def _persist(self, provider: Provider) -> None:
        if self._state_store is None:
            return
        self._state_store.save(provider)
