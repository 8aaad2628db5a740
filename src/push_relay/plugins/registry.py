"""Push service registry keyed by service type.

The registry maps a service type identifier (``adm``) to the push service
instance that handles providers of that type. It is populated once at
startup and read by the runner when a push is requested.
"""

from __future__ import annotations

import re

from push_relay.types import PushService

__all__ = ["PushServiceRegistry"]

_IDENTIFIER_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


class PushServiceRegistry[T: PushService]:
    """Registry for push services."""

    def __init__(self) -> None:
        self._services: dict[str, T] = {}

    def register(self, identifier: str, service: T) -> None:
        """Register a service instance under the given identifier."""
        slug = self._normalize_identifier(identifier)
        if slug in self._services:
            msg = f"Push service {slug!r} already registered"
            raise ValueError(msg)

        self._services[slug] = service

    def unregister(self, identifier: str) -> None:
        """Remove a service from the registry if it exists."""
        slug = self._normalize_identifier(identifier)
        _ = self._services.pop(slug, None)

    def __contains__(self, identifier: str) -> bool:
        slug = self._normalize_identifier(identifier)
        return slug in self._services

    def __len__(self) -> int:
        return len(self._services)

    def get(self, identifier: str) -> T | None:
        """Return the registered service for the identifier."""
        slug = self._normalize_identifier(identifier)
        return self._services.get(slug)

    def require(self, identifier: str) -> T:
        """Return the registered service or raise KeyError naming the known types."""
        slug = self._normalize_identifier(identifier)
        service = self._services.get(slug)
        if service is None:
            known = ", ".join(self.get_identifiers()) or "none"
            msg = f"Push service {slug!r} is not registered (available: {known})"
            raise KeyError(msg)
        return service

    def get_all(self) -> tuple[T, ...]:
        """Return all registered services sorted by identifier."""
        return tuple(self._services[identifier] for identifier in self.get_identifiers())

    def get_identifiers(self) -> tuple[str, ...]:
        """Return registered service identifiers sorted alphabetically."""
        return tuple(sorted(self._services))

    @staticmethod
    def _normalize_identifier(identifier: str) -> str:
        slug = identifier.strip().lower()
        if not _IDENTIFIER_PATTERN.match(slug):
            msg = (
                "Push service identifiers must start with a letter and contain only "
                "lowercase letters, numbers, or underscores"
            )
            raise ValueError(msg)
        return slug
