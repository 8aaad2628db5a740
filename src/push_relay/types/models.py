"""Data models for push-relay.

This module defines the dataclasses passed between the dispatch engine,
push services, and the HTTP transport. Records scoped to a single push
(destinations, notifications, results) are immutable; the provider record
outlives pushes and carries the cached bearer credential.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from push_relay.core.exceptions import PushError

_TOKEN_KEY: Final[str] = "token"
_TOKEN_TYPE_KEY: Final[str] = "type"
_EXPIRE_KEY: Final[str] = "expire"


@dataclass(slots=True)
class Credential:
    """Cached bearer credential attached to a provider.

    ``expires_at`` is a Unix timestamp that already includes the safety
    margin applied when the token was obtained.
    """

    token: str | None = None
    token_type: str | None = None
    expires_at: int | None = None

    def is_valid(self, now: float) -> bool:
        """Return True when a token is present and strictly unexpired at ``now``."""
        if not self.token or self.expires_at is None:
            return False
        return self.expires_at > now


@dataclass(slots=True, eq=False)
class Provider:
    """Account-level push provider record.

    The client credential pair is fixed for the life of the record. The
    ``credential`` is mutated in place by the token manager while holding
    ``token_lock``. Records compare by identity.
    """

    service_type: str
    service: str
    client_id: str
    client_secret: str = field(repr=False)
    credential: Credential = field(default_factory=Credential)
    token_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def name(self) -> str:
        """Identifier used in logs and persisted state: ``<type>:<service>``."""
        return f"{self.service_type}:{self.service}"

    def volatile_state(self) -> dict[str, str]:
        """Export the cached credential as a flat string map for persistence."""
        state: dict[str, str] = {}
        if self.credential.token:
            state[_TOKEN_KEY] = self.credential.token
        if self.credential.token_type:
            state[_TOKEN_TYPE_KEY] = self.credential.token_type
        if self.credential.expires_at is not None:
            state[_EXPIRE_KEY] = str(self.credential.expires_at)
        return state

    def restore_volatile_state(self, state: Mapping[str, str]) -> None:
        """Load a credential previously exported with :meth:`volatile_state`.

        An unparsable expiry leaves the token without an expiry, which the
        token manager treats as expired.
        """
        self.credential.token = state.get(_TOKEN_KEY) or None
        self.credential.token_type = state.get(_TOKEN_TYPE_KEY) or None
        raw_expire = state.get(_EXPIRE_KEY)
        try:
            self.credential.expires_at = int(raw_expire) if raw_expire else None
        except ValueError:
            self.credential.expires_at = None


@dataclass(slots=True, frozen=True)
class Destination:
    """One addressable recipient of a push provider."""

    service: str
    subscriber: str
    registration_id: str


@dataclass(slots=True, frozen=True)
class Notification:
    """Application payload of string keys and values.

    Keys ``msggroup`` and ``ttl`` are control fields interpreted by the push
    service; everything else is forwarded verbatim.
    """

    data: Mapping[str, str] = field(default_factory=dict)


class TokenState(Enum):
    """Outcome of a successful token check."""

    CACHED = "cached"
    REFRESHED = "refreshed"


class ResultKind(Enum):
    """Kind of a push result."""

    DELIVERED = "delivered"
    FAILED = "failed"
    PROVIDER_UPDATED = "provider_updated"


@dataclass(slots=True, frozen=True, eq=False)
class PushResult:
    """Outcome for one destination, or a provider-level event when ``destination`` is None.

    Results compare and hash by identity.
    """

    kind: ResultKind
    provider: Provider
    notification: Notification | None
    destination: Destination | None = None
    message_id: str | None = None
    error: PushError | None = None

    @property
    def is_provider_level(self) -> bool:
        return self.destination is None

    @property
    def succeeded(self) -> bool:
        return self.kind is ResultKind.DELIVERED

    @property
    def failed(self) -> bool:
        return self.kind is ResultKind.FAILED


@dataclass(slots=True)
class Response:
    """HTTP response.

    Represents an HTTP response with status code, raw body bytes, and headers.
    """

    status: int
    body: bytes
    headers: Mapping[str, str]

    def text(self) -> str:
        """Decode the body as UTF-8, replacing undecodable bytes."""
        return self.body.decode("utf-8", errors="replace")

    def header(self, name: str) -> str | None:
        """Return a header value using case-insensitive name matching."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None
