"""Translation of notifications into ADM wire messages.

A notification is a flat string map. Two keys control delivery instead of
being forwarded to the device: ``msggroup`` becomes the consolidation key
and ``ttl`` becomes the expiry in seconds. Every other key is copied into
the message data unchanged.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Final

from push_relay.core.exceptions import EmptyNotificationError
from push_relay.types import Notification

__all__ = ["ADMMessage", "MSGGROUP_KEY", "TTL_KEY", "build_message", "parse_ttl"]

MSGGROUP_KEY: Final[str] = "msggroup"
TTL_KEY: Final[str] = "ttl"

_INTEGER_PATTERN: Final[re.Pattern[str]] = re.compile(r"[+-]?[0-9]+")
_INT64_MIN: Final[int] = -(2**63)
_INT64_MAX: Final[int] = 2**63 - 1


@dataclass(slots=True, frozen=True)
class ADMMessage:
    """ADM message body.

    Attributes:
        data: Application key-value pairs delivered to the app
        consolidation_key: Collapses queued messages of the same group; empty means none
        expires_after: Seconds the gateway keeps the message; 0 means gateway default
    """

    data: Mapping[str, str] = field(default_factory=dict)
    consolidation_key: str = ""
    expires_after: int = 0

    def to_wire(self) -> dict[str, object]:
        """Return the JSON object sent to the gateway."""
        wire: dict[str, object] = {"data": dict(sorted(self.data.items()))}
        if self.consolidation_key:
            wire["consolidationKey"] = self.consolidation_key
        if self.expires_after:
            wire["expiresAfter"] = self.expires_after
        return wire

    def serialize(self) -> bytes:
        """Encode the message as compact UTF-8 JSON."""
        return json.dumps(self.to_wire(), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def parse_ttl(value: str) -> int | None:
    """Parse a signed base-10 64-bit integer, returning None when it is not one.

    Examples:
        >>> parse_ttl("3600")
        3600
        >>> parse_ttl("-5")
        -5
        >>> parse_ttl("1h") is None
        True
    """
    if not _INTEGER_PATTERN.fullmatch(value):
        return None
    parsed = int(value)
    if not _INT64_MIN <= parsed <= _INT64_MAX:
        return None
    return parsed


def build_message(notification: Notification | None) -> ADMMessage:
    """Build the wire message for a notification.

    An unparsable ``ttl`` is dropped without error.

    Raises:
        EmptyNotificationError: If the notification is missing or carries no
            data once the control keys are removed
    """
    if notification is None or not notification.data:
        raise EmptyNotificationError()

    data: dict[str, str] = {}
    consolidation_key = ""
    expires_after = 0
    for key, value in notification.data.items():
        if key == MSGGROUP_KEY:
            consolidation_key = value
        elif key == TTL_KEY:
            ttl = parse_ttl(value)
            if ttl is not None:
                expires_after = ttl
        else:
            data[key] = value

    if not data:
        raise EmptyNotificationError()

    return ADMMessage(data=data, consolidation_key=consolidation_key, expires_after=expires_after)
