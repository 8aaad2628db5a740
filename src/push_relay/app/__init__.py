"""Host application: CLI, runner, and credential persistence."""

from __future__ import annotations

from push_relay.app.cli import cli
from push_relay.app.runner import PushRunner
from push_relay.app.state import CredentialStateStore

__all__ = [
    "cli",
    "CredentialStateStore",
    "PushRunner",
]
