"""Persistence of refreshed provider credentials.

Tokens outlive a single CLI invocation: after a refresh the provider's
volatile state is written to a YAML file keyed by provider name, and it is
restored the next time the provider is built so a still-valid token is
reused instead of exchanged again.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from push_relay.types import CredentialState, Provider

__all__ = ["CredentialStateStore", "StateStoreError"]


class StateStoreError(Exception):
    """Raised when the credential state file cannot be read or written."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path: Path = path


class CredentialStateStore:
    """YAML-backed store of provider name -> volatile credential state."""

    def __init__(self, path: Path) -> None:
        self.path: Path = path
        self._logger: logging.Logger = logging.getLogger(__name__)

    def load(self) -> dict[str, dict[str, str]]:
        """Read every stored entry; a missing file yields an empty mapping.

        Raises:
            StateStoreError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
        except (OSError, yaml.YAMLError) as exc:
            raise StateStoreError(f"Failed to read credential state: {exc}", self.path) from exc

        if raw_data is None:
            return {}
        if not isinstance(raw_data, dict):
            msg = f"Credential state must be a mapping, got {type(raw_data).__name__}"
            raise StateStoreError(msg, self.path)

        state: dict[str, dict[str, str]] = {}
        for name, entry in raw_data.items():  # pyright: ignore[reportUnknownVariableType]  # YAML boundary
            if isinstance(entry, dict):
                state[str(name)] = {str(k): str(v) for k, v in entry.items()}  # pyright: ignore[reportUnknownVariableType, reportUnknownArgumentType]  # YAML boundary
        return state

    def restore(self, provider: Provider) -> bool:
        """Load the stored credential into ``provider``; return True if one was found."""
        entry = self.load().get(provider.name)
        if not entry:
            return False
        provider.restore_volatile_state(entry)
        self._logger.debug("Restored credential state for %s", provider.name)
        return True

    def save(self, provider: Provider) -> None:
        """Store the provider's current credential, replacing any previous entry.

        Raises:
            StateStoreError: If the file cannot be written
        """
        state = self.load()
        state[provider.name] = provider.volatile_state()
        self._write(state)
        self._logger.debug("Saved credential state for %s", provider.name)

    def _write(self, state: CredentialState) -> None:
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as f:
                yaml.safe_dump({name: dict(entry) for name, entry in state.items()}, f, sort_keys=True)
            tmp_path.chmod(0o600)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StateStoreError(f"Failed to write credential state: {exc}", self.path) from exc
