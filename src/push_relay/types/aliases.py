"""Type aliases using modern PEP 695 syntax.

This module defines type aliases for common type patterns used across
the engine and push services.
"""

from collections.abc import Mapping

from push_relay.types.protocols import DestinationSource

# Flat key-value configuration of a provider or destination
# Each push service validates its own keys using Pydantic at build time
type ConfigMap = Mapping[str, str]

# Persisted volatile provider state, keyed by provider name
type CredentialState = Mapping[str, Mapping[str, str]]

__all__ = ["ConfigMap", "CredentialState", "DestinationSource"]
