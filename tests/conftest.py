"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from push_relay.utils.logging import clear_correlation_id
from tests.fixtures.push_fakes import FakeHTTPClient, ScriptedAdapter


@pytest.fixture(autouse=True)
def _reset_correlation_id() -> Generator[None, None, None]:
    """Keep correlation IDs from leaking between tests."""
    clear_correlation_id()
    yield
    clear_correlation_id()


@pytest.fixture
def http_client() -> FakeHTTPClient:
    """HTTP transport double answering 200 with an empty body."""
    return FakeHTTPClient()


@pytest.fixture
def adapter() -> ScriptedAdapter:
    """Push adapter double that delivers to every destination."""
    return ScriptedAdapter()
