"""Shared utility modules.

This package provides provider-agnostic helpers for:
- Secret sanitization of log output and error messages
- Structured logging with correlation IDs
- The aiohttp-backed HTTP transport
"""

from push_relay.utils.sanitization import (
    REDACTED,
    is_sensitive_field,
    register_sanitization_pattern,
    sanitize_exception,
    sanitize_mapping,
    sanitize_text,
    sanitize_value,
)

__all__ = [
    "REDACTED",
    "is_sensitive_field",
    "register_sanitization_pattern",
    "sanitize_exception",
    "sanitize_mapping",
    "sanitize_text",
    "sanitize_value",
]
