"""Secret sanitization utilities for logging and error messages.

This module removes sensitive information (bearer tokens, client secrets,
access tokens) from strings and structured data before it is logged or
shown in an error message. Push service plugins may register extra
patterns for gateway-specific token formats.

Examples:
    >>> sanitize_text("Authorization: Bearer abc.def")
    'Authorization: Bearer <REDACTED>'

    >>> sanitize_text("grant_type=client_credentials&client_secret=s3cr3t")
    'grant_type=client_credentials&client_secret=<REDACTED>'

    >>> sanitize_value({"client_secret": "s3cr3t", "count": 42})
    {'client_secret': '<REDACTED>', 'count': 42}
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TypeIs

# Redaction marker for sanitized values
REDACTED = "<REDACTED>"

# Authorization header values: "Bearer <token>"
_BEARER_PATTERN = re.compile(r"(\bBearer\s+)([^\s,;\"']+)", re.IGNORECASE)

# Form bodies and query strings: client_secret=...&access_token=...
_SECRET_IN_FORM = re.compile(
    r"((?:^|[?&\s])(?:client_secret|access_token|refresh_token|token|api[-_]?key)=)([^&\s]+)",
    re.IGNORECASE,
)

# JSON bodies: "access_token": "..."
_SECRET_IN_JSON = re.compile(
    r"(\"(?:client_secret|access_token|refresh_token)\"\s*:\s*\")([^\"]*)(\")",
    re.IGNORECASE,
)

# Sensitive field name patterns (case-insensitive)
_SENSITIVE_FIELD_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in [
        r".*token.*",
        r".*secret.*",
        r".*password.*",
        r".*credential.*",
        r"^authorization$",
        r".*bearer.*",
        r".*api[-_]?key.*",
    ]
]

# Plugin-registered (pattern, replacement) pairs applied after the built-in ones
_EXTRA_PATTERNS: list[tuple[re.Pattern[str], str]] = []


def register_sanitization_pattern(pattern: re.Pattern[str], replacement: str) -> None:
    """Register an additional redaction pattern.

    Registering the same pattern twice has no effect.

    Args:
        pattern: Compiled regular expression matching the secret
        replacement: Replacement template passed to ``pattern.sub``
    """
    entry = (pattern, replacement)
    if entry not in _EXTRA_PATTERNS:
        _EXTRA_PATTERNS.append(entry)


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Examples:
        >>> is_sensitive_field("client_secret")
        True
        >>> is_sensitive_field("Authorization")
        True
        >>> is_sensitive_field("subscriber")
        False
    """
    return any(pattern.match(field_name) for pattern in _SENSITIVE_FIELD_PATTERNS)


def sanitize_text(text: str) -> str:
    """Redact secrets embedded in free text, URLs, form bodies, or JSON.

    Args:
        text: The text to sanitize

    Returns:
        Text with secret values replaced by the REDACTED marker
    """
    if not text:
        return text

    sanitized = _BEARER_PATTERN.sub(rf"\1{REDACTED}", text)
    sanitized = _SECRET_IN_FORM.sub(rf"\1{REDACTED}", sanitized)
    sanitized = _SECRET_IN_JSON.sub(rf"\1{REDACTED}\3", sanitized)

    for pattern, replacement in _EXTRA_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    return sanitized


def _is_primitive(value: object) -> TypeIs[str | int | float | bool | None]:
    return isinstance(value, (str, int, float, bool, type(None)))


def _is_mapping(value: object) -> TypeIs[Mapping[str, object]]:
    return isinstance(value, Mapping)


def _is_sequence(value: object) -> TypeIs[Sequence[object]]:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def sanitize_value(
    value: object,
    *,
    field_name: str | None = None,
) -> object:
    """Recursively sanitize sensitive values from structured data.

    Values are redacted when their field name looks sensitive; strings are
    scanned for embedded secrets; mappings and sequences are walked.

    Args:
        value: The value to sanitize (can be any type)
        field_name: Optional field name for context-aware sanitization

    Returns:
        Sanitized value with secrets replaced by REDACTED marker
    """
    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if _is_primitive(value):
        if type(value) is str:
            return sanitize_text(value)
        return value

    if _is_mapping(value):
        return {key: sanitize_value(val, field_name=str(key)) for key, val in value.items()}

    if _is_sequence(value):
        sanitized_items: list[object] = [sanitize_value(item) for item in value]
        if isinstance(value, tuple):
            return tuple(sanitized_items)
        return sanitized_items

    # Unknown objects are rendered and scanned as text
    return sanitize_text(str(value))


def sanitize_exception(exc: BaseException) -> str:
    """Render an exception as ``Type: message`` with secrets removed.

    Examples:
        >>> sanitize_exception(ValueError("Bearer abc123 rejected"))
        'ValueError: Bearer <REDACTED> rejected'
    """
    return f"{type(exc).__name__}: {sanitize_text(str(exc))}"


def sanitize_args(args: tuple[object, ...]) -> tuple[object, ...]:
    """Sanitize a tuple of logging arguments."""
    return tuple(sanitize_value(arg) for arg in args)


def sanitize_mapping(data: Mapping[str, object]) -> dict[str, object]:
    """Sanitize a mapping (e.g., logging extra dict or request headers)."""
    return {key: sanitize_value(val, field_name=key) for key, val in data.items()}
