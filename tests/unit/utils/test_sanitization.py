"""Unit tests for secret sanitization utilities.

Covers redaction of bearer tokens, client secrets in form and JSON bodies,
plugin-registered token formats, and sensitive field names in structured
log context.
"""

from __future__ import annotations

import re

import pytest

from push_relay.utils.sanitization import (
    REDACTED,
    is_sensitive_field,
    register_sanitization_pattern,
    sanitize_args,
    sanitize_exception,
    sanitize_mapping,
    sanitize_text,
    sanitize_value,
)


class TestSanitizeText:
    """Test free-text redaction."""

    def test_bearer_header(self) -> None:
        sanitized = sanitize_text("Authorization: Bearer Atza|IwEBIabc rejected")

        assert "IwEBIabc" not in sanitized
        assert sanitized.startswith(f"Authorization: Bearer {REDACTED}")

    def test_bearer_case_insensitive(self) -> None:
        assert sanitize_text("bearer abc.def") == f"bearer {REDACTED}"

    def test_form_body(self) -> None:
        body = "grant_type=client_credentials&scope=messaging:push&client_id=abc&client_secret=s3cr3t"

        sanitized = sanitize_text(body)

        assert "s3cr3t" not in sanitized
        assert "client_id=abc" in sanitized
        assert sanitized.endswith(f"client_secret={REDACTED}")

    def test_json_body(self) -> None:
        body = '{"access_token": "Atza|xyz", "expires_in": 3600}'

        sanitized = sanitize_text(body)

        assert "xyz" not in sanitized
        assert '"expires_in": 3600' in sanitized

    def test_plain_text_unchanged(self) -> None:
        text = "delivered to regid-0 (status=200)"

        assert sanitize_text(text) == text

    def test_empty_string_unchanged(self) -> None:
        assert sanitize_text("") == ""

    def test_registered_pattern_applied(self) -> None:
        pattern = re.compile(r"sk_live_[A-Za-z0-9]+")
        register_sanitization_pattern(pattern, REDACTED)
        register_sanitization_pattern(pattern, REDACTED)

        assert sanitize_text("key sk_live_4eC39Hq used") == f"key {REDACTED} used"


class TestIsSensitiveField:
    """Test sensitive field name detection."""

    @pytest.mark.parametrize(
        "field_name",
        ["client_secret", "clientsecret", "access_token", "token", "Authorization", "password", "api_key", "bearer"],
    )
    def test_sensitive_field_names_detected(self, field_name: str) -> None:
        assert is_sensitive_field(field_name)

    @pytest.mark.parametrize("field_name", ["subscriber", "regid", "provider_name", "status", "expires_at"])
    def test_non_sensitive_field_names_not_detected(self, field_name: str) -> None:
        assert not is_sensitive_field(field_name)


class TestSanitizeValue:
    """Test recursive sanitization of structured data."""

    def test_dict_with_sensitive_field_names(self) -> None:
        data = {"clientid": "abc", "clientsecret": "s3cr3t", "count": 3}

        assert sanitize_value(data) == {"clientid": "abc", "clientsecret": REDACTED, "count": 3}

    def test_nested_structures(self) -> None:
        data = {"request": {"headers": {"Authorization": "Bearer abc"}, "attempts": [1, "Bearer def"]}}

        assert sanitize_value(data) == {
            "request": {"headers": {"Authorization": REDACTED}, "attempts": [1, f"Bearer {REDACTED}"]}
        }

    def test_tuple_sanitization_preserves_type(self) -> None:
        result = sanitize_value(("Bearer abc", 2))

        assert result == (f"Bearer {REDACTED}", 2)

    def test_primitive_types_pass_through(self) -> None:
        assert sanitize_value(42) == 42
        assert sanitize_value(None) is None
        assert sanitize_value(True) is True

    def test_field_name_takes_precedence(self) -> None:
        assert sanitize_value(12345, field_name="token_expiry") == REDACTED

    def test_unknown_objects_rendered_as_text(self) -> None:
        class Header:
            def __str__(self) -> str:
                return "Bearer abc"

        assert sanitize_value(Header()) == f"Bearer {REDACTED}"


class TestSanitizeHelpers:
    def test_exception_type_preserved(self) -> None:
        sanitized = sanitize_exception(ConnectionError("failed sending client_secret=s3cr3t"))

        assert sanitized == f"ConnectionError: failed sending client_secret={REDACTED}"

    def test_args(self) -> None:
        assert sanitize_args(("Bearer abc", 200)) == (f"Bearer {REDACTED}", 200)

    def test_empty_args(self) -> None:
        assert sanitize_args(()) == ()

    def test_mapping(self) -> None:
        extra = {"provider_name": "adm:myapp", "access_token": "Atza|abc", "note": "Bearer xyz"}

        assert sanitize_mapping(extra) == {
            "provider_name": "adm:myapp",
            "access_token": REDACTED,
            "note": f"Bearer {REDACTED}",
        }
