"""Tests for secret masking."""

from arden.sanitize import is_sensitive_key, mask_value, sanitize


def test_is_sensitive_key():
    """Test detection of secret-bearing keys."""
    for key in ("api_token", "Authorization", "client_secret", "PASSWORD", "apiKey", "x-auth-header"):
        assert is_sensitive_key(key), key
    for key in ("host", "user_id", "agent"):
        assert not is_sensitive_key(key), key


def test_mask_value():
    """Test that long values keep four characters at each end."""
    assert mask_value("abcd1234efgh") == "abcd****efgh"
    assert mask_value("short") == "[REDACTED]"
    assert mask_value(12345) == "[REDACTED]"


def test_sanitize_nested_structures():
    """Test masking inside nested mappings and lists without mutating the input."""
    original = {
        "host": "https://ardenstats.com",
        "headers": {"Authorization": "Bearer abcdefghijkl"},
        "items": [{"token": "tok"}, "plain"],
    }

    cleaned = sanitize(original)

    assert cleaned["host"] == "https://ardenstats.com"
    assert cleaned["headers"]["Authorization"] == "Bear" + "*" * 11 + "ijkl"
    assert cleaned["items"] == [{"token": "[REDACTED]"}, "plain"]
    assert original["items"][0]["token"] == "tok"


def test_sanitize_circular_reference():
    """Test that circular references are replaced, not recursed forever."""
    data = {"name": "loop"}
    data["self"] = data

    assert sanitize(data) == {"name": "loop", "self": "[CIRCULAR]"}
