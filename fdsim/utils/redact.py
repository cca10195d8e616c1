"""Redaction helpers for request/response debug logging."""

from typing import Any

_SECRET_KEY_MARKERS = ("token", "password", "authorization", "secret", "api_key")
_MAX_TEXT_LENGTH = 200


def sanitize_for_logs(value: Any, key_hint: str = "") -> Any:
    """Recursively sanitize payloads before writing them to debug logs.

    Values stored under keys that look like credentials are replaced, long strings
    are truncated. The input is never modified.

    Example:
        >>> sanitize_for_logs({"X-Auth-Token": "abc", "n": 1})
        {'X-Auth-Token': '[REDACTED_SECRET]', 'n': 1}
    """
    key = key_hint.lower()
    if key and any(marker in key for marker in _SECRET_KEY_MARKERS):
        return "[REDACTED_SECRET]"

    if isinstance(value, dict):
        return {str(k): sanitize_for_logs(v, key_hint=str(k)) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [sanitize_for_logs(item) for item in value]

    if isinstance(value, str) and len(value) > _MAX_TEXT_LENGTH:
        return value[:_MAX_TEXT_LENGTH] + "...[truncated]"

    return value
