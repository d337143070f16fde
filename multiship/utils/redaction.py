"""Shopper PII redaction for safe logging.

Provides centralized redaction to keep recipient names, street lines, and
contact details out of logs. Uses case-insensitive substring matching for
sensitive key detection. Handles nested dicts and lists of dicts.
"""

from typing import Any

# Substring patterns matched case-insensitively against dict keys
_DEFAULT_SENSITIVE_PATTERNS = frozenset({
    "firstname", "first_name", "lastname", "last_name", "address1",
    "address2", "phone", "email", "message", "token", "authorization",
})

# Keys whose entire value is redacted (regardless of content type)
_CONTAINER_KEYS = frozenset({"headers", "credentials"})

_REDACTED = "***REDACTED***"


def _is_sensitive_key(key: str, sensitive_patterns: frozenset[str]) -> bool:
    """Check if a key matches any sensitive pattern (case-insensitive substring).

    Args:
        key: Dict key to check.
        sensitive_patterns: Patterns to match against.

    Returns:
        True if the key matches any sensitive pattern.
    """
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in sensitive_patterns)


def redact_for_logging(
    obj: dict,
    sensitive_patterns: frozenset[str] = _DEFAULT_SENSITIVE_PATTERNS,
) -> dict:
    """Redact shopper PII from a dict for safe logging.

    Args:
        obj: Dict to redact (not mutated; returns a copy).
        sensitive_patterns: Substring patterns whose matching keys' values
            should be replaced. Matching is case-insensitive.

    Returns:
        New dict with sensitive values replaced by '***REDACTED***'.
    """
    result = {}
    for key, value in obj.items():
        if key.lower() in _CONTAINER_KEYS:
            result[key] = _REDACTED
        elif _is_sensitive_key(key, sensitive_patterns):
            result[key] = _REDACTED
        elif isinstance(value, dict):
            result[key] = redact_for_logging(value, sensitive_patterns)
        elif isinstance(value, list):
            result[key] = [
                redact_for_logging(item, sensitive_patterns) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value
    return result


def redact_address(address: Any) -> str:
    """Summarize an address as ``city, state postal country`` for log lines.

    Accepts an Address model, a dict in API shape, or None.
    """
    if address is None:
        return "<none>"
    if isinstance(address, dict):
        city = address.get("city", "")
        state = address.get("stateOrProvinceCode", "")
        postal = address.get("postalCode", "")
        country = address.get("countryCode", "")
    else:
        city = getattr(address, "city", "")
        state = getattr(address, "state_or_province_code", "")
        postal = getattr(address, "postal_code", "")
        country = getattr(address, "country_code", "")
    return f"{city}, {state} {postal} {country}".strip()
