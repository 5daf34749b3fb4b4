"""Secret redaction for logs and error responses.

Store rows carry platform credentials (Shopify tokens, WooCommerce
consumer keys, webhook secrets). Anything that prints store data or
upstream error text goes through these helpers first.
"""

import re

# Substring patterns matched case-insensitively against dict keys
_DEFAULT_SENSITIVE_PATTERNS = frozenset({
    "secret", "token", "authorization", "api_key", "password",
    "credential", "woo_key", "consumer_key",
})

# Keys whose entire value is redacted (regardless of content type)
_CONTAINER_KEYS = frozenset({"credentials", "headers"})

_REDACTED = "***REDACTED***"


def _is_sensitive_key(key: str, sensitive_patterns: frozenset[str]) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in sensitive_patterns)


def redact_for_logging(
    obj: dict,
    sensitive_patterns: frozenset[str] = _DEFAULT_SENSITIVE_PATTERNS,
) -> dict:
    """Redact sensitive values from a dict for safe logging/display.

    Args:
        obj: Dict to redact. Not mutated; a copy is returned.
        sensitive_patterns: Substring patterns whose matching keys' values
            should be replaced. Matching is case-insensitive.

    Returns:
        New dict with sensitive values replaced by '***REDACTED***'.
        Empty values are left as-is so "not configured" stays visible.
    """
    result = {}
    for key, value in obj.items():
        if key.lower() in _CONTAINER_KEYS or _is_sensitive_key(key, sensitive_patterns):
            result[key] = _REDACTED if value else value
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


# Handles: X-Shopify-Access-Token: <v>, Authorization: Basic/Bearer <v>,
# key=value, "key": "value", and consumer key literals (ck_/cs_).
_SENSITIVE_KEYWORDS = (
    r"secret|token|password|api_key|consumer_key|consumer_secret|"
    r"access_token|authorization|credential"
)
_SENSITIVE_VALUE_PATTERNS = re.compile(
    r"(?i)"
    r"(?:"
    r"Authorization\s*:\s*(?:Bearer|Basic)\s+\S+"
    r"|"
    r'"(?:' + _SENSITIVE_KEYWORDS + r')"\s*:\s*"[^"]*"'
    r"|"
    r"(?:" + _SENSITIVE_KEYWORDS + r")\s*[=:]\s*\S+"
    r"|"
    r"\b(?:ck|cs)_[0-9a-f]{8,}\b"
    r")",
)


def sanitize_error_message(msg: str | None, max_length: int = 2000) -> str | None:
    """Redact secret-looking fragments from error text and truncate it.

    Args:
        msg: Error message to sanitize (None passes through).
        max_length: Maximum length of the sanitized message.

    Returns:
        Sanitized and truncated message, or None.
    """
    if msg is None:
        return None
    sanitized = _SENSITIVE_VALUE_PATTERNS.sub(_REDACTED, msg)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."
    return sanitized
