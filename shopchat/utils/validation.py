"""Inbound text cleaning for widget-supplied strings."""

import re

_HTML_TAG_PATTERN = re.compile(r"<[^>]*>")

DEFAULT_MAX_LENGTH = 1000


def sanitize_message(value: str | None, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Strip HTML tags, trim, and truncate a user-supplied string.

    Args:
        value: Raw text from the client.
        max_length: Maximum number of characters kept.

    Returns:
        Cleaned text; empty string for None.
    """
    if not value:
        return ""
    return _HTML_TAG_PATTERN.sub("", value).strip()[:max_length]
