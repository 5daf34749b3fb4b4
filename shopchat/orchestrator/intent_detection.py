"""Shared intent-detection heuristics for catalog search routing."""

import re

# Order matters: the first matching phrase with a non-empty remainder wins.
_SEARCH_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE | re.DOTALL)
    for pattern in (
        r"\bshow me\b(.*)",
        r"\blooking for\b(.*)",
        r"\bsearch for\b(.*)",
        r"\bfind\b(.*)",
        r"\bdo you have\b(.*)",
    )
)
_TRAILING_PUNCTUATION = "?.!"


def extract_search_terms(message: str | None) -> str | None:
    """Return the product-search terms in a message, if it asks for any.

    Examples:
        "show me running shoes" -> "running shoes"
        "Do you have blue hats?" -> "blue hats"
        "what's your return policy" -> None
    """
    if not message:
        return None
    for pattern in _SEARCH_PATTERNS:
        match = pattern.search(message)
        if match:
            terms = match.group(1).strip().rstrip(_TRAILING_PUNCTUATION).strip()
            if terms:
                return terms
    return None
