"""Error response formatting.

User-visible failures always carry a generic message from the registry.
The internal detail (the exception text) is included only outside
production so operators can debug without leaking upstream messages or
credentials to end users.
"""

from typing import Any

from shopchat.errors.domain import DomainError, ValidationError
from shopchat.errors.registry import get_error
from shopchat.utils.redaction import sanitize_error_message

GENERIC_MESSAGE = "Internal server error."


def status_for(error: DomainError) -> int:
    """Return the HTTP status registered for the error's code."""
    error_def = get_error(error.code)
    return error_def.http_status if error_def else 500


def format_error_response(
    error: Exception,
    include_details: bool,
    public_message: str | None = None,
) -> dict[str, Any]:
    """Build the JSON body for a failed request.

    Args:
        error: The exception that aborted the request.
        include_details: Whether to populate the ``details`` field
            (True for non-production environments).
        public_message: Overrides the registry's generic message.

    Returns:
        Dict with ``error``, ``error_code`` and ``details`` keys.
    """
    if isinstance(error, DomainError):
        error_def = get_error(error.code)
        message = public_message or (
            error_def.public_message if error_def else GENERIC_MESSAGE
        )
        code: str | None = error.code
    else:
        message = public_message or GENERIC_MESSAGE
        code = None

    body: dict[str, Any] = {
        "error": message,
        "error_code": code,
        "details": sanitize_error_message(str(error)) if include_details else None,
    }
    # Validation problems are the caller's own input; always list them.
    if isinstance(error, ValidationError) and error.errors:
        body["errors"] = list(error.errors)
    return body
