"""Error code registry with E-XXXX format codes.

This module defines the error code system for ShopChat, organizing errors
into categories:
- E-1xxx: Lookup misses (product, order, store)
- E-2xxx: Validation errors
- E-3xxx: Upstream errors (commerce platforms, language model)
- E-4xxx: Persistence/system errors
- E-5xxx: Authentication and access errors

Each error includes a code, title, user-facing message, and whether the
caller may retry without changing the request.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    NOT_FOUND = "not_found"  # E-1xxx
    VALIDATION = "validation"  # E-2xxx
    UPSTREAM = "upstream"  # E-3xxx
    PERSISTENCE = "persistence"  # E-4xxx
    AUTH = "auth"  # E-5xxx


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        public_message: Generic message safe to show end users.
        http_status: Status code used by the HTTP layer.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str
    category: ErrorCategory
    title: str
    public_message: str
    http_status: int
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Lookup misses (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.NOT_FOUND,
        title="Product Not Found",
        public_message="The requested product could not be found.",
        http_status=404,
    ),
    "E-1002": ErrorCode(
        code="E-1002",
        category=ErrorCategory.NOT_FOUND,
        title="Order Not Found",
        public_message="The requested order could not be found.",
        http_status=404,
    ),
    "E-1003": ErrorCode(
        code="E-1003",
        category=ErrorCategory.NOT_FOUND,
        title="Store Not Found",
        public_message="Store not found.",
        http_status=404,
    ),
    "E-1099": ErrorCode(
        code="E-1099",
        category=ErrorCategory.NOT_FOUND,
        title="Resource Not Found",
        public_message="The requested resource could not be found.",
        http_status=404,
    ),
    # Validation errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.VALIDATION,
        title="Empty Message",
        public_message="Message is required.",
        http_status=400,
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.VALIDATION,
        title="Invalid Order",
        public_message="Invalid order data.",
        http_status=400,
    ),
    "E-2003": ErrorCode(
        code="E-2003",
        category=ErrorCategory.VALIDATION,
        title="Missing Platform Credentials",
        public_message="The store's commerce platform is not configured.",
        http_status=400,
    ),
    "E-2099": ErrorCode(
        code="E-2099",
        category=ErrorCategory.VALIDATION,
        title="Invalid Request",
        public_message="The request is invalid.",
        http_status=400,
    ),
    # Upstream errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.UPSTREAM,
        title="Catalog Platform Error",
        public_message="Failed to process chat request.",
        http_status=502,
        is_retryable=True,
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.UPSTREAM,
        title="Language Model Error",
        public_message="Failed to process chat request.",
        http_status=502,
        is_retryable=True,
    ),
    "E-3003": ErrorCode(
        code="E-3003",
        category=ErrorCategory.UPSTREAM,
        title="Upstream Timeout",
        public_message="The request timed out. Please try again later.",
        http_status=504,
        is_retryable=True,
    ),
    # Persistence errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.PERSISTENCE,
        title="Datastore Error",
        public_message="A storage error occurred. Please try again later.",
        http_status=500,
        is_retryable=True,
    ),
    "E-4099": ErrorCode(
        code="E-4099",
        category=ErrorCategory.PERSISTENCE,
        title="Internal Error",
        public_message="Internal server error.",
        http_status=500,
    ),
    # Auth errors (E-5xxx)
    "E-5001": ErrorCode(
        code="E-5001",
        category=ErrorCategory.AUTH,
        title="Missing API Key",
        public_message="API key is required.",
        http_status=401,
    ),
    "E-5002": ErrorCode(
        code="E-5002",
        category=ErrorCategory.AUTH,
        title="Invalid API Key",
        public_message="Invalid API key.",
        http_status=401,
    ),
    "E-5003": ErrorCode(
        code="E-5003",
        category=ErrorCategory.AUTH,
        title="Bot Inactive",
        public_message="The assistant is not active for this store.",
        http_status=403,
    ),
    "E-5004": ErrorCode(
        code="E-5004",
        category=ErrorCategory.AUTH,
        title="Message Quota Exceeded",
        public_message="This store has reached its message quota.",
        http_status=429,
    ),
    "E-5005": ErrorCode(
        code="E-5005",
        category=ErrorCategory.AUTH,
        title="Invalid Webhook Signature",
        public_message="Invalid webhook signature.",
        http_status=401,
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Look up an error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode definition if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all error codes in a category."""
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
