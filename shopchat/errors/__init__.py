"""Error handling framework for ShopChat.

This package provides:
- Error code registry with E-XXXX format codes
- Typed domain exceptions raised by connectors, stores and the orchestrator
- Response formatting that hides internal details in production

Error categories:
- E-1xxx: Lookup misses
- E-2xxx: Validation errors
- E-3xxx: Upstream (platform / model) errors
- E-4xxx: Persistence and internal errors
- E-5xxx: Authentication and access errors
"""

from shopchat.errors.domain import (
    AuthenticationError,
    DomainError,
    NotFoundError,
    PersistenceError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from shopchat.errors.formatter import format_error_response, status_for
from shopchat.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Domain exceptions
    "DomainError",
    "NotFoundError",
    "ValidationError",
    "UpstreamError",
    "UpstreamTimeoutError",
    "PersistenceError",
    "AuthenticationError",
    # Formatter
    "format_error_response",
    "status_for",
]
