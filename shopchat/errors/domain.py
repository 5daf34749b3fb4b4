"""Typed domain exceptions for API error mapping.

These exceptions provide stronger API contract guarantees than
string-based error message matching. Each carries an E-XXXX code from
the registry so routes and the global exception handler can return the
right HTTP status and a generic user-facing message.

Usage:
    # In a connector
    raise NotFoundError("Product", product_id)

    # In route handler (usually left to the app-level handler)
    try:
        product = await gateway.get_product(product_id, store)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
"""

_NOT_FOUND_CODES = {
    "Product": "E-1001",
    "Order": "E-1002",
    "Store": "E-1003",
}


class DomainError(Exception):
    """Base exception for all domain errors."""

    default_code = "E-4099"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class NotFoundError(DomainError):
    """Resource was not found. Maps to HTTP 404."""

    default_code = "E-1099"

    def __init__(self, resource_type: str, identifier: str) -> None:
        super().__init__(
            f"{resource_type} '{identifier}' not found",
            code=_NOT_FOUND_CODES.get(resource_type),
        )
        self.resource_type = resource_type
        self.identifier = identifier


class ValidationError(DomainError):
    """Caller supplied missing or malformed input. Maps to HTTP 400."""

    default_code = "E-2099"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.errors = errors or []


class UpstreamError(DomainError):
    """A commerce platform or the language model failed. Maps to HTTP 502.

    Attributes:
        source: Upstream identifier ('shopify', 'woo', 'static', 'llm').
        status_code: HTTP status returned by the upstream, when known.
    """

    default_code = "E-3001"

    def __init__(
        self,
        source: str,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.source = source
        self.status_code = status_code


class UpstreamTimeoutError(UpstreamError):
    """An upstream call exceeded its configured timeout. Maps to HTTP 504."""

    default_code = "E-3003"

    def __init__(self, source: str, timeout_seconds: float) -> None:
        super().__init__(
            source,
            f"{source} call timed out after {timeout_seconds:g}s",
        )
        self.timeout_seconds = timeout_seconds


class PersistenceError(DomainError):
    """Datastore read or write failed. Maps to HTTP 500 where surfaced."""

    default_code = "E-4001"


class AuthenticationError(DomainError):
    """Missing or invalid credentials, or the store may not chat."""

    default_code = "E-5002"
