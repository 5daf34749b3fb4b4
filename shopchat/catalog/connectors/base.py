"""Abstract base class for catalog connectors.

Each commerce backend (Shopify, WooCommerce, static file) implements
this interface so the gateway can hand the orchestrator a uniform
product and order API. Connectors are stateless with respect to stores:
every call receives the StoreConfig it acts for.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from shopchat.catalog.models import (
    OrderRequest,
    OrderStatus,
    OrderSummary,
    Product,
    StoreConfig,
)
from shopchat.db.models import PlatformType
from shopchat.errors import NotFoundError, UpstreamError, UpstreamTimeoutError

logger = logging.getLogger(__name__)

_HTML_TAG_PATTERN = re.compile(r"<[^>]*>")


def strip_html(value: str | None) -> str:
    """Remove HTML tags from platform-provided rich text."""
    if not value:
        return ""
    return _HTML_TAG_PATTERN.sub("", value).strip()


def to_decimal(value: Any) -> Decimal:
    """Parse a platform price (number, '12.5', '$12.50') into a Decimal.

    Unparseable or empty values become zero.
    """
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    text = str(value).replace("$", "").replace(",", "").strip()
    try:
        return Decimal(text)
    except InvalidOperation:
        return Decimal("0")


def format_price(value: Any) -> str:
    """Format a price as a ``$x.yy`` display string."""
    return f"${to_decimal(value).quantize(Decimal('0.01'))}"


class CatalogConnector(ABC):
    """Abstract base class for commerce platform connectors.

    Concrete implementations must handle:
    - Full catalog fetch and native search
    - Single product lookup (NotFoundError on miss)
    - Order creation and status lookup
    """

    platform: PlatformType

    @abstractmethod
    async def fetch_products(self, store: StoreConfig) -> list[Product]:
        """Fetch and normalize the store's full catalog."""
        ...

    @abstractmethod
    async def search_products(self, query: str, store: StoreConfig) -> list[Product]:
        """Return products matching a free-text query."""
        ...

    @abstractmethod
    async def get_product_details(
        self, product_id: str, store: StoreConfig
    ) -> Product:
        """Fetch one product.

        Raises:
            NotFoundError: If no product has this id.
        """
        ...

    @abstractmethod
    async def create_order(
        self, order: OrderRequest, store: StoreConfig
    ) -> OrderSummary:
        """Create an order on the platform and summarize it."""
        ...

    @abstractmethod
    async def get_order_status(
        self, order_id: str, store: StoreConfig
    ) -> OrderStatus:
        """Look up an order's current state.

        Raises:
            NotFoundError: If the order does not exist.
        """
        ...


class RemoteCatalogConnector(CatalogConnector):
    """Shared HTTP plumbing for connectors backed by a platform REST API.

    Args:
        timeout_seconds: Per-request timeout.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._transport = transport

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        not_found: tuple[str, str] | None = None,
    ) -> Any:
        """Issue one request and return the parsed JSON body.

        Args:
            method: HTTP method.
            url: Absolute URL.
            headers: Extra request headers.
            auth: HTTP basic auth pair.
            params: Query parameters.
            json: JSON body.
            not_found: ``(resource_type, identifier)`` raised as
                NotFoundError when the platform answers 404.

        Raises:
            NotFoundError: On 404 when ``not_found`` is given.
            UpstreamTimeoutError: If the request timed out.
            UpstreamError: On any other transport or HTTP failure.
        """
        platform = self.platform.value
        async with httpx.AsyncClient(
            auth=auth,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json,
                )
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 404 and not_found is not None:
                    raise NotFoundError(*not_found) from e
                detail = _error_detail(e.response)
                logger.warning(
                    "%s API error: %s %s %s", platform, method, status, detail
                )
                raise UpstreamError(
                    platform,
                    f"{status} {e.response.reason_phrase}: {detail}".rstrip(": "),
                    status_code=status,
                ) from e
            except httpx.TimeoutException as e:
                raise UpstreamTimeoutError(platform, self._timeout) from e
            except httpx.RequestError as e:
                raise UpstreamError(platform, f"Request failed: {e}") from e
            except ValueError as e:
                raise UpstreamError(
                    platform, f"Invalid JSON response: {e}"
                ) from e

    def _expect(self, body: Any, kind: type, key: str | None = None) -> Any:
        """Return ``body`` (or ``body[key]``) when it is a ``kind``.

        Platforms answer some failures with a 200 and an error object, so
        the envelope is checked before anything is normalized.

        Raises:
            UpstreamError: If the payload does not have the expected shape.
        """
        value = body
        if key is not None:
            value = body.get(key) if isinstance(body, dict) else None
        if not isinstance(value, kind):
            where = f"'{key}'" if key is not None else "body"
            logger.warning(
                "%s returned an unexpected %s: %s",
                self.platform.value,
                where,
                str(body)[:200],
            )
            raise UpstreamError(
                self.platform.value,
                f"Unexpected response: {where} is not a {kind.__name__}",
            )
        return value

    @contextmanager
    def _parsing(self, what: str) -> Iterator[None]:
        """Re-raise payload normalization failures as UpstreamError."""
        try:
            yield
        except (
            KeyError, IndexError, TypeError, AttributeError, PydanticValidationError
        ) as e:
            logger.warning("Malformed %s %s payload: %r", self.platform.value, what, e)
            raise UpstreamError(
                self.platform.value, f"Malformed {what} payload: {e!r}"
            ) from e


def _error_detail(response: httpx.Response) -> str:
    """Extract the platform's error message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        for key in ("message", "errors", "error"):
            if key in body:
                return str(body[key])
    return str(body)[:200]
