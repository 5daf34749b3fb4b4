"""Catalog gateway: picks a store's connector and bounds every call.

The gateway is the single place where platform type is dispatched on.
Callers get a uniform fetch/search/order API and never branch on
platform themselves.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from shopchat.catalog.connectors import (
    CatalogConnector,
    ShopifyConnector,
    StaticConnector,
    WooCommerceConnector,
)
from shopchat.catalog.models import (
    OrderRequest,
    OrderStatus,
    OrderSummary,
    Product,
    StoreConfig,
)
from shopchat.config import ShopChatConfig
from shopchat.db.models import PlatformType
from shopchat.errors import UpstreamTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PLATFORM = PlatformType.woo


class CatalogGateway:
    """Dispatch catalog operations to the connector for a store's platform.

    Selection order is the store's ``platform_type``, then the
    caller-declared ``source``, then ``woo``. Unrecognized values fall
    back to ``woo`` as well.

    Args:
        connectors: Connector instance per platform.
        timeout_seconds: Upper bound for each delegated call.
        default_platform: Fallback platform.
    """

    def __init__(
        self,
        connectors: dict[PlatformType, CatalogConnector],
        timeout_seconds: float = 15.0,
        default_platform: PlatformType = DEFAULT_PLATFORM,
    ) -> None:
        self._connectors = connectors
        self._timeout = timeout_seconds
        self._default = default_platform

    @classmethod
    def from_config(cls, config: ShopChatConfig) -> "CatalogGateway":
        """Build a gateway with the standard connectors from configuration."""
        timeout = config.catalog.timeout_seconds
        try:
            default = PlatformType(config.catalog.default_platform)
        except ValueError:
            logger.warning(
                "Unknown default platform %r, using %s",
                config.catalog.default_platform,
                DEFAULT_PLATFORM.value,
            )
            default = DEFAULT_PLATFORM
        return cls(
            connectors={
                PlatformType.shopify: ShopifyConnector(timeout_seconds=timeout),
                PlatformType.woo: WooCommerceConnector(timeout_seconds=timeout),
                PlatformType.static: StaticConnector(
                    config.catalog.static_products_path
                ),
            },
            timeout_seconds=timeout,
            default_platform=default,
        )

    def resolve_platform(
        self, store: StoreConfig, source: str | None = None
    ) -> PlatformType:
        """Decide which platform serves this store."""
        requested = store.platform_type or source
        if not requested:
            return self._default
        try:
            return PlatformType(requested.lower())
        except ValueError:
            logger.warning(
                "Unrecognized platform %r for store %s, falling back to %s",
                requested,
                store.id,
                self._default.value,
            )
            return self._default

    def connector_for(
        self, store: StoreConfig, source: str | None = None
    ) -> CatalogConnector:
        """Return the connector for the store's resolved platform."""
        return self._connectors[self.resolve_platform(store, source)]

    async def fetch_all(
        self, store: StoreConfig, source: str | None = None
    ) -> list[Product]:
        connector = self.connector_for(store, source)
        return await self._bounded(connector.fetch_products(store), connector)

    async def search(
        self, query: str, store: StoreConfig, source: str | None = None
    ) -> list[Product]:
        connector = self.connector_for(store, source)
        return await self._bounded(connector.search_products(query, store), connector)

    async def get_product(
        self, product_id: str, store: StoreConfig, source: str | None = None
    ) -> Product:
        connector = self.connector_for(store, source)
        return await self._bounded(
            connector.get_product_details(product_id, store), connector
        )

    async def create_order(
        self, order: OrderRequest, store: StoreConfig, source: str | None = None
    ) -> OrderSummary:
        connector = self.connector_for(store, source)
        return await self._bounded(connector.create_order(order, store), connector)

    async def get_order_status(
        self, order_id: str, store: StoreConfig, source: str | None = None
    ) -> OrderStatus:
        connector = self.connector_for(store, source)
        return await self._bounded(
            connector.get_order_status(order_id, store), connector
        )

    async def _bounded(
        self, call: Awaitable[T], connector: CatalogConnector
    ) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning(
                "%s catalog call exceeded %ss", connector.platform.value, self._timeout
            )
            raise UpstreamTimeoutError(connector.platform.value, self._timeout) from e
