"""Test catalog gateway connector selection and timeouts."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from shopchat.catalog.connectors import (
    ShopifyConnector,
    StaticConnector,
    WooCommerceConnector,
)
from shopchat.catalog.gateway import CatalogGateway
from shopchat.catalog.models import Product, StoreConfig
from shopchat.config import ShopChatConfig
from shopchat.db.models import PlatformType
from shopchat.errors import UpstreamError, UpstreamTimeoutError


def make_connector(platform: PlatformType) -> MagicMock:
    connector = MagicMock()
    connector.platform = platform
    connector.fetch_products = AsyncMock(
        return_value=[Product(id=f"{platform.value}-1", name=platform.value)]
    )
    connector.search_products = AsyncMock(return_value=[])
    connector.get_product_details = AsyncMock()
    connector.create_order = AsyncMock()
    connector.get_order_status = AsyncMock()
    return connector


@pytest.fixture
def connectors() -> dict[PlatformType, MagicMock]:
    return {platform: make_connector(platform) for platform in PlatformType}


@pytest.fixture
def gateway(connectors) -> CatalogGateway:
    return CatalogGateway(connectors, timeout_seconds=1.0)


def store_with(platform_type: str | None) -> StoreConfig:
    return StoreConfig(id="s1", name="Shop", platform_type=platform_type)


class TestResolvePlatform:
    """Tests for platform selection order."""

    def test_store_platform_wins_over_source(self, gateway):
        assert gateway.resolve_platform(store_with("shopify"), "static") == PlatformType.shopify

    def test_source_used_when_store_has_none(self, gateway):
        assert gateway.resolve_platform(store_with(None), "static") == PlatformType.static

    def test_defaults_to_woo(self, gateway):
        assert gateway.resolve_platform(store_with(None)) == PlatformType.woo

    def test_unknown_value_falls_back_to_woo(self, gateway):
        assert gateway.resolve_platform(store_with("magento")) == PlatformType.woo

    def test_case_insensitive(self, gateway):
        assert gateway.resolve_platform(store_with(None), "SHOPIFY") == PlatformType.shopify


class TestDelegation:

    @pytest.mark.asyncio
    async def test_fetch_all_uses_selected_connector(self, gateway, connectors):
        products = await gateway.fetch_all(store_with("static"))

        assert [p.id for p in products] == ["static-1"]
        connectors[PlatformType.static].fetch_products.assert_awaited_once()
        connectors[PlatformType.woo].fetch_products.assert_not_called()

    @pytest.mark.asyncio
    async def test_search_passes_query(self, gateway, connectors):
        store = store_with("shopify")
        await gateway.search("red hoodie", store)

        connectors[PlatformType.shopify].search_products.assert_awaited_once_with(
            "red hoodie", store
        )

    @pytest.mark.asyncio
    async def test_connector_errors_propagate(self, gateway, connectors):
        connectors[PlatformType.woo].fetch_products.side_effect = UpstreamError(
            "woo", "500 Internal Server Error", status_code=500
        )

        with pytest.raises(UpstreamError) as exc_info:
            await gateway.fetch_all(store_with("woo"))
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_slow_connector_times_out(self, connectors):
        async def slow(store):
            await asyncio.sleep(5)
            return []

        connectors[PlatformType.woo].fetch_products = slow
        gateway = CatalogGateway(connectors, timeout_seconds=0.05)

        with pytest.raises(UpstreamTimeoutError) as exc_info:
            await gateway.fetch_all(store_with("woo"))
        assert exc_info.value.source == "woo"
        assert exc_info.value.code == "E-3003"


class TestFromConfig:

    def test_builds_standard_connectors(self):
        config = ShopChatConfig()
        gateway = CatalogGateway.from_config(config)

        assert isinstance(gateway.connector_for(store_with("shopify")), ShopifyConnector)
        assert isinstance(gateway.connector_for(store_with("woo")), WooCommerceConnector)
        assert isinstance(gateway.connector_for(store_with("static")), StaticConnector)

    def test_configured_default_platform(self):
        config = ShopChatConfig(catalog={"default_platform": "static"})
        gateway = CatalogGateway.from_config(config)

        assert gateway.resolve_platform(store_with(None)) == PlatformType.static

    def test_invalid_default_platform_uses_woo(self):
        config = ShopChatConfig(catalog={"default_platform": "bogus"})
        gateway = CatalogGateway.from_config(config)

        assert gateway.resolve_platform(store_with(None)) == PlatformType.woo
