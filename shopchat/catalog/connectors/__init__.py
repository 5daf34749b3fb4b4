"""Catalog connectors, one per supported commerce backend."""

from shopchat.catalog.connectors.base import CatalogConnector, RemoteCatalogConnector
from shopchat.catalog.connectors.shopify import ShopifyConnector
from shopchat.catalog.connectors.static import StaticConnector
from shopchat.catalog.connectors.woocommerce import WooCommerceConnector

__all__ = [
    "CatalogConnector",
    "RemoteCatalogConnector",
    "ShopifyConnector",
    "StaticConnector",
    "WooCommerceConnector",
]
