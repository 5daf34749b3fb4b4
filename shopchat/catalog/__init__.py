"""Product catalog access across commerce platforms."""

from shopchat.catalog.gateway import CatalogGateway
from shopchat.catalog.models import (
    OrderCustomer,
    OrderLineItem,
    OrderRequest,
    OrderStatus,
    OrderSummary,
    Product,
    StoreConfig,
    Variant,
)

__all__ = [
    "CatalogGateway",
    "OrderCustomer",
    "OrderLineItem",
    "OrderRequest",
    "OrderStatus",
    "OrderSummary",
    "Product",
    "StoreConfig",
    "Variant",
]
