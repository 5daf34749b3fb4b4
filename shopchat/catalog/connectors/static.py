"""Static-file catalog connector.

Serves a catalog from a local JSON file (a list of product objects) for
demo stores and stores without a commerce backend. Orders are kept in a
bounded in-memory map and do not survive restarts.
"""

import asyncio
import json
import logging
import time
from collections import OrderedDict
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from shopchat.catalog.connectors.base import (
    CatalogConnector,
    format_price,
    strip_html,
    to_decimal,
)
from shopchat.catalog.models import (
    OrderRequest,
    OrderStatus,
    OrderSummary,
    Product,
    StoreConfig,
    Variant,
)
from shopchat.db.models import PlatformType
from shopchat.errors import NotFoundError

logger = logging.getLogger(__name__)

MAX_STORED_ORDERS = 1000


class StaticConnector(CatalogConnector):
    """Catalog read from a JSON file, loaded once and cached.

    Args:
        products_path: Path to the products JSON file.
        max_orders: Number of most recent orders retained for status lookup.
    """

    platform = PlatformType.static

    def __init__(
        self,
        products_path: str | Path = "data/products.json",
        max_orders: int = MAX_STORED_ORDERS,
    ) -> None:
        self._path = Path(products_path)
        self._products: list[Product] | None = None
        self._orders: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self._max_orders = max_orders

    async def _load_products(self) -> list[Product]:
        """Return the cached catalog, reading the file on first use.

        A missing or unreadable file yields an empty catalog and is
        retried on the next call. Malformed entries are skipped.
        """
        if self._products is not None:
            return self._products
        try:
            raw = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
            data = json.loads(raw)
        except (OSError, ValueError) as e:
            logger.error("Error loading products from %s: %s", self._path, e)
            return []
        if not isinstance(data, list):
            logger.error("Static catalog %s is not a JSON list", self._path)
            return []
        products = []
        for index, item in enumerate(data):
            try:
                products.append(self._normalize_product(item))
            except (KeyError, TypeError, AttributeError, PydanticValidationError) as e:
                logger.warning(
                    "Skipping malformed product #%d in %s: %r", index, self._path, e
                )
        self._products = products
        logger.info("Loaded %d static products from %s", len(self._products), self._path)
        return self._products

    async def fetch_products(self, store: StoreConfig) -> list[Product]:
        return list(await self._load_products())

    async def search_products(self, query: str, store: StoreConfig) -> list[Product]:
        """Match products containing every query token.

        Tokens are whitespace-delimited and compared case-insensitively
        against ``name description category``.
        """
        terms = query.lower().split()
        products = await self._load_products()
        return [
            product
            for product in products
            if all(
                term in f"{product.name} {product.description} {product.category}".lower()
                for term in terms
            )
        ]

    async def get_product_details(
        self, product_id: str, store: StoreConfig
    ) -> Product:
        for product in await self._load_products():
            if product.id == product_id:
                return product
        raise NotFoundError("Product", product_id)

    async def create_order(
        self, order: OrderRequest, store: StoreConfig
    ) -> OrderSummary:
        """Record an order priced from the catalog.

        Raises:
            NotFoundError: If a line item references an unknown product.
        """
        catalog = {p.id: p for p in await self._load_products()}
        total = Decimal("0")
        for item in order.items:
            product = catalog.get(item.product_id)
            if product is None:
                raise NotFoundError("Product", item.product_id)
            total += self._unit_price(product, item.variant_id) * item.quantity

        order_id = self._next_order_id()
        now = datetime.now(UTC).isoformat()
        self._orders[order_id] = {
            "id": order_id,
            "status": "processing",
            "created_at": now,
            "updated_at": now,
            "items": [item.model_dump() for item in order.items],
            "customer": order.customer.model_dump(),
            "total": format_price(total),
        }
        while len(self._orders) > self._max_orders:
            self._orders.popitem(last=False)

        return OrderSummary(
            id=order_id,
            status="processing",
            total=format_price(total),
            item_count=len(order.items),
        )

    async def get_order_status(
        self, order_id: str, store: StoreConfig
    ) -> OrderStatus:
        record = self._orders.get(order_id)
        if record is None:
            raise NotFoundError("Order", order_id)
        return OrderStatus(
            id=record["id"],
            status=record["status"],
            fulfillment_status="pending",
            created_at=record["created_at"],
            updated_at=record["updated_at"],
            total=record["total"],
        )

    def _next_order_id(self) -> str:
        millis = int(time.time() * 1000)
        while f"static-{millis}" in self._orders:
            millis += 1
        return f"static-{millis}"

    @staticmethod
    def _unit_price(product: Product, variant_id: str | None) -> Decimal:
        if variant_id:
            for variant in product.variants:
                if variant.id == variant_id:
                    return variant.price
        return to_decimal(product.price)

    @staticmethod
    def _normalize_product(data: dict[str, Any]) -> Product:
        """Fill defaults for file entries that omit optional fields."""
        return Product(
            id=str(data["id"]),
            name=data.get("name") or "",
            price=format_price(data.get("price")),
            category=data.get("category") or "Uncategorized",
            description=strip_html(data.get("description")),
            image=data.get("image") or "",
            variants=[
                Variant(
                    id=str(v["id"]),
                    title=v.get("title") or "",
                    price=to_decimal(v.get("price")),
                    sku=v.get("sku") or None,
                    inventory_quantity=v.get("inventory_quantity"),
                )
                for v in data.get("variants") or []
            ],
        )
