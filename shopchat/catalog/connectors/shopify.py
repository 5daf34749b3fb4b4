"""Shopify catalog connector.

Reads products and creates orders through the Shopify Admin REST API.
Authentication uses the store's Admin API access token in the
``X-Shopify-Access-Token`` header.

API Reference: https://shopify.dev/docs/api/admin-rest
"""

import logging
from typing import Any

from shopchat.catalog.connectors.base import (
    RemoteCatalogConnector,
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
from shopchat.errors import ValidationError

logger = logging.getLogger(__name__)


class ShopifyConnector(RemoteCatalogConnector):
    """Shopify connector using Admin REST API 2023-10.

    Example usage:
        connector = ShopifyConnector(timeout_seconds=15)
        products = await connector.fetch_products(store)
    """

    platform = PlatformType.shopify

    API_VERSION = "2023-10"

    async def fetch_products(self, store: StoreConfig) -> list[Product]:
        response = await self._make_request(store, "GET", "products.json")
        with self._parsing("products"):
            products = [
                self._normalize_product(p)
                for p in self._expect(response, list, "products")
            ]
        logger.info("Fetched %d products from Shopify (%s)", len(products), store.domain)
        return products

    async def search_products(self, query: str, store: StoreConfig) -> list[Product]:
        response = await self._make_request(
            store, "GET", "products.json", params={"title": query}
        )
        with self._parsing("products"):
            return [
                self._normalize_product(p)
                for p in self._expect(response, list, "products")
            ]

    async def get_product_details(
        self, product_id: str, store: StoreConfig
    ) -> Product:
        response = await self._make_request(
            store,
            "GET",
            f"products/{product_id}.json",
            not_found=("Product", product_id),
        )
        with self._parsing("product"):
            return self._normalize_product(self._expect(response, dict, "product"))

    async def create_order(
        self, order: OrderRequest, store: StoreConfig
    ) -> OrderSummary:
        """Create a pending Shopify order.

        Shopify line items reference variants, so every item must carry
        a ``variant_id``.

        Raises:
            ValidationError: If a line item has no variant_id.
        """
        missing = [item.product_id for item in order.items if not item.variant_id]
        if missing:
            raise ValidationError(
                "Shopify orders require a variant_id for every line item",
                code="E-2002",
                errors=[f"items[product_id={pid}]: variant_id is required" for pid in missing],
            )

        payload = {
            "order": {
                "line_items": [
                    {"variant_id": item.variant_id, "quantity": item.quantity}
                    for item in order.items
                ],
                "customer": {
                    "first_name": order.customer.first_name,
                    "last_name": order.customer.last_name,
                    "email": order.customer.email,
                },
                "shipping_address": order.shipping_address,
                "financial_status": "pending",
            }
        }
        if order.billing_address:
            payload["order"]["billing_address"] = order.billing_address

        response = await self._make_request(store, "POST", "orders.json", json=payload)
        created = self._expect(response, dict, "order")
        logger.info("Created Shopify order %s for %s", created.get("id"), store.domain)
        with self._parsing("order"):
            return OrderSummary(
                id=str(created["id"]),
                status=created.get("financial_status") or "pending",
                total=str(created.get("total_price", "0.00")),
                item_count=len(created.get("line_items") or []),
            )

    async def get_order_status(
        self, order_id: str, store: StoreConfig
    ) -> OrderStatus:
        response = await self._make_request(
            store,
            "GET",
            f"orders/{order_id}.json",
            not_found=("Order", order_id),
        )
        data = self._expect(response, dict, "order")
        with self._parsing("order"):
            return OrderStatus(
                id=str(data["id"]),
                status=data.get("financial_status") or "unknown",
                fulfillment_status=data.get("fulfillment_status") or "unfulfilled",
                created_at=data.get("created_at"),
                updated_at=data.get("updated_at"),
                total=data.get("total_price"),
            )

    async def _make_request(
        self,
        store: StoreConfig,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        not_found: tuple[str, str] | None = None,
    ) -> Any:
        """Make an authenticated request to the store's Admin API.

        Raises:
            ValidationError: If the store lacks a domain or access token.
        """
        if not store.domain or not store.shopify_token:
            raise ValidationError(
                f"Store {store.id} is missing Shopify credentials",
                code="E-2003",
            )
        domain = store.domain.removeprefix("https://").removeprefix("http://").rstrip("/")
        url = f"https://{domain}/admin/api/{self.API_VERSION}/{endpoint}"
        return await self._send(
            method,
            url,
            headers={
                "X-Shopify-Access-Token": store.shopify_token,
                "Content-Type": "application/json",
            },
            params=params,
            json=json,
            not_found=not_found,
        )

    @staticmethod
    def _normalize_product(data: dict[str, Any]) -> Product:
        """Convert a Shopify product payload to the canonical Product."""
        raw_variants = data.get("variants") or []
        image = data.get("image") or {}
        return Product(
            id=str(data["id"]),
            name=data.get("title") or "",
            price=format_price(raw_variants[0].get("price") if raw_variants else 0),
            category=data.get("product_type") or "Uncategorized",
            description=strip_html(data.get("body_html")),
            image=image.get("src") or "",
            variants=[
                Variant(
                    id=str(v["id"]),
                    title=v.get("title") or "",
                    price=to_decimal(v.get("price")),
                    sku=v.get("sku") or None,
                    inventory_quantity=v.get("inventory_quantity"),
                )
                for v in raw_variants
            ],
        )
