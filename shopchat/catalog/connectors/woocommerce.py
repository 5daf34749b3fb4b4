"""WooCommerce catalog connector.

Implements CatalogConnector for the WooCommerce REST API v3.
Authentication uses the store's consumer key/secret via HTTP Basic Auth.

API Reference: https://woocommerce.github.io/woocommerce-rest-api-docs/
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


class WooCommerceConnector(RemoteCatalogConnector):
    """WooCommerce connector using REST API v3.

    Example usage:
        connector = WooCommerceConnector()
        products = await connector.search_products("hoodie", store)
    """

    platform = PlatformType.woo

    # WooCommerce REST API v3 base path
    API_VERSION = "wc/v3"

    FETCH_PAGE_SIZE = 100
    SEARCH_PAGE_SIZE = 20

    async def fetch_products(self, store: StoreConfig) -> list[Product]:
        response = await self._make_request(
            store, "GET", "products", params={"per_page": self.FETCH_PAGE_SIZE}
        )
        with self._parsing("products"):
            products = [
                self._normalize_product(p) for p in self._expect(response, list)
            ]
        logger.info(
            "Fetched %d products from WooCommerce (%s)", len(products), store.domain
        )
        return products

    async def search_products(self, query: str, store: StoreConfig) -> list[Product]:
        response = await self._make_request(
            store,
            "GET",
            "products",
            params={"search": query, "per_page": self.SEARCH_PAGE_SIZE},
        )
        with self._parsing("products"):
            return [
                self._normalize_product(p) for p in self._expect(response, list)
            ]

    async def get_product_details(
        self, product_id: str, store: StoreConfig
    ) -> Product:
        """Fetch a product and, when it has variations, its variation records."""
        data = await self._make_request(
            store,
            "GET",
            f"products/{product_id}",
            not_found=("Product", product_id),
        )
        self._expect(data, dict)
        variations = None
        if data.get("variations"):
            variations = self._expect(
                await self._make_request(
                    store,
                    "GET",
                    f"products/{product_id}/variations",
                    params={"per_page": self.FETCH_PAGE_SIZE},
                ),
                list,
            )
        with self._parsing("product"):
            return self._normalize_product(data, variations)

    async def create_order(
        self, order: OrderRequest, store: StoreConfig
    ) -> OrderSummary:
        billing = {
            "first_name": order.customer.first_name,
            "last_name": order.customer.last_name,
            "email": order.customer.email,
            **(order.billing_address or {}),
        }
        line_items = []
        for item in order.items:
            line: dict[str, Any] = {
                "product_id": item.product_id,
                "quantity": item.quantity,
            }
            if item.variant_id:
                line["variation_id"] = item.variant_id
            line_items.append(line)

        payload = {
            "line_items": line_items,
            "billing": billing,
            "shipping": order.shipping_address,
        }
        created = self._expect(
            await self._make_request(store, "POST", "orders", json=payload), dict
        )
        logger.info(
            "Created WooCommerce order %s for %s", created.get("id"), store.domain
        )
        with self._parsing("order"):
            return OrderSummary(
                id=str(created["id"]),
                status=created.get("status") or "pending",
                total=str(created.get("total", "0.00")),
                item_count=len(created.get("line_items") or []),
            )

    async def get_order_status(
        self, order_id: str, store: StoreConfig
    ) -> OrderStatus:
        data = await self._make_request(
            store,
            "GET",
            f"orders/{order_id}",
            not_found=("Order", order_id),
        )
        self._expect(data, dict)
        status = data.get("status") or "unknown"
        with self._parsing("order"):
            return OrderStatus(
                id=str(data["id"]),
                status=status,
                fulfillment_status=status,
                created_at=data.get("date_created"),
                updated_at=data.get("date_modified"),
                total=data.get("total"),
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
        """Make an authenticated request to the store's WooCommerce API.

        Raises:
            ValidationError: If the store lacks a domain or consumer key/secret.
        """
        if not store.domain or not store.woo_key or not store.woo_secret:
            raise ValidationError(
                f"Store {store.id} is missing WooCommerce credentials",
                code="E-2003",
            )
        site_url = store.domain.rstrip("/")
        if not site_url.startswith(("http://", "https://")):
            site_url = f"https://{site_url}"
        url = f"{site_url}/wp-json/{self.API_VERSION}/{endpoint}"
        return await self._send(
            method,
            url,
            auth=(store.woo_key, store.woo_secret),
            params=params,
            json=json,
            not_found=not_found,
        )

    @staticmethod
    def _normalize_product(
        data: dict[str, Any],
        variations: list[dict[str, Any]] | None = None,
    ) -> Product:
        """Convert a WooCommerce product payload to the canonical Product.

        Listing endpoints return variation ids only; full variation records
        are used when supplied.
        """
        if variations is None:
            variations = [v for v in data.get("variations") or [] if isinstance(v, dict)]
        categories = data.get("categories") or []
        images = data.get("images") or []
        return Product(
            id=str(data["id"]),
            name=data.get("name") or "",
            price=format_price(data.get("price")),
            category=(categories[0].get("name") if categories else None)
            or "Uncategorized",
            description=strip_html(data.get("description")),
            image=(images[0].get("src") if images else None) or "",
            variants=[
                Variant(
                    id=str(v["id"]),
                    title=" - ".join(
                        str(a.get("option", "")) for a in v.get("attributes") or []
                    ),
                    price=to_decimal(v.get("price")),
                    sku=v.get("sku") or None,
                    inventory_quantity=v.get("stock_quantity"),
                )
                for v in variations
            ],
        )
