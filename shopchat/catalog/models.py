"""Canonical catalog, order and store models.

Every connector normalizes its platform's payloads into these shapes so
the orchestrator and prompt composer never see platform-specific fields.
"""

import re
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class StoreConfig(BaseModel):
    """Read-only view of a tenant, built from a ``stores`` row.

    Only the credential fields of the store's own platform are ever read.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    domain: str = ""
    api_key: str | None = None
    platform_type: str | None = None

    shopify_token: str | None = None
    woo_key: str | None = None
    woo_secret: str | None = None
    shopify_webhook_secret: str | None = None
    woo_webhook_secret: str | None = None

    bot_name: str = "AI Assistant"
    welcome_message: str = "How can I help you today?"
    bot_tone: str = "friendly"
    bot_language: str = "en"
    primary_color: str = "#4F46E5"
    logo_url: str | None = None
    shipping_policy: str | None = None
    returns_policy: str | None = None

    bot_active: bool = True
    max_messages: int | None = None
    plan: str = "free"


class Variant(BaseModel):
    """Purchasable variation of a product."""

    id: str
    title: str = ""
    price: Decimal = Decimal("0")
    sku: str | None = None
    inventory_quantity: int | None = None


class Product(BaseModel):
    """Connector-normalized product.

    ``price`` is a display string such as ``"$19.99"``.
    """

    id: str
    name: str
    price: str = "$0.00"
    category: str = "Uncategorized"
    description: str = ""
    image: str = ""
    variants: list[Variant] = Field(default_factory=list)


class OrderCustomer(BaseModel):
    """Buyer identity attached to an order."""

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("invalid email address")
        return value


class OrderLineItem(BaseModel):
    """One product line of an order request."""

    product_id: str = Field(..., min_length=1)
    variant_id: str | None = None
    quantity: int = Field(..., ge=1)


class OrderRequest(BaseModel):
    """Canonical order creation request."""

    items: list[OrderLineItem] = Field(..., min_length=1)
    customer: OrderCustomer
    shipping_address: dict[str, Any] = Field(default_factory=dict)
    billing_address: dict[str, Any] | None = None


class OrderSummary(BaseModel):
    """Result of a successful order creation."""

    id: str
    status: str
    total: str
    item_count: int


class OrderStatus(BaseModel):
    """Platform order state, passed through unmapped."""

    id: str
    status: str
    fulfillment_status: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    total: str | None = None
