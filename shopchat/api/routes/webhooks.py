"""Inbound webhooks from commerce platforms.

Both platforms sign the raw request body with HMAC-SHA256 and send the
base64 digest in a header. The store is resolved first so its own
webhook secret can be used for verification.
"""

import base64
import hashlib
import hmac
import logging

from fastapi import APIRouter, Depends, Header, Query, Request

from shopchat.api.dependencies import get_store_lookup
from shopchat.api.schemas import WebhookAck
from shopchat.errors import AuthenticationError, NotFoundError, ValidationError
from shopchat.services.store_service import StoreLookup

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

# Topics that change catalog data; everything else is acknowledged only.
CATALOG_TOPICS = frozenset({
    "products/create",
    "products/update",
    "products/delete",
    "product.created",
    "product.updated",
    "product.deleted",
})


def compute_signature(body: bytes, secret: str) -> str:
    """Return the base64 HMAC-SHA256 digest of ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(body: bytes, secret: str | None, signature: str) -> bool:
    """Constant-time check of a platform webhook signature."""
    if not secret or not signature:
        return False
    return hmac.compare_digest(compute_signature(body, secret), signature)


def _log_topic(platform: str, topic: str | None, store_id: str) -> None:
    if topic in CATALOG_TOPICS:
        logger.info("%s catalog webhook %s for store %s", platform, topic, store_id)
    else:
        logger.info("Unhandled %s webhook topic %s for store %s", platform, topic, store_id)


@router.post("/shopify", response_model=WebhookAck)
async def shopify_webhook(
    request: Request,
    x_shopify_hmac_sha256: str | None = Header(None, alias="X-Shopify-Hmac-Sha256"),
    x_shopify_shop_domain: str | None = Header(None, alias="X-Shopify-Shop-Domain"),
    x_shopify_topic: str | None = Header(None, alias="X-Shopify-Topic"),
    lookup: StoreLookup = Depends(get_store_lookup),
) -> WebhookAck:
    """Receive a Shopify webhook for a registered shop domain."""
    if not x_shopify_hmac_sha256:
        raise AuthenticationError("Missing HMAC signature", code="E-5005")
    if not x_shopify_shop_domain:
        raise ValidationError("Missing shop domain")

    store = await lookup.get_by_domain(x_shopify_shop_domain)
    if store is None:
        raise NotFoundError("Store", x_shopify_shop_domain)

    body = await request.body()
    if not verify_signature(body, store.shopify_webhook_secret, x_shopify_hmac_sha256):
        logger.warning("Invalid Shopify webhook signature for %s", x_shopify_shop_domain)
        raise AuthenticationError("Invalid webhook signature", code="E-5005")

    _log_topic("Shopify", x_shopify_topic, store.id)
    return WebhookAck(received=True, topic=x_shopify_topic)


@router.post("/woocommerce", response_model=WebhookAck)
async def woocommerce_webhook(
    request: Request,
    source: str | None = Query(None, description="Store id, domain or API key"),
    x_wc_webhook_signature: str | None = Header(None, alias="X-WC-Webhook-Signature"),
    x_wc_webhook_topic: str | None = Header(None, alias="X-WC-Webhook-Topic"),
    lookup: StoreLookup = Depends(get_store_lookup),
) -> WebhookAck:
    """Receive a WooCommerce webhook for the store named by ``source``."""
    if not x_wc_webhook_signature:
        raise AuthenticationError("Missing webhook signature", code="E-5005")
    if not source:
        raise ValidationError("Missing source identifier")

    store = await lookup.find_by_identifier(source)
    if store is None:
        raise NotFoundError("Store", source)

    body = await request.body()
    if not verify_signature(body, store.woo_webhook_secret, x_wc_webhook_signature):
        logger.warning("Invalid WooCommerce webhook signature for store %s", store.id)
        raise AuthenticationError("Invalid webhook signature", code="E-5005")

    _log_topic("WooCommerce", x_wc_webhook_topic, store.id)
    return WebhookAck(received=True, topic=x_wc_webhook_topic)
