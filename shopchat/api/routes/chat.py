"""FastAPI routes for the storefront chat widget.

All endpoints authenticate the calling store by ``X-API-Key``. Product,
order and history operations are scoped to that store.
"""

import logging

from fastapi import APIRouter, Depends, Query

from shopchat.api.dependencies import (
    get_conversation_store,
    get_gateway,
    get_orchestrator,
    get_settings,
)
from shopchat.api.middleware.auth import require_chat_access, require_store
from shopchat.api.middleware.rate_limit import enforce_chat_rate_limit
from shopchat.api.schemas import (
    ChatRequest,
    ChatResponse,
    ClearHistoryResponse,
    HistoryMessage,
    HistoryResponse,
    OrderCreateRequest,
    OrderCreateResponse,
    OrderStatusResponse,
    ProductResponse,
    ProductSearchResponse,
    StatsResponse,
    WidgetConfigResponse,
)
from shopchat.catalog.gateway import CatalogGateway
from shopchat.catalog.models import StoreConfig
from shopchat.config import ShopChatConfig
from shopchat.errors import ValidationError
from shopchat.orchestrator.responder import ResponseOrchestrator
from shopchat.services.conversation_store import ConversationStore
from shopchat.utils.validation import sanitize_message

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post(
    "",
    response_model=ChatResponse,
    dependencies=[Depends(enforce_chat_rate_limit)],
)
async def chat(
    body: ChatRequest,
    store: StoreConfig = Depends(require_chat_access),
    config: ShopChatConfig = Depends(get_settings),
    orchestrator: ResponseOrchestrator = Depends(get_orchestrator),
) -> ChatResponse:
    """Answer one user message.

    The message is stripped of HTML and truncated before it reaches the
    orchestrator.
    """
    message = sanitize_message(body.message, config.chat.max_message_length)
    result = await orchestrator.respond(
        message,
        body.source,
        store,
        session_id=body.session_id,
        user_id=body.user_id,
    )
    return ChatResponse(response=result.reply, session_id=result.session_id)


@router.get("/products/search", response_model=ProductSearchResponse)
async def search_products(
    query: str | None = Query(None, description="Search text"),
    source: str | None = Query(None, description="Platform hint"),
    store: StoreConfig = Depends(require_store),
    gateway: CatalogGateway = Depends(get_gateway),
) -> ProductSearchResponse:
    """Search the store's catalog."""
    query = sanitize_message(query)
    if not query:
        raise ValidationError("Search query is required")
    logger.info("Searching products for store %s: %r", store.id, query)
    products = await gateway.search(query, store, source)
    return ProductSearchResponse(products=products)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    source: str | None = Query(None, description="Platform hint"),
    store: StoreConfig = Depends(require_store),
    gateway: CatalogGateway = Depends(get_gateway),
) -> ProductResponse:
    """Fetch one product's details, including variants."""
    product = await gateway.get_product(product_id, store, source)
    return ProductResponse(product=product)


@router.post("/order", response_model=OrderCreateResponse, status_code=201)
async def create_order(
    body: OrderCreateRequest,
    store: StoreConfig = Depends(require_store),
    gateway: CatalogGateway = Depends(get_gateway),
) -> OrderCreateResponse:
    """Place an order on the store's platform."""
    summary = await gateway.create_order(body.order, store, body.source)
    logger.info("Order %s created for store %s", summary.id, store.id)
    return OrderCreateResponse(order=summary)


@router.get("/order/{order_id}", response_model=OrderStatusResponse)
async def get_order_status(
    order_id: str,
    source: str | None = Query(None, description="Platform hint"),
    store: StoreConfig = Depends(require_store),
    gateway: CatalogGateway = Depends(get_gateway),
) -> OrderStatusResponse:
    """Look up an order's status."""
    status = await gateway.get_order_status(order_id, store, source)
    return OrderStatusResponse(status=status)


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    session_id: str = Query(..., min_length=1, description="Session id"),
    limit: int = Query(50, ge=1, le=500, description="Most recent messages"),
    store: StoreConfig = Depends(require_store),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> HistoryResponse:
    """Return a session's most recent messages, oldest first."""
    messages = await conversations.read(session_id, limit, store.id)
    return HistoryResponse(
        session_id=session_id,
        history=[HistoryMessage.model_validate(m) for m in messages],
    )


@router.delete("/history", response_model=ClearHistoryResponse)
async def clear_history(
    session_id: str = Query(..., min_length=1, description="Session id"),
    store: StoreConfig = Depends(require_store),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> ClearHistoryResponse:
    """Delete a session's messages."""
    deleted = await conversations.clear(session_id, store.id)
    return ClearHistoryResponse(success=True, deleted=deleted)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    store: StoreConfig = Depends(require_store),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> StatsResponse:
    """Return conversation metrics for the calling store."""
    return StatsResponse(stats=await conversations.stats(store.id))


@router.get("/config", response_model=WidgetConfigResponse)
async def get_widget_config(
    store: StoreConfig = Depends(require_store),
) -> WidgetConfigResponse:
    """Return persona and branding for the widget."""
    return WidgetConfigResponse.model_validate(store)
