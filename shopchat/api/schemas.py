"""Pydantic request/response schemas for the chat and webhook API."""

from pydantic import BaseModel, ConfigDict, Field

from shopchat.catalog.models import (
    OrderRequest,
    OrderStatus,
    OrderSummary,
    Product,
)
from shopchat.services.conversation_store import ConversationStats


class ChatRequest(BaseModel):
    """Inbound chat message from the widget."""

    message: str = Field(..., description="User message text")
    session_id: str | None = Field(None, description="Existing session id")
    source: str | None = Field(None, description="Platform hint when the store has none")
    user_id: str | None = Field(None, description="Optional end-user identifier")


class ChatResponse(BaseModel):
    """Assistant reply for one chat turn."""

    response: str
    session_id: str


class ProductSearchResponse(BaseModel):
    products: list[Product]


class ProductResponse(BaseModel):
    product: Product


class OrderCreateRequest(BaseModel):
    """Order placement request."""

    order: OrderRequest
    source: str | None = None


class OrderCreateResponse(BaseModel):
    order: OrderSummary


class OrderStatusResponse(BaseModel):
    status: OrderStatus


class HistoryMessage(BaseModel):
    """One persisted message as returned to the widget."""

    model_config = ConfigDict(from_attributes=True)

    role: str
    content: str
    timestamp: str
    user_id: str | None = None


class HistoryResponse(BaseModel):
    session_id: str
    history: list[HistoryMessage]


class ClearHistoryResponse(BaseModel):
    success: bool
    deleted: int


class StatsResponse(BaseModel):
    stats: ConversationStats


class WidgetConfigResponse(BaseModel):
    """Persona and branding for rendering the chat widget. No credentials."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    bot_name: str
    welcome_message: str
    bot_tone: str
    bot_language: str
    primary_color: str
    logo_url: str | None = None
    bot_active: bool


class WebhookAck(BaseModel):
    received: bool
    topic: str | None = None
