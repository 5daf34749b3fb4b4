"""SQLAlchemy ORM models for the ShopChat datastore.

Defines the tenant (store) configuration table and the append-only
conversation message log. Uses SQLAlchemy 2.0 style with Mapped and
mapped_column.
"""

from datetime import UTC, datetime
from enum import Enum
from secrets import token_hex
from uuid import uuid4

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def generate_api_key() -> str:
    """Generate a 32-byte hex API key for widget authentication."""
    return token_hex(32)


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format.

    Microsecond precision is always rendered so stored values sort
    lexicographically in chronological order.
    """
    return datetime.now(UTC).isoformat(timespec="microseconds")


# Enums matching the database schema constraints


class PlatformType(str, Enum):
    """Commerce backend a store's catalog is served from."""

    shopify = "shopify"
    woo = "woo"
    static = "static"


class MessageRole(str, Enum):
    """Speaker of a persisted conversation message."""

    system = "system"
    user = "user"
    assistant = "assistant"


# SQLAlchemy Base


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Models


class Store(Base):
    """Tenant configuration record.

    Owned by the dashboard side of the product; the chat core only reads
    it. ``platform_type`` decides which credential columns are meaningful.

    Attributes:
        id: UUID primary key
        name: Store display name
        domain: Shop domain (``example.myshopify.com`` or site URL)
        api_key: Widget API key sent as ``X-API-Key``
        platform_type: One of PlatformType values
        shopify_token: Shopify Admin API access token
        woo_key: WooCommerce consumer key
        woo_secret: WooCommerce consumer secret
        shopify_webhook_secret: Shared secret for Shopify webhook HMACs
        woo_webhook_secret: Shared secret for WooCommerce webhook HMACs
        bot_name: Assistant persona name
        welcome_message: First message shown by the widget
        bot_tone: Persona tone (friendly, formal, ...)
        bot_language: ISO language code for replies
        primary_color: Widget accent color
        logo_url: Widget logo
        shipping_policy: Free text injected into the system prompt
        returns_policy: Free text injected into the system prompt
        bot_active: Whether the widget may chat at all
        max_messages: Monthly user-message quota, NULL for unlimited
        plan: Subscription tier
    """

    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    api_key: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, default=generate_api_key
    )
    platform_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PlatformType.woo.value
    )

    # Platform credentials
    shopify_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    woo_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    woo_secret: Mapped[str | None] = mapped_column(String(255), nullable=True)
    shopify_webhook_secret: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    woo_webhook_secret: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # Persona and branding
    bot_name: Mapped[str] = mapped_column(
        String(100), nullable=False, default="AI Assistant"
    )
    welcome_message: Mapped[str] = mapped_column(
        Text, nullable=False, default="How can I help you today?"
    )
    bot_tone: Mapped[str] = mapped_column(
        String(50), nullable=False, default="friendly"
    )
    bot_language: Mapped[str] = mapped_column(
        String(10), nullable=False, default="en"
    )
    primary_color: Mapped[str] = mapped_column(
        String(20), nullable=False, default="#4F46E5"
    )
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    shipping_policy: Mapped[str | None] = mapped_column(Text, nullable=True)
    returns_policy: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Access
    bot_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    max_messages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    plan: Mapped[str] = mapped_column(String(20), nullable=False, default="free")

    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso, onupdate=utc_now_iso
    )

    def __repr__(self) -> str:
        return (
            f"<Store(id={self.id!r}, domain={self.domain!r}, "
            f"platform_type={self.platform_type!r})>"
        )


class Message(Base):
    """One persisted chat turn.

    Append-only. Ordering within a session is ``(timestamp, id)``
    ascending; the autoincrement id breaks ties between messages written
    in the same microsecond.
    """

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    store_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    __table_args__ = (
        Index("idx_messages_session_store", "session_id", "store_id"),
        Index("idx_messages_store_timestamp", "store_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return (
            f"<Message(id={self.id!r}, session_id={self.session_id!r}, "
            f"role={self.role!r})>"
        )
