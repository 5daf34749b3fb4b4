"""Root-level pytest fixtures for all tests.

Provides shared fixtures:
- Async in-memory SQLite session factory with all tables created
- Sample stores for each supported platform
"""

import os
from collections.abc import AsyncGenerator

# Keep the module-level engines off the working directory.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SHOPCHAT_APP_ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shopchat.catalog.models import StoreConfig
from shopchat.db.models import Base


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring external services"
    )


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """In-memory async SQLite with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


# ============================================================================
# Store Fixtures
# ============================================================================


@pytest.fixture
def shopify_store() -> StoreConfig:
    return StoreConfig(
        id="store-shopify",
        name="Maple Goods",
        domain="maple-goods.myshopify.com",
        api_key="key-shopify",
        platform_type="shopify",
        shopify_token="shpat_test_token",
        shipping_policy="Free shipping over $50.",
        returns_policy="Returns accepted within 30 days.",
    )


@pytest.fixture
def woo_store() -> StoreConfig:
    return StoreConfig(
        id="store-woo",
        name="Cedar Supply",
        domain="https://cedar.example.com",
        api_key="key-woo",
        platform_type="woo",
        woo_key="ck_test",
        woo_secret="cs_test",
    )


@pytest.fixture
def static_store() -> StoreConfig:
    return StoreConfig(
        id="store-static",
        name="Demo Shop",
        domain="demo.example.com",
        api_key="key-static",
        platform_type="static",
        bot_name="Sunny",
    )
