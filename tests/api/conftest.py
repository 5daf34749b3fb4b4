"""Fixtures for API route tests.

Routes run against a temp-file SQLite database so the TestClient's event
loop and the seeding code can share it. Catalog calls go to the bundled
static catalog and the language model is a mock.
"""

from collections.abc import Callable, Generator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from shopchat.api.dependencies import (
    get_chat_model,
    get_gateway,
    get_session_factory,
    get_settings,
)
from shopchat.api.main import app
from shopchat.api.middleware.auth import reset_rate_limiter
from shopchat.api.middleware.rate_limit import reset_chat_limiter
from shopchat.catalog.connectors import StaticConnector
from shopchat.catalog.gateway import CatalogGateway
from shopchat.config import ShopChatConfig
from shopchat.db.models import Base, Message, PlatformType, Store

REPO_CATALOG = Path(__file__).resolve().parents[2] / "data" / "products.json"

MODEL_REPLY = "The Blue Cotton Shirt is $29.99 and comes in three sizes."


@pytest.fixture
def db_file(tmp_path) -> Path:
    return tmp_path / "shopchat-test.db"


@pytest.fixture
def sync_session_factory(db_file) -> Generator[sessionmaker[Session], None, None]:
    """Sync sessions on the test database, with tables created."""
    engine = create_engine(f"sqlite:///{db_file}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
def add_store(sync_session_factory) -> Callable[..., str]:
    """Insert a store row and return its API key."""

    def _add(**fields) -> str:
        fields.setdefault("name", "Demo Shop")
        fields.setdefault("domain", f"{fields.get('id', 'demo')}.example.com")
        fields.setdefault("platform_type", PlatformType.static.value)
        with sync_session_factory() as db:
            store = Store(**fields)
            db.add(store)
            db.commit()
            return store.api_key

    return _add


@pytest.fixture
def add_message(sync_session_factory) -> Callable[..., None]:
    def _add(**fields) -> None:
        with sync_session_factory() as db:
            db.add(Message(**fields))
            db.commit()

    return _add


@pytest.fixture
def api_key(add_store) -> str:
    """API key of an active static-catalog store."""
    return add_store(id="store-static", api_key="key-static", bot_name="Sunny")


@pytest.fixture
def settings() -> ShopChatConfig:
    return ShopChatConfig(app={"environment": "test"})


@pytest.fixture
def chat_model() -> MagicMock:
    model = MagicMock()
    model.complete = AsyncMock(return_value=MODEL_REPLY)
    return model


@pytest.fixture
def gateway() -> CatalogGateway:
    return CatalogGateway(
        {PlatformType.static: StaticConnector(REPO_CATALOG)},
        timeout_seconds=5.0,
        default_platform=PlatformType.static,
    )


@pytest.fixture
def client(db_file, sync_session_factory, settings, chat_model, gateway) -> Generator[TestClient, None, None]:
    """TestClient with datastore, catalog, model and settings overridden."""
    async_engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    session_factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_chat_model] = lambda: chat_model
    app.dependency_overrides[get_gateway] = lambda: gateway
    reset_rate_limiter()
    reset_chat_limiter()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    reset_rate_limiter()
    reset_chat_limiter()
