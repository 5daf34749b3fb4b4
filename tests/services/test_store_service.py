"""Tests for store registration and lookup."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shopchat.db.models import Base, Store
from shopchat.errors import NotFoundError, ValidationError
from shopchat.services.store_service import StoreLookup, StoreService


@pytest.fixture
def db_session():
    """In-memory sync SQLite session with tables created."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def service(db_session) -> StoreService:
    return StoreService(db_session)


class TestCreateStore:

    def test_creates_with_generated_key(self, service):
        store = service.create_store(
            "Cedar Supply",
            "https://cedar.example.com",
            platform_type="woo",
            woo_key="ck_1",
            woo_secret="cs_1",
        )

        assert store.id
        assert len(store.api_key) == 64
        assert store.platform_type == "woo"
        assert store.bot_name == "AI Assistant"
        assert store.bot_active is True
        assert store.max_messages is None

    def test_persona_fields_are_stored(self, service):
        store = service.create_store(
            "Demo", "demo.example.com", platform_type="static", bot_name="Sunny", max_messages=50
        )

        assert store.bot_name == "Sunny"
        assert store.max_messages == 50

    def test_unknown_platform_rejected(self, service):
        with pytest.raises(ValidationError):
            service.create_store("X", "x.example.com", platform_type="magento")

    def test_unknown_field_rejected(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_store("X", "x.example.com", platform_type="static", colour="red")
        assert "colour" in str(exc_info.value)

    def test_missing_credentials_rejected(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.create_store("X", "x.myshopify.com", platform_type="shopify")
        assert exc_info.value.code == "E-2003"


class TestGetStore:

    def test_lookup_by_id_domain_and_key(self, service):
        created = service.create_store("Demo", "demo.example.com", platform_type="static")

        assert service.get_store(created.id).id == created.id
        assert service.get_store("demo.example.com").id == created.id
        assert service.get_store(created.api_key).id == created.id

    def test_missing_store_raises(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.get_store("nope")
        assert exc_info.value.code == "E-1003"

    def test_list_stores(self, service):
        service.create_store("One", "one.example.com", platform_type="static")
        service.create_store("Two", "two.example.com", platform_type="static")

        assert {s.name for s in service.list_stores()} == {"One", "Two"}


async def add_store(session_factory, **fields):
    async with session_factory() as db:
        db.add(Store(**fields))
        await db.commit()


class TestStoreLookup:

    @pytest.mark.asyncio
    async def test_get_by_api_key(self, session_factory):
        await add_store(session_factory, id="s1", name="One", domain="one.example.com", api_key="k1")
        lookup = StoreLookup(session_factory)

        store = await lookup.get_by_api_key("k1")

        assert store is not None
        assert store.id == "s1"
        assert await lookup.get_by_api_key("wrong") is None

    @pytest.mark.asyncio
    async def test_get_by_domain(self, session_factory):
        await add_store(
            session_factory,
            id="s1",
            name="One",
            domain="one.myshopify.com",
            api_key="k1",
            platform_type="shopify",
        )

        store = await StoreLookup(session_factory).get_by_domain("one.myshopify.com")

        assert store is not None
        assert store.platform_type == "shopify"

    @pytest.mark.asyncio
    async def test_find_by_identifier_prefers_id(self, session_factory):
        await add_store(session_factory, id="s1", name="One", domain="one.example.com", api_key="k1")
        lookup = StoreLookup(session_factory)

        assert (await lookup.find_by_identifier("s1")).id == "s1"
        assert (await lookup.find_by_identifier("one.example.com")).id == "s1"
        assert (await lookup.find_by_identifier("k1")).id == "s1"
        assert await lookup.find_by_identifier("zzz") is None
