"""Store (tenant) registration and lookup.

Sync CRUD backs the operator CLI; the async lookup backs request
authentication and webhook routing. Both return StoreConfig views so
callers never hold live ORM rows.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session

from shopchat.catalog.models import StoreConfig
from shopchat.db.models import PlatformType, Store
from shopchat.errors import NotFoundError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)

_REQUIRED_CREDENTIALS: dict[PlatformType, tuple[str, ...]] = {
    PlatformType.shopify: ("shopify_token",),
    PlatformType.woo: ("woo_key", "woo_secret"),
    PlatformType.static: (),
}


class StoreService:
    """CRUD operations for store rows.

    Args:
        db: SQLAlchemy session (sync).
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def create_store(
        self,
        name: str,
        domain: str,
        platform_type: str = PlatformType.woo.value,
        **fields: Any,
    ) -> StoreConfig:
        """Register a store with a freshly generated API key.

        Args:
            name: Display name.
            domain: Shop domain or site URL.
            platform_type: 'shopify', 'woo' or 'static'.
            **fields: Any other Store column (credentials, persona, ...).

        Returns:
            StoreConfig for the created row.

        Raises:
            ValidationError: On unknown platform, unknown field, or
                missing platform credentials.
        """
        try:
            platform = PlatformType(platform_type)
        except ValueError as e:
            raise ValidationError(f"Unknown platform type: {platform_type!r}") from e

        unknown = sorted(set(fields) - set(Store.__table__.columns.keys()))
        if unknown:
            raise ValidationError(f"Unknown store fields: {', '.join(unknown)}")

        missing = [f for f in _REQUIRED_CREDENTIALS[platform] if not fields.get(f)]
        if missing:
            raise ValidationError(
                f"{platform.value} stores require: {', '.join(missing)}",
                code="E-2003",
            )

        store = Store(
            name=name,
            domain=domain,
            platform_type=platform.value,
            **{k: v for k, v in fields.items() if v is not None},
        )
        self._db.add(store)
        self._db.commit()
        logger.info("Registered store %s (%s, %s)", store.id, domain, platform.value)
        return StoreConfig.model_validate(store)

    def list_stores(self) -> list[StoreConfig]:
        """Return all stores ordered by creation time."""
        rows = self._db.query(Store).order_by(Store.created_at).all()
        return [StoreConfig.model_validate(row) for row in rows]

    def get_store(self, identifier: str) -> StoreConfig:
        """Find a store by id, then domain, then API key.

        Raises:
            NotFoundError: If no store matches.
        """
        for column in (Store.id, Store.domain, Store.api_key):
            row = self._db.query(Store).filter(column == identifier).first()
            if row is not None:
                return StoreConfig.model_validate(row)
        raise NotFoundError("Store", identifier)


class StoreLookup:
    """Async read-only store lookups for request handling.

    Args:
        session_factory: Async SQLAlchemy session factory.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_api_key(self, api_key: str) -> StoreConfig | None:
        """Return the store owning this API key, or None."""
        return await self._first(Store.api_key == api_key)

    async def get_by_domain(self, domain: str) -> StoreConfig | None:
        """Return the store registered under a shop domain, or None."""
        return await self._first(Store.domain == domain)

    async def find_by_identifier(self, identifier: str) -> StoreConfig | None:
        """Match an id, domain or API key, preferring that order."""
        for column in (Store.id, Store.domain, Store.api_key):
            store = await self._first(column == identifier)
            if store is not None:
                return store
        return None

    async def _first(self, condition: Any) -> StoreConfig | None:
        try:
            async with self._session_factory() as db:
                result = await db.execute(select(Store).where(condition).limit(1))
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to look up store: {e}") from e
        return StoreConfig.model_validate(row) if row is not None else None
