"""FastAPI dependency providers.

Long-lived collaborators (catalog gateway, model client, lock registry)
are built once per process; request-scoped services wrap the shared
async session factory. Tests replace any of these through
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopchat.catalog.gateway import CatalogGateway
from shopchat.config import ShopChatConfig, get_config
from shopchat.orchestrator.llm_client import AnthropicChatModel, ChatModel
from shopchat.orchestrator.responder import ResponseOrchestrator
from shopchat.orchestrator.session_locks import SessionLockRegistry
from shopchat.services.conversation_store import ConversationStore
from shopchat.services.store_service import StoreLookup

_session_locks = SessionLockRegistry()


def get_settings() -> ShopChatConfig:
    """Dependency returning the process configuration."""
    return get_config()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency returning the async session factory."""
    from shopchat.db.connection import AsyncSessionLocal

    return AsyncSessionLocal


@lru_cache(maxsize=1)
def _build_gateway() -> CatalogGateway:
    return CatalogGateway.from_config(get_config())


def get_gateway() -> CatalogGateway:
    """Dependency returning the shared catalog gateway."""
    return _build_gateway()


@lru_cache(maxsize=1)
def _build_chat_model() -> AnthropicChatModel:
    return AnthropicChatModel(api_key=get_config().llm.api_key)


def get_chat_model() -> ChatModel:
    """Dependency returning the shared model client."""
    return _build_chat_model()


def get_conversation_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ConversationStore:
    """Dependency to get ConversationStore instance."""
    return ConversationStore(session_factory)


def get_store_lookup(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> StoreLookup:
    """Dependency to get StoreLookup instance."""
    return StoreLookup(session_factory)


def get_orchestrator(
    config: ShopChatConfig = Depends(get_settings),
    gateway: CatalogGateway = Depends(get_gateway),
    conversations: ConversationStore = Depends(get_conversation_store),
    model: ChatModel = Depends(get_chat_model),
) -> ResponseOrchestrator:
    """Dependency to get a ResponseOrchestrator wired to shared services."""
    return ResponseOrchestrator.from_config(
        config, gateway, conversations, model, session_locks=_session_locks
    )
