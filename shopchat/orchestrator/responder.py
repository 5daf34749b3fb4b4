"""Response orchestration for one chat turn.

Wires intent detection, catalog grounding, history replay, the model
call and persistence into a single request/response cycle.

Failure policy:
- Catalog retrieval and the model call gate the reply: their errors
  abort the turn before anything is persisted.
- History reads and message writes only enrich the conversation: their
  errors are logged and the turn continues.

No conversation state is kept in process between turns; everything is
read from and written to the ConversationStore.
"""

import asyncio
import logging
from uuid import uuid4

from pydantic import BaseModel

from shopchat.catalog.gateway import CatalogGateway
from shopchat.catalog.models import Product, StoreConfig
from shopchat.config import ShopChatConfig
from shopchat.db.models import Message, MessageRole
from shopchat.errors import UpstreamError, UpstreamTimeoutError, ValidationError
from shopchat.orchestrator.intent_detection import extract_search_terms
from shopchat.orchestrator.llm_client import LLM_SOURCE, ChatModel
from shopchat.orchestrator.session_locks import SessionLockRegistry
from shopchat.orchestrator.system_prompt import build_system_prompt
from shopchat.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)


class ChatReply(BaseModel):
    """Assistant reply and the session it belongs to."""

    reply: str
    session_id: str


def build_model_messages(
    system_prompt: str,
    history: list[Message],
    message: str,
) -> list[dict[str, str]]:
    """Assemble system prompt, replayed history and the new user message."""
    return [
        {"role": MessageRole.system.value, "content": system_prompt},
        *({"role": m.role, "content": m.content} for m in history),
        {"role": MessageRole.user.value, "content": message},
    ]


class ResponseOrchestrator:
    """Runs chat turns for any store.

    Args:
        gateway: Catalog gateway for product grounding.
        conversations: Message persistence.
        model: Chat-completion provider.
        model_name: Model identifier passed to the provider.
        temperature: Sampling temperature.
        max_tokens: Output token budget.
        history_limit: Maximum number of history messages replayed.
        model_timeout_seconds: Upper bound for the model call.
        session_locks: When given, turns of one session run one at a time.
    """

    def __init__(
        self,
        gateway: CatalogGateway,
        conversations: ConversationStore,
        model: ChatModel,
        *,
        model_name: str,
        temperature: float = 0.7,
        max_tokens: int = 300,
        history_limit: int = 10,
        model_timeout_seconds: float = 30.0,
        session_locks: SessionLockRegistry | None = None,
    ) -> None:
        self._gateway = gateway
        self._conversations = conversations
        self._model = model
        self._model_name = model_name
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._history_limit = history_limit
        self._model_timeout = model_timeout_seconds
        self._session_locks = session_locks

    @classmethod
    def from_config(
        cls,
        config: ShopChatConfig,
        gateway: CatalogGateway,
        conversations: ConversationStore,
        model: ChatModel,
        session_locks: SessionLockRegistry | None = None,
    ) -> "ResponseOrchestrator":
        """Build an orchestrator using the llm and chat config sections.

        ``session_locks`` is only used when ``chat.serialize_sessions`` is
        enabled; pass a long-lived registry so locks are shared across turns.
        """
        if not config.chat.serialize_sessions:
            session_locks = None
        elif session_locks is None:
            session_locks = SessionLockRegistry()
        return cls(
            gateway,
            conversations,
            model,
            model_name=config.llm.model,
            temperature=config.llm.temperature,
            max_tokens=config.llm.max_tokens,
            history_limit=config.chat.history_limit,
            model_timeout_seconds=config.llm.timeout_seconds,
            session_locks=session_locks,
        )

    async def respond(
        self,
        message: str,
        source: str | None,
        store: StoreConfig,
        session_id: str | None = None,
        user_id: str | None = None,
    ) -> ChatReply:
        """Produce the assistant's reply to one user message.

        Args:
            message: The user's message.
            source: Caller-declared platform, used when the store has none.
            store: Store the conversation belongs to.
            session_id: Existing session, or None to start a new one.
            user_id: Optional end-user identifier stored with messages.

        Returns:
            ChatReply with the reply text and the session id.

        Raises:
            ValidationError: If the message is empty.
            NotFoundError: If catalog grounding hit a missing resource.
            UpstreamError: If the catalog or model call failed or timed out.
        """
        if not message or not message.strip():
            raise ValidationError("Message is required", code="E-2001")

        session_id = session_id or str(uuid4())
        if self._session_locks is None:
            return await self._run_turn(message, source, store, session_id, user_id)
        async with self._session_locks.hold(store.id, session_id):
            return await self._run_turn(message, source, store, session_id, user_id)

    async def _run_turn(
        self,
        message: str,
        source: str | None,
        store: StoreConfig,
        session_id: str,
        user_id: str | None,
    ) -> ChatReply:
        products = await self._retrieve_catalog(message, source, store)
        history = await self._read_history(session_id, store)

        messages = build_model_messages(
            build_system_prompt(products, store), history, message
        )
        reply = await self._call_model(messages)

        await self._persist(session_id, store, user_id, MessageRole.user, message)
        await self._persist(session_id, store, user_id, MessageRole.assistant, reply)

        return ChatReply(reply=reply, session_id=session_id)

    async def _retrieve_catalog(
        self, message: str, source: str | None, store: StoreConfig
    ) -> list[Product]:
        terms = extract_search_terms(message)
        if terms:
            logger.info("Store %s: catalog search for %r", store.id, terms)
            return await self._gateway.search(terms, store, source)
        return await self._gateway.fetch_all(store, source)

    async def _read_history(
        self, session_id: str, store: StoreConfig
    ) -> list[Message]:
        try:
            return await self._conversations.read(
                session_id, self._history_limit, store.id
            )
        except Exception as e:
            logger.warning(
                "History read failed for session %s, continuing without it: %s",
                session_id,
                e,
            )
            return []

    async def _call_model(self, messages: list[dict[str, str]]) -> str:
        try:
            return await asyncio.wait_for(
                self._model.complete(
                    messages,
                    model=self._model_name,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                ),
                timeout=self._model_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Model call exceeded %ss", self._model_timeout)
            raise UpstreamTimeoutError(LLM_SOURCE, self._model_timeout) from e
        except UpstreamError:
            raise
        except Exception as e:
            logger.error("Model call failed: %s", e)
            raise UpstreamError(
                LLM_SOURCE, f"Model call failed: {e}", code="E-3002"
            ) from e

    async def _persist(
        self,
        session_id: str,
        store: StoreConfig,
        user_id: str | None,
        role: MessageRole,
        content: str,
    ) -> None:
        try:
            await self._conversations.append(
                session_id, store.id, user_id, role.value, content
            )
        except Exception as e:
            logger.error(
                "Failed to persist %s message for session %s: %s",
                role.value,
                session_id,
                e,
            )
