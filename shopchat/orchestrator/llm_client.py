"""Language-model provider boundary.

The orchestrator talks to the model through ChatModel, a single
chat-completion call over an ordered role/content message list. The
default implementation uses the Anthropic Messages API.
"""

import logging
from typing import Protocol

from anthropic import AsyncAnthropic, APIError

from shopchat.errors import UpstreamError

logger = logging.getLogger(__name__)

LLM_SOURCE = "llm"


class ChatModel(Protocol):
    """Chat-completion provider."""

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Return the assistant's reply to an ordered message list."""
        ...


def to_anthropic_messages(
    messages: list[dict[str, str]],
) -> tuple[str, list[dict[str, str]]]:
    """Split role/content messages into a system string and Messages API turns.

    System messages are joined into the ``system`` parameter. The Messages
    API requires alternating turns starting with the user, so consecutive
    same-role turns are merged and leading assistant turns are dropped.

    Returns:
        Tuple of (system prompt, conversation turns).
    """
    system_parts: list[str] = []
    turns: list[dict[str, str]] = []
    for message in messages:
        role = message["role"]
        content = message["content"]
        if role == "system":
            system_parts.append(content)
            continue
        if not turns and role == "assistant":
            continue
        if turns and turns[-1]["role"] == role:
            turns[-1] = {"role": role, "content": f"{turns[-1]['content']}\n\n{content}"}
        else:
            turns.append({"role": role, "content": content})
    return "\n\n".join(system_parts), turns


class AnthropicChatModel:
    """ChatModel backed by ``anthropic.AsyncAnthropic``.

    Args:
        api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY when empty.
        client: Pre-built client (tests inject a mock).
    """

    def __init__(
        self,
        api_key: str | None = None,
        client: AsyncAnthropic | None = None,
    ) -> None:
        self._client = client or AsyncAnthropic(api_key=api_key or None)

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        system, turns = to_anthropic_messages(messages)
        try:
            response = await self._client.messages.create(
                model=model,
                system=system,
                messages=turns,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except APIError as e:
            status = getattr(e, "status_code", None)
            logger.error("Model call failed (%s): %s", status, e)
            raise UpstreamError(
                LLM_SOURCE, f"Model call failed: {e}", status_code=status, code="E-3002"
            ) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise UpstreamError(LLM_SOURCE, "Model returned no text", code="E-3002")
        return text
