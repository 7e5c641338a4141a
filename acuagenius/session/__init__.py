"""Conversation state backends."""

from __future__ import annotations

from acuagenius.session.store import (
    ConversationState,
    ConversationStore,
    InMemoryConversationStore,
    UserConversationContext,
)
from acuagenius.settings import AcuaSettings, get_settings

__all__ = [
    "ConversationState",
    "ConversationStore",
    "InMemoryConversationStore",
    "UserConversationContext",
    "create_conversation_store",
]


def create_conversation_store(settings: AcuaSettings | None = None) -> ConversationStore:
    """Build the backend selected by ``ACUA_CONVERSATION_BACKEND``."""
    s = settings or get_settings()
    if s.conversation_backend == "redis":
        from acuagenius.session.redis_store import RedisConversationStore

        return RedisConversationStore.from_url(
            s.redis_url,
            ttl_seconds=s.context_ttl_seconds,
            key_prefix=s.redis_key_prefix,
        )
    return InMemoryConversationStore(
        ttl_seconds=s.context_ttl_seconds,
        sweep_interval_seconds=s.sweep_interval_seconds,
    )
