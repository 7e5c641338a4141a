"""Redis-backed conversation store for multi-instance deployments.

Redis key layout:
  {prefix}:{user_id}  -> String (JSON context), EXPIRE = TTL, re-armed on every touch

Redis expiry takes the place of the periodic sweep.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

import redis.asyncio as aioredis
from loguru import logger

from acuagenius.assistant.actions import action_from_dict, action_to_dict
from acuagenius.session.store import (
    DEFAULT_TTL_SECONDS,
    ConversationState,
    UserConversationContext,
    _utcnow,
)


def _dump(ctx: UserConversationContext) -> str:
    return json.dumps(
        {
            "state": ctx.state.value,
            "pending_action": action_to_dict(ctx.pending_action) if ctx.pending_action else None,
            "last_touched": ctx.last_touched.isoformat(),
        },
        ensure_ascii=False,
    )


def _load(raw: str) -> UserConversationContext:
    data = json.loads(raw)
    pending = data.get("pending_action")
    return UserConversationContext(
        state=ConversationState(data["state"]),
        pending_action=action_from_dict(pending) if pending else None,
        last_touched=datetime.fromisoformat(data["last_touched"]),
    )


class RedisConversationStore:
    """Same contract as :class:`InMemoryConversationStore`, shared across processes."""

    def __init__(
        self,
        redis: aioredis.Redis,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = "acuagenius:conv",
        clock: Callable[[], datetime] = _utcnow,
        owns_client: bool = False,
    ) -> None:
        self._redis = redis
        self.ttl = timedelta(seconds=ttl_seconds)
        self._ttl_seconds = ttl_seconds
        self._prefix = key_prefix
        self._clock = clock
        self._owns_client = owns_client

    @classmethod
    def from_url(cls, redis_url: str, **kwargs: Any) -> RedisConversationStore:
        client = aioredis.from_url(redis_url, decode_responses=True, socket_connect_timeout=3)
        return cls(client, owns_client=True, **kwargs)

    def _key(self, user_id: str) -> str:
        return f"{self._prefix}:{user_id}"

    async def _write(self, user_id: str, ctx: UserConversationContext) -> None:
        await self._redis.set(self._key(user_id), _dump(ctx), ex=self._ttl_seconds)

    # ------------------------------------------------------------------
    # Contexts
    # ------------------------------------------------------------------

    async def get(self, user_id: str) -> UserConversationContext:
        now = self._clock()
        raw = await self._redis.get(self._key(user_id))
        ctx: UserConversationContext | None = None
        if raw:
            try:
                ctx = _load(raw)
            except Exception as exc:
                logger.warning(f"Discarding unreadable conversation context for {user_id}: {exc}")
        if ctx is not None and ctx.is_expired(now, self.ttl):
            ctx = None
        ctx = UserConversationContext(last_touched=now) if ctx is None else replace(ctx, last_touched=now)
        await self._write(user_id, ctx)
        return ctx

    async def update(self, user_id: str, **changes: Any) -> UserConversationContext:
        current = await self.get(user_id)
        updated = replace(current, **changes, last_touched=self._clock())
        await self._write(user_id, updated)
        return updated

    async def clear(self, user_id: str) -> None:
        await self.update(user_id, state=ConversationState.IDLE, pending_action=None)

    async def sweep(self) -> int:
        return 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self._redis.ping()
        logger.info(f"Redis conversation store ready (prefix={self._prefix}, ttl={self._ttl_seconds}s)")

    async def stop(self) -> None:
        if self._owns_client:
            await self._redis.aclose()
