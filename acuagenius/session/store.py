"""Per-user conversation state with time-based expiry.

Each user has at most one context: idle, or awaiting a yes/no reply for one
pending action.  Contexts are created lazily, refreshed on every read or
write and discarded once untouched for longer than the TTL, which also
silently cancels a pending confirmation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from loguru import logger

if TYPE_CHECKING:
    from acuagenius.assistant.actions import PendingAction

DEFAULT_TTL_SECONDS = 15 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


@dataclass(frozen=True, slots=True)
class UserConversationContext:
    state: ConversationState = ConversationState.IDLE
    pending_action: PendingAction | None = None
    last_touched: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        awaiting = self.state is ConversationState.AWAITING_CONFIRMATION
        if awaiting != (self.pending_action is not None):
            raise ValueError(
                f"pending_action must be set iff state is awaiting confirmation "
                f"(state={self.state.value}, pending={self.pending_action!r})"
            )

    @property
    def awaiting_confirmation(self) -> bool:
        return self.state is ConversationState.AWAITING_CONFIRMATION

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.last_touched > ttl


@runtime_checkable
class ConversationStore(Protocol):
    """Storage backend for conversation contexts (in-memory, Redis, ...)."""

    async def get(self, user_id: str) -> UserConversationContext:
        """Return the live context, or a fresh idle one if absent or expired."""
        ...

    async def update(self, user_id: str, **changes: Any) -> UserConversationContext:
        """Merge *changes* into the context and refresh its timestamp."""
        ...

    async def clear(self, user_id: str) -> None:
        """Back to idle with no pending action."""
        ...

    async def sweep(self) -> int:
        """Drop expired contexts; return how many were removed."""
        ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class InMemoryConversationStore:
    """Process-local store; a restart resets every user to idle.

    A background task started by :meth:`start` sweeps expired entries every
    ``sweep_interval_seconds`` so memory stays bounded under many distinct
    users.  The sweep only ever removes entries.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        sweep_interval_seconds: int = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self.sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._contexts: dict[str, UserConversationContext] = {}
        self._sweep_task: asyncio.Task | None = None
        self._running = False

    def __len__(self) -> int:
        return len(self._contexts)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._contexts

    # ------------------------------------------------------------------
    # Contexts
    # ------------------------------------------------------------------

    async def get(self, user_id: str) -> UserConversationContext:
        now = self._clock()
        ctx = self._contexts.get(user_id)
        if ctx is not None and ctx.is_expired(now, self.ttl):
            if ctx.awaiting_confirmation:
                logger.debug(f"Conversation {user_id}: pending {ctx.pending_action.kind.value} expired")
            ctx = None
        if ctx is None:
            ctx = UserConversationContext(last_touched=now)
        else:
            ctx = replace(ctx, last_touched=now)
        self._contexts[user_id] = ctx
        return ctx

    async def update(self, user_id: str, **changes: Any) -> UserConversationContext:
        current = await self.get(user_id)
        updated = replace(current, **changes, last_touched=self._clock())
        self._contexts[user_id] = updated
        return updated

    async def clear(self, user_id: str) -> None:
        await self.update(user_id, state=ConversationState.IDLE, pending_action=None)

    async def sweep(self) -> int:
        now = self._clock()
        expired = [uid for uid, ctx in self._contexts.items() if ctx.is_expired(now, self.ttl)]
        for uid in expired:
            del self._contexts[uid]
        if expired:
            logger.debug(f"Conversation sweep: removed {len(expired)} expired, {len(self._contexts)} remain")
        return len(expired)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._sweep_task is not None:
            return
        self._running = True

        async def loop() -> None:
            while self._running:
                await asyncio.sleep(self.sweep_interval)
                try:
                    await self.sweep()
                except Exception as exc:
                    logger.warning(f"Conversation sweep failed: {exc}")

        self._sweep_task = asyncio.create_task(loop())
        logger.info(
            f"Conversation store started (ttl={int(self.ttl.total_seconds())}s, "
            f"sweep every {self.sweep_interval}s)"
        )

    async def stop(self) -> None:
        self._running = False
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
