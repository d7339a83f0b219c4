"""Component interaction router.

Single source of truth for "which callback fires for which incoming UI
event". A game registers one token per button; the platform boundary hands
every component interaction to ``dispatch``.

Usage:
    router = ComponentRouter()
    token = router.register(owner_id="42", expires_in_ms=45_000, handler=on_click)
    outcome = await router.dispatch(token, "42", interaction)

Unknown, forbidden and expired tokens are reported as DispatchOutcome values.
Only the handler's own exceptions propagate out of ``dispatch``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

CallbackHandler = Callable[[Any], Awaitable[None]]
ExpireHook = Callable[[], Awaitable[None] | None]


class DispatchOutcome(StrEnum):
    OK = "ok"
    UNKNOWN = "unknown"
    FORBIDDEN = "forbidden"
    EXPIRED = "expired"


@dataclass
class PendingCallback:
    """One registered UI handler that has not fired yet (or may fire again)."""

    token: str
    owner_id: str
    expires_at: float
    handler: CallbackHandler
    single_use: bool = True
    on_expire: ExpireHook | None = None
    _purge_handle: asyncio.TimerHandle | None = field(default=None, repr=False)


class ComponentRouter:
    """Registry of pending callbacks.

    Each instance owns its own registry; construct one per app (or per test)
    and call ``close()`` on shutdown.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._callbacks: dict[str, PendingCallback] = {}
        self._background: set[asyncio.Task[None]] = set()

    # --- Registration ---

    def register(
        self,
        owner_id: str,
        expires_in_ms: int,
        handler: CallbackHandler,
        single_use: bool = True,
        token: str | None = None,
        on_expire: ExpireHook | None = None,
    ) -> str:
        """Store a callback and return its token. Never blocks.

        The record schedules its own purge at the deadline so the registry
        stays bounded even if nobody disposes it.
        """
        token = token or uuid.uuid4().hex
        if token in self._callbacks:
            self.dispose(token)

        record = PendingCallback(
            token=token,
            owner_id=str(owner_id),
            expires_at=self._clock() + expires_in_ms / 1000,
            handler=handler,
            single_use=single_use,
            on_expire=on_expire,
        )
        self._callbacks[token] = record

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet: the periodic sweep or the next dispatch purges it.
            loop = None
        if loop is not None:
            record._purge_handle = loop.call_later(
                expires_in_ms / 1000,
                self._purge_if_expired,
                token,
            )
        return token

    # --- Dispatch ---

    async def dispatch(self, token: str, identity: str, event: Any) -> DispatchOutcome:
        """Route *event* to the handler registered for *token*."""
        record = self._callbacks.get(token)
        if record is None:
            return DispatchOutcome.UNKNOWN

        if str(identity) != record.owner_id:
            logger.debug("router_forbidden token=%s identity=%s", token, identity)
            return DispatchOutcome.FORBIDDEN

        if self._clock() >= record.expires_at:
            self._expire(record)
            return DispatchOutcome.EXPIRED

        if record.single_use:
            self._remove(token)

        await record.handler(event)
        return DispatchOutcome.OK

    # --- Disposal ---

    def dispose(self, token: str) -> None:
        """Remove a token. Safe to call on tokens that are already gone."""
        self._remove(token)

    def dispose_all(self, tokens: Iterable[str]) -> None:
        for token in list(tokens):
            self._remove(token)

    def sweep(self) -> int:
        """Purge every expired record and return how many were purged."""
        now = self._clock()
        expired = [record for record in self._callbacks.values() if now >= record.expires_at]
        for record in expired:
            self._expire(record)
        if expired:
            logger.info("router_sweep purged=%d pending=%d", len(expired), len(self._callbacks))
        return len(expired)

    async def close(self) -> None:
        """Drop every record and wait for in-flight expiry hooks."""
        for token in list(self._callbacks):
            self._remove(token)
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # --- Introspection ---

    @property
    def pending_count(self) -> int:
        return len(self._callbacks)

    def get(self, token: str) -> PendingCallback | None:
        return self._callbacks.get(token)

    def __contains__(self, token: object) -> bool:
        return token in self._callbacks

    # --- Internals ---

    def _remove(self, token: str) -> PendingCallback | None:
        record = self._callbacks.pop(token, None)
        if record is not None and record._purge_handle is not None:
            record._purge_handle.cancel()
            record._purge_handle = None
        return record

    def _purge_if_expired(self, token: str) -> None:
        record = self._callbacks.get(token)
        if record is None:
            return
        remaining = record.expires_at - self._clock()
        if remaining <= 0:
            self._expire(record)
            return
        # Timer fired ahead of the router clock; wait out the difference.
        record._purge_handle = asyncio.get_running_loop().call_later(
            max(remaining, 0.001), self._purge_if_expired, token
        )

    def _expire(self, record: PendingCallback) -> None:
        self._remove(record.token)
        logger.debug("router_expired token=%s owner=%s", record.token, record.owner_id)
        if record.on_expire is None:
            return
        result = record.on_expire()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._background.add(task)
            task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[None]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("router_expire_hook_failed", exc_info=exc)


__all__ = [
    "CallbackHandler",
    "ComponentRouter",
    "DispatchOutcome",
    "PendingCallback",
]

