"""In-process pub/sub event bus for Context Jar cleanup events."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

import structlog

Handler = Callable[["ContextJarEvent", dict[str, Any]], None | Awaitable[None]]


class ContextJarEvent(StrEnum):
    """All event types published by Context Jar.

    Typed payload definitions for each event live in
    :mod:`contextjar.events.payloads`.

    **Payload schemas by event:**

    ``SESSION_IDLE``
        :class:`~contextjar.events.payloads.SessionIdlePayload` —
        ``session_id: str``

    ``CLEANUP_SKIPPED``
        :class:`~contextjar.events.payloads.CleanupSkippedPayload` —
        ``session_id: str | None``, ``reason: str``

    ``CLEANUP_FAILED``
        :class:`~contextjar.events.payloads.CleanupFailedPayload` —
        ``session_id: str``, ``mode: str``, ``error: str``

    ``CONSOLIDATION_COMPLETED``, ``FINALIZATION_COMPLETED``
        :class:`~contextjar.events.payloads.CleanupCompletedPayload` —
        ``session_id: str`` plus every field of
        :class:`~contextjar.models.stats.StepTokenDelta`.

    ``FILES_INVALIDATED``
        :class:`~contextjar.events.payloads.FilesInvalidatedPayload` —
        ``session_id: str``, ``child_session_id: str``, ``files: list[str]``

    ``SUMMARY_SENT``, ``SUMMARY_FAILED``
        :class:`~contextjar.events.payloads.SummaryPayload` —
        ``session_id: str``, ``net_delta: int``
    """

    SESSION_IDLE = "session.idle"

    CLEANUP_SKIPPED = "cleanup.skipped"
    CLEANUP_FAILED = "cleanup.failed"
    CONSOLIDATION_COMPLETED = "consolidation.completed"
    FINALIZATION_COMPLETED = "finalization.completed"

    FILES_INVALIDATED = "files.invalidated"

    SUMMARY_SENT = "summary.sent"
    SUMMARY_FAILED = "summary.failed"


class EventBus:
    """
    In-process fan-out of cleanup events to observers.

    Publishing never fails from the publisher's point of view: the cleanup
    hooks publish after the window has been rewritten, so an observer bug
    must not abort the host request.

    - Sync handlers run inline, specific subscribers before catch-all ones.
    - Coroutine handlers are scheduled on the running loop and tracked until
      they finish. Without a running loop the coroutine is closed unrun.
    - A handler that raises (inline or in its task) is logged as
      ``event_handler_error`` and skipped.

    Example::

        bus = EventBus()

        def on_consolidated(event, payload):
            print(f"Saved {payload['tokens_before'] - payload['tokens_after']} tokens")

        bus.subscribe(ContextJarEvent.CONSOLIDATION_COMPLETED, on_consolidated)
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self._handlers: dict[ContextJarEvent, list[Handler]] = {}
        self._global_handlers: list[Handler] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._logger = logger or structlog.get_logger("contextjar.events")

    def subscribe(self, event: ContextJarEvent, handler: Handler) -> None:
        """Register ``handler(event, payload)`` for one event type. May be sync or async."""
        self._handlers.setdefault(event, []).append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Register a handler for every event type."""
        self._global_handlers.append(handler)

    def unsubscribe(self, event: ContextJarEvent, handler: Handler) -> None:
        """Remove a handler registered with :meth:`subscribe`. No-op if absent."""
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, event: ContextJarEvent, payload: dict[str, Any]) -> None:
        """
        Deliver ``payload`` to every handler registered for ``event``.

        Args:
            event: The event type to publish.
            payload: Event-specific data, see :mod:`contextjar.events.payloads`.
        """
        for handler in [*self._handlers.get(event, ()), *self._global_handlers]:
            try:
                result = handler(event, payload)
            except Exception as exc:
                self._log_handler_error(event, handler, exc)
                continue
            if asyncio.iscoroutine(result):
                self._schedule(event, handler, result)

    def _schedule(self, event: ContextJarEvent, handler: Handler, coro: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            return
        task = loop.create_task(coro)
        self._pending.add(task)

        def _done(t: asyncio.Task[None]) -> None:
            self._pending.discard(t)
            if not t.cancelled() and t.exception() is not None:
                self._log_handler_error(event, handler, t.exception())

        task.add_done_callback(_done)

    def _log_handler_error(
        self, event: ContextJarEvent, handler: Handler, exc: BaseException | None
    ) -> None:
        # ``event`` is structlog's positional message argument; use another key.
        self._logger.error(
            "event_handler_error",
            event_type=str(event),
            handler=getattr(handler, "__qualname__", repr(handler)),
            error=str(exc),
        )
