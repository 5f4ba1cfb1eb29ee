"""Context Jar host integration: the hooks a host calls on each request and event."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from contextjar.client import HostClient, send_ignored_session_text
from contextjar.compaction.consolidation import ConsolidationEngine
from contextjar.compaction.finalization import FinalizationEngine
from contextjar.config import load_or_create_config
from contextjar.events.bus import ContextJarEvent, EventBus
from contextjar.invalidation import InvalidationTracker
from contextjar.models.config import ContextJarConfig
from contextjar.models.message import ChatMessage, ModelRef
from contextjar.models.stats import StepTokenDelta
from contextjar.stats import SessionStatsStore
from contextjar.summary import build_idle_summary
from contextjar.tokens.estimator import TokenEstimator
from contextjar.whitelist import should_skip_context_cleanup

DELEGATED_TASK_TOOL = "task"


@dataclass
class SessionContext:
    """Agent and model of the session's latest user message, reused for idle reports."""

    agent: str | None = None
    model: ModelRef | None = None


def infer_session_id(messages: Sequence[ChatMessage]) -> str | None:
    for message in messages:
        if message.info.session_id:
            return message.info.session_id
    return None


def infer_session_context(messages: Sequence[ChatMessage]) -> SessionContext:
    for message in reversed(messages):
        if message.info.role == "user":
            return SessionContext(agent=message.info.agent, model=message.info.model)
    return SessionContext()


def infer_active_model(messages: Sequence[ChatMessage]) -> str | None:
    """``provider/model`` of the most recent user message that names one."""
    for message in reversed(messages):
        if message.info.role == "user" and message.info.model is not None:
            return message.info.model.key
    return None


def is_idle_event(event: Mapping[str, Any]) -> bool:
    event_type = event.get("type")
    if event_type == "session.idle":
        return True
    if event_type != "session.status":
        return False
    status = (event.get("properties") or {}).get("status") or {}
    return isinstance(status, Mapping) and status.get("type") == "idle"


class ContextJar:
    """
    Keeps one trustworthy view per file in a conversation's tool history.

    Wire the three hooks into the host:

    - :meth:`transform_messages` before every model request, with the
      mutable message window.
    - :meth:`handle_event` (or :meth:`on_session_idle`) for session events.
    - :meth:`on_tool_executed` after every tool call.

    Each request runs exactly one engine. Normally that is consolidation;
    after the session has gone idle the next request runs finalization
    instead, once.

    Per-session state (invalidation sets, stats, the pending-finalize flag)
    is not locked. The host must not run two hooks for the same session
    concurrently; different sessions are independent.

    Usage::

        jar = ContextJar.create(client, directory=ctx.directory, worktree=ctx.worktree)

        async def on_transform(messages):
            await jar.transform_messages(messages)
    """

    def __init__(
        self,
        client: HostClient,
        config: ContextJarConfig | None,
        *,
        directory: str | None = None,
        worktree: str | None = None,
        estimator: TokenEstimator | None = None,
        event_bus: EventBus | None = None,
        stats: SessionStatsStore | None = None,
    ) -> None:
        self._client = client
        self._config = config
        self._estimator = estimator or TokenEstimator()
        self._event_bus = event_bus or EventBus()
        self._stats = stats or SessionStatsStore()
        self._invalidation = InvalidationTracker(
            client,
            directory=directory,
            worktree_root=worktree,
            event_bus=self._event_bus,
        )
        self._consolidation = ConsolidationEngine(self._estimator)
        self._finalization = FinalizationEngine(self._estimator)
        self._pending_finalize: set[str] = set()
        self._idle_in_flight: set[str] = set()
        self._session_context: dict[str, SessionContext] = {}
        self._logger = structlog.get_logger("contextjar.plugin")

    @classmethod
    def create(
        cls,
        client: HostClient,
        *,
        config_path: str | Path | None = None,
        directory: str | None = None,
        worktree: str | None = None,
        event_bus: EventBus | None = None,
    ) -> ContextJar:
        """Build an instance from the on-disk config, writing defaults on first run."""
        return cls(
            client,
            load_or_create_config(config_path),
            directory=directory,
            worktree=worktree,
            event_bus=event_bus,
        )

    @property
    def config(self) -> ContextJarConfig | None:
        return self._config

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def stats(self) -> SessionStatsStore:
        return self._stats

    @property
    def invalidation(self) -> InvalidationTracker:
        return self._invalidation

    def is_finalize_pending(self, session_id: str) -> bool:
        return session_id in self._pending_finalize

    # ── Hooks ──────────────────────────────────────────────────────────────────

    async def transform_messages(self, messages: list[ChatMessage]) -> StepTokenDelta | None:
        """
        Rewrite the outbound message window in place.

        Returns:
            The pass's delta, or None when cleanup was skipped or failed. On
            failure the window is left exactly as it was.
        """
        if self._config is None:
            self._skip(None, "no_config")
            return None

        active_model = infer_active_model(messages)
        if should_skip_context_cleanup(active_model, self._config):
            self._skip(infer_session_id(messages), "model_not_allowed", model=active_model)
            return None

        session_id = infer_session_id(messages)
        if session_id is None:
            self._skip(None, "no_session")
            return None

        self._session_context[session_id] = infer_session_context(messages)
        invalidated = self._invalidation.get_invalidated_files(session_id)
        protection = self._config.protected_files

        finalize = session_id in self._pending_finalize
        self._pending_finalize.discard(session_id)
        mode = "finalize" if finalize else "consolidate"
        log = self._logger.bind(session_id=session_id, mode=mode)

        try:
            if finalize:
                delta = self._finalization.run(messages, protection, invalidated)
            else:
                delta = self._consolidation.run(messages, protection, invalidated)
        except Exception as exc:
            log.error("cleanup_failed", error=str(exc))
            self._event_bus.publish(
                ContextJarEvent.CLEANUP_FAILED,
                {"session_id": session_id, "mode": mode, "error": str(exc)},
            )
            return None

        self._stats.record(session_id, delta)
        if delta.changed:
            log.info(
                "cleanup_completed",
                tokens_before=delta.tokens_before,
                tokens_after=delta.tokens_after,
                files_consolidated=delta.files_consolidated,
                files_invalidated=delta.files_invalidated,
            )
        self._event_bus.publish(
            ContextJarEvent.FINALIZATION_COMPLETED
            if finalize
            else ContextJarEvent.CONSOLIDATION_COMPLETED,
            {"session_id": session_id, **delta.model_dump()},
        )
        return delta

    async def handle_event(self, event: Mapping[str, Any]) -> None:
        """Dispatch a raw host event. Only idle notifications are acted on."""
        if not is_idle_event(event):
            return
        session_id = (event.get("properties") or {}).get("sessionID")
        if isinstance(session_id, str) and session_id:
            await self.on_session_idle(session_id)

    async def on_session_idle(self, session_id: str) -> bool:
        """
        Arm finalization for the next request and report stats if due.

        Returns:
            True if a summary was sent. A failed send leaves the session due,
            so the next idle retries.
        """
        self._pending_finalize.add(session_id)
        self._event_bus.publish(ContextJarEvent.SESSION_IDLE, {"session_id": session_id})

        if not self._stats.should_report_on_idle(session_id):
            return False
        stats = self._stats.get(session_id)
        if stats is None or session_id in self._idle_in_flight:
            return False

        self._idle_in_flight.add(session_id)
        try:
            ctx = self._session_context.get(session_id, SessionContext())
            ok = await send_ignored_session_text(
                self._client,
                session_id,
                build_idle_summary(stats),
                agent=ctx.agent,
                model=ctx.model,
            )
        finally:
            self._idle_in_flight.discard(session_id)

        payload = {"session_id": session_id, "net_delta": stats.total.net}
        if ok:
            self._stats.mark_reported(session_id)
            self._event_bus.publish(ContextJarEvent.SUMMARY_SENT, payload)
        else:
            self._event_bus.publish(ContextJarEvent.SUMMARY_FAILED, payload)
        return ok

    async def on_tool_executed(
        self,
        tool: str,
        session_id: str,
        metadata: Mapping[str, Any] | None,
    ) -> list[str]:
        """Invalidate files changed by a completed delegated ``task`` run."""
        if tool != DELEGATED_TASK_TOOL:
            return []
        return await self._invalidation.on_task_completed(session_id, metadata)

    def _skip(self, session_id: str | None, reason: str, **fields: Any) -> None:
        self._logger.debug("cleanup_skipped", session_id=session_id, reason=reason, **fields)
        self._event_bus.publish(
            ContextJarEvent.CLEANUP_SKIPPED, {"session_id": session_id, "reason": reason}
        )
