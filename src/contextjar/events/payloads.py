"""Typed payload definitions for each ContextJarEvent.

Usage example::

    from contextjar.events.bus import ContextJarEvent, EventBus
    from contextjar.events.payloads import FilesInvalidatedPayload

    def on_invalidated(event: ContextJarEvent, payload: FilesInvalidatedPayload) -> None:
        print(f"{len(payload['files'])} files changed by {payload['child_session_id']}")

    bus.subscribe(ContextJarEvent.FILES_INVALIDATED, on_invalidated)  # type: ignore[arg-type]
"""

from __future__ import annotations

from typing import Literal, TypedDict


class SessionIdlePayload(TypedDict):
    """Payload for :attr:`ContextJarEvent.SESSION_IDLE`."""

    session_id: str


class CleanupSkippedPayload(TypedDict):
    """Payload for :attr:`ContextJarEvent.CLEANUP_SKIPPED`."""

    session_id: str | None
    reason: Literal["no_config", "model_not_allowed", "no_session"]


class CleanupFailedPayload(TypedDict):
    """Payload for :attr:`ContextJarEvent.CLEANUP_FAILED`."""

    session_id: str
    mode: Literal["consolidate", "finalize"]
    error: str


class CleanupCompletedPayload(TypedDict):
    """Payload for ``CONSOLIDATION_COMPLETED`` and ``FINALIZATION_COMPLETED``.

    ``session_id`` plus the ``model_dump()`` of the pass's StepTokenDelta.
    """

    session_id: str
    tokens_before: int
    tokens_after: int
    read_tokens_before: int
    read_tokens_after: int
    edit_tokens_before: int
    edit_tokens_after: int
    invalidated_tokens_before: int
    files_consolidated: int
    files_invalidated: int


class FilesInvalidatedPayload(TypedDict):
    """Payload for :attr:`ContextJarEvent.FILES_INVALIDATED`."""

    session_id: str
    """The parent session whose cached reads are no longer trusted."""
    child_session_id: str
    files: list[str]
    """Normalized paths newly reported by this delegated run."""


class SummaryPayload(TypedDict):
    """Payload for ``SUMMARY_SENT`` and ``SUMMARY_FAILED``."""

    session_id: str
    net_delta: int
