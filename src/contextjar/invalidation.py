"""
Invalidation of files changed by delegated sub-task runs.

A ``task`` tool runs a sub-agent in a child session. Whatever that child
edits was changed outside the parent's window, so every cached read of those
files in the parent is untrustworthy. This tracker keeps, per parent session,
the set of such files; both cleanup engines wipe their visible parts.

Sets only ever grow. A file once invalidated stays invalidated for the life
of the tracker.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from contextjar.client import HostClient, get_session_diff
from contextjar.events.bus import ContextJarEvent, EventBus
from contextjar.files.paths import normalize_file_path

_EMPTY: frozenset[str] = frozenset()


class InvalidationTracker:
    """
    Per-parent-session sets of files made untrustworthy by delegated work.

    Not synchronized: the host serializes hook calls per session.

    Example::

        tracker = InvalidationTracker(client, worktree_root="/repo")
        await tracker.on_task_completed("sess_parent", {"sessionId": "sess_child"})
        tracker.get_invalidated_files("sess_parent")  # frozenset({"/repo/src/a.py", ...})
    """

    def __init__(
        self,
        client: HostClient,
        *,
        directory: str | None = None,
        worktree_root: str | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._client = client
        self._directory = directory
        self._worktree_root = worktree_root
        self._event_bus = event_bus
        self._by_parent: dict[str, set[str]] = {}
        self._logger = structlog.get_logger("contextjar.invalidation")

    def get_invalidated_files(self, parent_session_id: str | None) -> frozenset[str]:
        """Return a read-only snapshot of the session's invalidated paths."""
        if not parent_session_id:
            return _EMPTY
        files = self._by_parent.get(parent_session_id)
        return frozenset(files) if files else _EMPTY

    def add(self, parent_session_id: str, file_paths: list[str]) -> None:
        """Union already-normalized paths into the parent session's set."""
        self._by_parent.setdefault(parent_session_id, set()).update(file_paths)

    async def on_task_completed(
        self,
        parent_session_id: str,
        metadata: Mapping[str, Any] | None,
    ) -> list[str]:
        """
        Record the files changed by a completed delegated task.

        Args:
            parent_session_id: Session that invoked the ``task`` tool.
            metadata: Completion metadata; ``sessionId`` names the child session.

        Returns:
            The normalized paths reported for this child, possibly empty.
            A failed diff fetch yields an empty list, never an exception.
        """
        child_session_id = metadata.get("sessionId") if isinstance(metadata, Mapping) else None
        if not isinstance(child_session_id, str) or not child_session_id:
            return []

        diffs = await get_session_diff(self._client, child_session_id, self._directory)
        normalized = [
            path
            for path in (normalize_file_path(d.file, self._worktree_root) for d in diffs)
            if path
        ]
        if not normalized:
            return []

        self.add(parent_session_id, normalized)
        self._logger.info(
            "files_invalidated",
            session_id=parent_session_id,
            child_session_id=child_session_id,
            count=len(normalized),
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                ContextJarEvent.FILES_INVALIDATED,
                {
                    "session_id": parent_session_id,
                    "child_session_id": child_session_id,
                    "files": normalized,
                },
            )
        return normalized
