"""Per-file operation timelines rebuilt from the message window on every pass."""

from __future__ import annotations

from collections.abc import Sequence
from collections.abc import Set as AbstractSet
from dataclasses import dataclass, field

from contextjar.compaction.snapshots import LatestContent, completed_file_tool, snapshot_from_part
from contextjar.files.paths import extract_primary_file_path, infer_worktree_root
from contextjar.files.protection import is_file_protected
from contextjar.models.config import ProtectedFilesConfig
from contextjar.models.message import ChatMessage, ToolPart


@dataclass
class FileTimeline:
    """
    Latest known content for one normalized path, folded from its completed
    file operations in window order.

    Snapshot fields are only populated for files that are not invalidated;
    an invalidated file's cached content is never trusted.
    """

    path: str
    invalidated: bool = False

    latest: LatestContent | None = None
    """Last snapshot of any kind, in window order."""
    latest_edit: LatestContent | None = None
    """Last edit/multiedit/write snapshot."""
    first_read: LatestContent | None = None
    """Earliest non-empty read output."""
    last_read: ToolPart | None = None
    """Most recent read with non-empty output; the keeper candidate."""

    @property
    def edited(self) -> bool:
        return self.latest_edit is not None

    def record(self, part: ToolPart) -> None:
        """Fold one completed operation into the file's latest-content fields."""
        if self.invalidated:
            return
        snapshot = snapshot_from_part(part)
        if snapshot is None:
            return
        self.latest = snapshot
        if part.tool == "read":
            self.last_read = part
            if self.first_read is None:
                self.first_read = snapshot
        else:
            self.latest_edit = snapshot


@dataclass
class WindowIndex:
    """Timelines for every tracked file plus the part-to-path mapping used when rewriting."""

    worktree_root: str | None
    timelines: dict[str, FileTimeline] = field(default_factory=dict)
    part_paths: dict[int, str] = field(default_factory=dict)

    def path_of(self, part: object) -> str | None:
        """Return the tracked path for a part, or None for parts that pass through untouched."""
        return self.part_paths.get(id(part))


def build_window_index(
    messages: Sequence[ChatMessage],
    protection: ProtectedFilesConfig,
    invalidated: AbstractSet[str],
) -> WindowIndex:
    """
    Walk the window in order and group completed file-tool parts by path.

    Parts with an unresolvable path and parts for protected files are left
    out entirely, so neither engine can ever touch them.

    Args:
        messages: The current message window.
        protection: Protected extensions and patterns.
        invalidated: Normalized paths made untrustworthy by delegated work.

    Returns:
        A WindowIndex whose timelines preserve first-seen file order.
    """
    root = infer_worktree_root(messages)
    index = WindowIndex(worktree_root=root)

    for message in messages:
        for raw_part in message.parts:
            part = completed_file_tool(raw_part)
            if part is None:
                continue
            path = extract_primary_file_path(part, root)
            if path is None:
                continue
            if is_file_protected(path, protection.extensions, protection.patterns):
                continue

            timeline = index.timelines.get(path)
            if timeline is None:
                timeline = FileTimeline(path=path, invalidated=path in invalidated)
                index.timelines[path] = timeline
            timeline.record(part)
            index.part_paths[id(part)] = path

    return index
