"""Finalization engine — canonical per-file view at session boundaries."""

from __future__ import annotations

import re
import time
from collections.abc import Sequence
from collections.abc import Set as AbstractSet

import structlog

from contextjar.compaction.accounting import DeltaAccountant
from contextjar.compaction.timeline import build_window_index
from contextjar.files.paths import relative_label
from contextjar.models.config import ProtectedFilesConfig
from contextjar.models.message import (
    ChatMessage,
    ChatMessagePart,
    ToolPart,
    ToolStateCompleted,
    ToolTime,
)
from contextjar.models.stats import StepTokenDelta
from contextjar.tokens.estimator import TokenEstimator

SYNTHETIC_CALL_PREFIX = "context-jar-final-read-"
_PREVIEW_LINES = 20
_UNSAFE_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def synthetic_call_id(label: str) -> str:
    """Deterministic call id for the synthetic read of a file."""
    return SYNTHETIC_CALL_PREFIX + _UNSAFE_LABEL_CHARS.sub("_", label)


def make_synthetic_read(file_path: str, output: str, label: str, now_ms: int) -> ToolPart:
    """Build a completed ``read`` part that looks like the host produced it."""
    return ToolPart(
        tool="read",
        call_id=synthetic_call_id(label),
        state=ToolStateCompleted(
            input={"filePath": file_path},
            output=output,
            title=label,
            metadata={"preview": "\n".join(output.split("\n")[:_PREVIEW_LINES])},
            time=ToolTime(start=now_ms, end=now_ms),
        ),
    )


def find_last_assistant(messages: Sequence[ChatMessage]) -> int | None:
    """Return the index of the chronologically last assistant message, if any."""
    for i in range(len(messages) - 1, -1, -1):
        if messages[i].info.role == "assistant":
            return i
    return None


class FinalizationEngine:
    """
    Aggressive reducer run once after the session goes idle.

    Unlike :class:`~contextjar.compaction.consolidation.ConsolidationEngine`
    it does not try to keep an existing read. Every visible file-operation
    part for an edited or invalidated file is removed; each edited file then
    gets exactly one synthetic ``read`` holding its latest content, appended
    to the last assistant message. Invalidated files get nothing back.

    Running it twice with no new operations in between is stable: the second
    pass sees only the synthetic reads, finds no edits, and changes nothing.
    """

    def __init__(self, estimator: TokenEstimator) -> None:
        self._estimator = estimator
        self._logger = structlog.get_logger("contextjar.finalization")

    def run(
        self,
        messages: Sequence[ChatMessage],
        protection: ProtectedFilesConfig,
        invalidated: AbstractSet[str],
        now_ms: int | None = None,
    ) -> StepTokenDelta:
        """
        Finalize the window in place.

        Args:
            messages: The current message window. Mutated in place.
            protection: Protected extensions and patterns.
            invalidated: Normalized paths invalidated for this session.
            now_ms: Timestamp for synthetic parts. Defaults to the wall clock.

        Returns:
            The StepTokenDelta for this pass. A zero delta when there is no
            assistant message to attach synthetic reads to; the window is
            untouched in that case.
        """
        accountant = DeltaAccountant(self._estimator)
        delta = accountant.delta

        index = build_window_index(messages, protection, invalidated)
        edited = [t for t in index.timelines.values() if t.edited and not t.invalidated]
        wiped_invalid = [t for t in index.timelines.values() if t.invalidated]
        if not edited and not wiped_invalid:
            return delta

        target = find_last_assistant(messages)
        if target is None:
            self._logger.debug(
                "finalization_skipped_no_assistant",
                edited_files=len(edited),
                invalidated_files=len(wiped_invalid),
            )
            return StepTokenDelta()

        delta.files_invalidated = len(wiped_invalid)
        wipe = {t.path for t in edited} | {t.path for t in wiped_invalid}

        rebuilt: list[list[ChatMessagePart]] = []
        for message in messages:
            next_parts: list[ChatMessagePart] = []
            for part in message.parts:
                path = index.path_of(part)
                if path is None or path not in wipe or not isinstance(part, ToolPart):
                    next_parts.append(part)
                    continue
                accountant.count_before(part, invalidated=index.timelines[path].invalidated)
            rebuilt.append(next_parts)

        if now_ms is None:
            now_ms = int(time.time() * 1000)
        for timeline in edited:
            latest = timeline.latest_edit or timeline.first_read
            if latest is None:
                continue
            label = relative_label(timeline.path, index.worktree_root)
            synthetic = make_synthetic_read(timeline.path, latest.render(), label, now_ms)
            accountant.count_after(synthetic)
            rebuilt[target].append(synthetic)
            delta.files_consolidated += 1

        for message, parts in zip(messages, rebuilt, strict=True):
            message.parts = parts

        self._logger.debug(
            "finalization_pass",
            files_consolidated=delta.files_consolidated,
            files_invalidated=delta.files_invalidated,
            tokens_before=delta.tokens_before,
            tokens_after=delta.tokens_after,
        )
        return delta
