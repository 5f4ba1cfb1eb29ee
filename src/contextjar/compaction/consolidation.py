"""Consolidation engine — collapses repeated file operations mid-conversation."""

from __future__ import annotations

from collections.abc import Sequence
from collections.abc import Set as AbstractSet

import structlog

from contextjar.compaction.accounting import DeltaAccountant
from contextjar.compaction.timeline import FileTimeline, build_window_index
from contextjar.models.config import ProtectedFilesConfig
from contextjar.models.message import ChatMessage, ChatMessagePart, ToolPart, ToolStateCompleted
from contextjar.models.stats import StepTokenDelta
from contextjar.tokens.estimator import TokenEstimator


class ConsolidationEngine:
    """
    Conservative reducer: one visible, up-to-date read per file.

    Consolidation never adds context. A file is only consolidated when the
    window already holds a real ``read`` of it; that read becomes the keeper
    and every other read/edit/multiedit/write part for the file is dropped.
    If an edit or write happened after the keeper's read, the keeper's output
    is rewritten to the newer content in read format. Files with only edits
    are left alone.

    Files in the invalidation set lose every file-operation part so the
    model is forced to read them again.

    No LLM call is required — this is entirely deterministic.

    Example::

        engine = ConsolidationEngine(estimator)
        delta = engine.run(messages, config.protected_files, invalidated)
        print(f"Saved {delta.net:,} tokens across {delta.files_consolidated} files")
    """

    def __init__(self, estimator: TokenEstimator) -> None:
        self._estimator = estimator
        self._logger = structlog.get_logger("contextjar.consolidation")

    def run(
        self,
        messages: Sequence[ChatMessage],
        protection: ProtectedFilesConfig,
        invalidated: AbstractSet[str],
    ) -> StepTokenDelta:
        """
        Consolidate the window in place.

        Algorithm:
        1. Build per-file timelines (protected and unresolvable parts excluded).
        2. For each non-invalidated file with a read, pick the most recent
           non-empty read as keeper and prepare its rewritten copy.
        3. Rebuild every message's part list in order: drop invalidated
           files' parts, keep only the keeper for consolidated files, pass
           everything else through. Parts lists are swapped in only after
           every message has been rebuilt.

        Args:
            messages: The current message window. Mutated in place.
            protection: Protected extensions and patterns.
            invalidated: Normalized paths invalidated for this session.

        Returns:
            The StepTokenDelta for this pass.
        """
        accountant = DeltaAccountant(self._estimator)
        delta = accountant.delta

        index = build_window_index(messages, protection, invalidated)
        if not index.timelines:
            return delta

        # id(original keeper) -> rewritten copy that replaces it
        keepers: dict[int, ToolPart] = {}
        to_consolidate: set[str] = set()

        for path, timeline in index.timelines.items():
            if timeline.invalidated:
                delta.files_invalidated += 1
                continue
            if timeline.last_read is None:
                # No read, or only empty reads: nothing to keep, nothing to fabricate.
                continue
            keepers[id(timeline.last_read)] = self._prepare_keeper(timeline.last_read, timeline)
            to_consolidate.add(path)
            delta.files_consolidated += 1

        rebuilt: list[list[ChatMessagePart]] = []
        for message in messages:
            next_parts: list[ChatMessagePart] = []
            for part in message.parts:
                path = index.path_of(part)
                if path is None or not isinstance(part, ToolPart):
                    next_parts.append(part)
                    continue

                if index.timelines[path].invalidated:
                    accountant.count_before(part, invalidated=True)
                    continue

                if path not in to_consolidate:
                    next_parts.append(part)
                    continue

                accountant.count_before(part)
                keeper = keepers.get(id(part))
                if keeper is not None:
                    accountant.count_after(keeper)
                    next_parts.append(keeper)
            rebuilt.append(next_parts)

        for message, parts in zip(messages, rebuilt, strict=True):
            message.parts = parts

        self._logger.debug(
            "consolidation_pass",
            tracked_files=len(index.timelines),
            files_consolidated=delta.files_consolidated,
            files_invalidated=delta.files_invalidated,
            tokens_before=delta.tokens_before,
            tokens_after=delta.tokens_after,
        )
        return delta

    @staticmethod
    def _prepare_keeper(source: ToolPart, timeline: FileTimeline) -> ToolPart:
        """Copy the keeper read and bring it up to the file's latest known content."""
        keeper = source.model_copy(deep=True)
        state = keeper.state
        if not isinstance(state, ToolStateCompleted):
            return keeper

        latest = timeline.latest
        if latest is not None and latest.kind == "raw-text":
            state.output = latest.render()
        state.input = {**state.input, "filePath": timeline.path}
        # A tombstoned keeper would render as pruned; it must show live content.
        state.time = state.time.without_compacted()
        return keeper
