"""Before/after token accounting for a cleanup pass."""

from __future__ import annotations

import json

from contextjar.compaction.snapshots import EDIT_TOOLS
from contextjar.models.message import ToolPart, ToolStateCompleted
from contextjar.models.stats import StepTokenDelta
from contextjar.tokens.estimator import TokenEstimator


def _serialize_input(tool_input: object) -> str:
    try:
        return json.dumps(tool_input, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        return ""


class DeltaAccountant:
    """
    Accumulates a ``StepTokenDelta`` while an engine rewrites the window.

    The cost of a tool part is the estimate of its serialized input plus the
    estimate of its output text. Parts that are not completed cost nothing.

    Example::

        accountant = DeltaAccountant(estimator)
        accountant.count_before(part)
        accountant.count_after(keeper)
        delta = accountant.delta
    """

    def __init__(self, estimator: TokenEstimator) -> None:
        self._estimator = estimator
        self.delta = StepTokenDelta()

    def part_tokens(self, part: ToolPart) -> int:
        state = part.state
        if not isinstance(state, ToolStateCompleted):
            return 0
        return self._estimator.estimate(_serialize_input(state.input)) + self._estimator.estimate(
            state.output or ""
        )

    def count_before(self, part: ToolPart, *, invalidated: bool = False) -> int:
        """Charge an original part to the "before" side, by operation kind."""
        tokens = self.part_tokens(part)
        self.delta.tokens_before += tokens
        if part.tool == "read":
            self.delta.read_tokens_before += tokens
        elif part.tool in EDIT_TOOLS:
            self.delta.edit_tokens_before += tokens
        if invalidated:
            self.delta.invalidated_tokens_before += tokens
        return tokens

    def count_after(self, part: ToolPart) -> int:
        """Charge a part that stays visible to the "after" side, by operation kind."""
        tokens = self.part_tokens(part)
        self.delta.tokens_after += tokens
        if part.tool == "read":
            self.delta.read_tokens_after += tokens
        elif part.tool in EDIT_TOOLS:
            self.delta.edit_tokens_after += tokens
        return tokens
