"""Token accounting value objects and host diff records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StepTokenDelta(BaseModel):
    """
    Before/after token totals for a single cleanup pass.

    Produced fresh on every pass and never merged with an earlier delta:
    each pass already sees the whole current window, so summing would count
    the same savings twice.
    """

    tokens_before: int = 0
    tokens_after: int = 0

    read_tokens_before: int = 0
    read_tokens_after: int = 0

    edit_tokens_before: int = 0
    """Covers ``edit``, ``multiedit`` and ``write`` parts."""
    edit_tokens_after: int = 0

    invalidated_tokens_before: int = 0
    """Subset of ``tokens_before`` spent on files invalidated by delegated work."""

    files_consolidated: int = 0
    files_invalidated: int = 0

    @property
    def net(self) -> int:
        """Tokens saved by the pass. Negative when the pass added content."""
        return self.tokens_before - self.tokens_after

    @property
    def changed(self) -> bool:
        return bool(self.tokens_before or self.tokens_after or self.files_invalidated)


class SessionTokenStats(BaseModel):
    """Latest delta for a session plus idle-report bookkeeping."""

    session_id: str
    total: StepTokenDelta
    last_step: StepTokenDelta
    last_updated_at: int
    """Clock reading (ms) of the pass that produced ``total``."""
    last_reported_at: int | None = None
    last_reported_net_delta: int | None = None


class FileDiff(BaseModel):
    """One changed file reported by the host for a child session."""

    model_config = ConfigDict(extra="allow")

    file: str
    before: str | None = None
    after: str | None = None
    additions: int | None = None
    deletions: int | None = None
