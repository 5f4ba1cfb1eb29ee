"""Per-session store for the latest cleanup delta and idle-report bookkeeping."""

from __future__ import annotations

import time
from collections.abc import Callable

from contextjar.models.stats import SessionTokenStats, StepTokenDelta


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionStatsStore:
    """
    Holds exactly one StepTokenDelta per session: the result of the latest pass.

    Deltas are replaced, never summed. Consolidation is stateful (the window
    ends up with one read per file), so adding per-pass before/after figures
    would count the same content on every pass.

    Not synchronized: the host must not run two passes for the same session
    concurrently.

    Args:
        clock: Millisecond clock. Injectable for tests.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._by_session: dict[str, SessionTokenStats] = {}
        self._clock = clock

    def record(self, session_id: str, delta: StepTokenDelta) -> SessionTokenStats:
        """Replace the session's snapshot with ``delta``, keeping report bookkeeping."""
        prev = self._by_session.get(session_id)
        stats = SessionTokenStats(
            session_id=session_id,
            total=delta,
            last_step=delta,
            last_updated_at=self._clock(),
            last_reported_at=prev.last_reported_at if prev else None,
            last_reported_net_delta=prev.last_reported_net_delta if prev else None,
        )
        self._by_session[session_id] = stats
        return stats

    def get(self, session_id: str) -> SessionTokenStats | None:
        return self._by_session.get(session_id)

    def should_report_on_idle(self, session_id: str) -> bool:
        """True if never reported, or if a pass ran after the last report."""
        stats = self._by_session.get(session_id)
        if stats is None:
            return False
        if stats.last_reported_at is None:
            return True
        return stats.last_updated_at > stats.last_reported_at

    def mark_reported(self, session_id: str) -> None:
        """Snapshot the net value at report time. No-op for unknown sessions."""
        stats = self._by_session.get(session_id)
        if stats is None:
            return
        self._by_session[session_id] = stats.model_copy(
            update={
                "last_reported_at": self._clock(),
                "last_reported_net_delta": stats.total.net,
            }
        )
