"""Human-readable idle summary of the latest cleanup snapshot."""

from __future__ import annotations

from contextjar.models.stats import SessionTokenStats


def format_token_count(tokens: int) -> str:
    """``950 tokens``, ``1.2K tokens``, ``3K tokens``. Sign is dropped."""
    magnitude = abs(tokens)
    if magnitude >= 1000:
        return f"{magnitude / 1000:.1f}".replace(".0", "") + "K tokens"
    return f"{magnitude} tokens"


def _format_net(prefix: str, before: int, after: int) -> str:
    net = before - after
    label = f"~{format_token_count(net)} saved" if net >= 0 else f"~{format_token_count(net)} added"
    return f"{prefix}: ~{format_token_count(before)} → ~{format_token_count(after)} ({label})"


def build_idle_summary(stats: SessionTokenStats) -> str:
    """Render the session's latest delta as the multi-line idle report."""
    total = stats.total
    invalidated = (
        f" (~{format_token_count(total.invalidated_tokens_before)} invalidated)"
        if total.invalidated_tokens_before > 0
        else ""
    )
    return "\n".join(
        [
            "▣ Context Jar | latest consolidation snapshot",
            _format_net("▣ Total", total.tokens_before, total.tokens_after),
            _format_net("▣ Read", total.read_tokens_before, total.read_tokens_after),
            _format_net("▣ Edit", total.edit_tokens_before, total.edit_tokens_after) + invalidated,
            f"▣ Files: {total.files_consolidated} consolidated, "
            f"{total.files_invalidated} invalidated",
            f"▣ Net: {'saved' if total.net >= 0 else 'added'}",
        ]
    )
