"""
Best-effort calls into the host's session API.

The host client is duck-typed: anything exposing an async ``session``
namespace with ``diff`` and ``prompt`` works. Two calling conventions are
tried in order, nested ``{path, query, body}`` first, then flat keyword
arguments. Neither function ever raises; failures are logged and mapped to
an empty diff or ``False``.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from contextjar.models.message import ModelRef
from contextjar.models.stats import FileDiff

_logger = structlog.get_logger("contextjar.client")


class SessionAPI(Protocol):
    async def diff(self, *args: Any, **kwargs: Any) -> Any: ...

    async def prompt(self, *args: Any, **kwargs: Any) -> Any: ...


class HostClient(Protocol):
    """Structural type for the host SDK client."""

    session: SessionAPI


def _diff_entries(resp: Any) -> list[Any] | None:
    if isinstance(resp, list):
        return resp
    data = resp.get("data") if isinstance(resp, dict) else getattr(resp, "data", None)
    if isinstance(data, list):
        return data
    return None


def _parse_diffs(entries: list[Any]) -> list[FileDiff]:
    diffs: list[FileDiff] = []
    for entry in entries:
        try:
            diffs.append(FileDiff.model_validate(entry))
        except ValidationError:
            continue
    return diffs


async def get_session_diff(
    client: HostClient,
    session_id: str,
    directory: str | None = None,
) -> list[FileDiff]:
    """
    Fetch the files changed by a (child) session.

    Args:
        client: Host SDK client.
        session_id: The session whose changes are wanted.
        directory: Optional project directory forwarded to the host.

    Returns:
        Parsed diff entries; an empty list when the host is unavailable or
        the response has an unknown shape.
    """
    attempts = (
        {
            "path": {"id": session_id},
            "query": {"directory": directory} if directory else None,
        },
        {"sessionID": session_id, "directory": directory},
    )
    for kwargs in attempts:
        try:
            resp = await client.session.diff(**kwargs)
        except Exception as exc:
            _logger.debug("session_diff_attempt_failed", session_id=session_id, error=str(exc))
            continue
        entries = _diff_entries(resp)
        if entries is not None:
            return _parse_diffs(entries)

    _logger.warning("session_diff_unavailable", session_id=session_id)
    return []


async def send_ignored_session_text(
    client: HostClient,
    session_id: str,
    text: str,
    *,
    directory: str | None = None,
    agent: str | None = None,
    model: ModelRef | None = None,
) -> bool:
    """
    Post a text part the model never sees and that never triggers a reply.

    Returns:
        True once either calling convention succeeds, False otherwise.
    """
    parts = [{"type": "text", "text": text, "ignored": True}]
    model_arg = model.model_dump(by_alias=True) if model is not None else None

    attempts = (
        {
            "path": {"id": session_id},
            "body": {"noReply": True, "agent": agent, "model": model_arg, "parts": parts},
        },
        {
            "sessionID": session_id,
            "directory": directory,
            "agent": agent,
            "model": model_arg,
            "noReply": True,
            "parts": parts,
        },
    )
    for kwargs in attempts:
        try:
            await client.session.prompt(**kwargs)
            return True
        except Exception as exc:
            _logger.debug("session_prompt_attempt_failed", session_id=session_id, error=str(exc))

    _logger.warning("session_prompt_failed", session_id=session_id)
    return False
