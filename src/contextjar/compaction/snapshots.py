"""
Shared helpers for reading file state out of file-operation tool parts.

Both cleanup engines reconstruct "latest known content" per file from the
same sources. The shape assumptions about host metadata live here and
nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from contextjar.models.message import ToolPart, ToolStateCompleted

FILE_TOOLS: frozenset[str] = frozenset({"read", "edit", "multiedit", "write"})
EDIT_TOOLS: frozenset[str] = frozenset({"edit", "multiedit", "write"})


@dataclass
class LatestContent:
    """Most recent trustworthy content seen for a file during a pass."""

    content: str
    kind: Literal["read-output", "raw-text"]
    """``read-output`` is already rendered; ``raw-text`` needs read formatting."""

    def render(self) -> str:
        if self.kind == "read-output":
            return self.content
        return render_read_like_output(self.content)


def completed_file_tool(part: Any) -> ToolPart | None:
    """Return ``part`` if it is a completed read/edit/multiedit/write tool part."""
    if not isinstance(part, ToolPart):
        return None
    if not isinstance(part.state, ToolStateCompleted):
        return None
    if part.tool not in FILE_TOOLS:
        return None
    return part


def render_read_like_output(raw_content: str) -> str:
    """
    Render raw file text the way a genuine ``read`` tool output looks.

    Example::

        >>> print(render_read_like_output("a\\nb"))
        <file>
        00001| a
        00002| b
        <BLANKLINE>
        (End of file - total 2 lines)
        </file>
    """
    lines = raw_content.replace("\r\n", "\n").split("\n")
    body = "".join(f"{i:05d}| {line}\n" for i, line in enumerate(lines, start=1))
    return f"<file>\n{body}\n(End of file - total {len(lines)} lines)\n</file>"


def extract_after_from_edit_metadata(metadata: dict[str, Any] | None) -> str | None:
    """
    Pull the post-edit file content out of an edit/multiedit completion.

    Looks in exactly two places:

    - ``metadata["filediff"]["after"]`` (single edit)
    - ``metadata["results"][-1]["filediff"]["after"]`` (multiedit, last edit wins)

    Args:
        metadata: The completed state's metadata mapping.

    Returns:
        The ``after`` string, or None when neither location holds a string.
    """
    if not isinstance(metadata, dict):
        return None

    filediff = metadata.get("filediff")
    if isinstance(filediff, dict) and isinstance(filediff.get("after"), str):
        return filediff["after"]

    results = metadata.get("results")
    if isinstance(results, list) and results:
        last = results[-1]
        last_diff = last.get("filediff") if isinstance(last, dict) else None
        if isinstance(last_diff, dict) and isinstance(last_diff.get("after"), str):
            return last_diff["after"]

    return None


def snapshot_from_part(part: ToolPart) -> LatestContent | None:
    """
    Return the content a completed file-tool part proves the file holds.

    Reads yield their (non-empty) output verbatim; edits yield the metadata
    ``after`` snapshot; writes yield their input ``content``.
    """
    state = part.state
    if not isinstance(state, ToolStateCompleted):
        return None

    if part.tool == "read":
        if isinstance(state.output, str) and state.output:
            return LatestContent(content=state.output, kind="read-output")
        return None

    if part.tool in ("edit", "multiedit"):
        after = extract_after_from_edit_metadata(state.metadata)
        if after is not None:
            return LatestContent(content=after, kind="raw-text")
        return None

    if part.tool == "write":
        content = state.input.get("content")
        if isinstance(content, str):
            return LatestContent(content=content, kind="raw-text")

    return None
