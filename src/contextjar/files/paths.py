"""
Path identity resolution for file-operation tool parts.

Two raw strings that name the same on-disk file must resolve to the same
key, otherwise per-file grouping silently splits one file's history in two.
Resolution is purely lexical: nothing here touches the filesystem beyond
reading the home directory and the current working directory.
"""

from __future__ import annotations

import os
from collections.abc import Sequence

from contextjar.models.message import ChatMessage, ToolPart

_QUOTES = "'\""


def infer_worktree_root(messages: Sequence[ChatMessage]) -> str | None:
    """
    Return the worktree root recorded on the most recent message that has one.

    Args:
        messages: The current message window.

    Returns:
        The root directory string, or None when no message carries one.
    """
    for message in reversed(messages):
        path = message.info.path
        if path is not None and path.root:
            return path.root
    return None


def normalize_file_path(file_path: object, worktree_root: str | None = None) -> str | None:
    """
    Resolve a raw path string into a canonical absolute key.

    Strips one layer of surrounding quotes, expands a leading ``~``, resolves
    relative paths against ``worktree_root`` (or the current directory when
    no root is known) and collapses ``.``/``..`` segments and duplicate
    separators.

    Args:
        file_path: The raw value taken from tool input. Non-strings are
            treated as unresolved.
        worktree_root: Base directory for relative paths.

    Returns:
        The normalized absolute path, or None when the input is empty or
        cannot be parsed. Callers skip the operation in that case.
    """
    if not isinstance(file_path, str) or not file_path:
        return None

    trimmed = file_path.strip()
    if trimmed and trimmed[0] in _QUOTES:
        trimmed = trimmed[1:]
    if trimmed and trimmed[-1] in _QUOTES:
        trimmed = trimmed[:-1]
    if not trimmed:
        return None

    if trimmed.startswith("~"):
        expanded = os.path.join(os.path.expanduser("~"), trimmed[1:].lstrip("/\\"))
    else:
        expanded = trimmed

    try:
        if os.path.isabs(expanded):
            return os.path.normpath(expanded)
        base = worktree_root or os.getcwd()
        return os.path.normpath(os.path.join(os.path.abspath(base), expanded))
    except (ValueError, OSError):
        # Embedded NUL bytes, or a deleted working directory.
        return None


def extract_primary_file_path(part: ToolPart, worktree_root: str | None = None) -> str | None:
    """
    Return the normalized path of the file a tool part operates on.

    File tools pass ``filePath`` (``multiedit`` included, alongside its
    ``edits`` list); some tools use a generic ``path``. Anything else is
    unresolved.
    """
    tool_input = getattr(part.state, "input", None)
    if not isinstance(tool_input, dict):
        return None
    if isinstance(tool_input.get("filePath"), str):
        return normalize_file_path(tool_input["filePath"], worktree_root)
    if isinstance(tool_input.get("path"), str):
        return normalize_file_path(tool_input["path"], worktree_root)
    return None


def relative_label(file_path: str, worktree_root: str | None) -> str:
    """Return ``file_path`` relative to the worktree root, or unchanged without one."""
    if not worktree_root:
        return file_path
    try:
        return os.path.relpath(file_path, worktree_root)
    except ValueError:
        # Different drives on Windows.
        return file_path
