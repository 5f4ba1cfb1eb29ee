"""Protected-file predicate consulted before every mutation."""

from __future__ import annotations

import functools
import os
import re
from collections.abc import Sequence


def matches_extension(file_path: str, extensions: Sequence[str]) -> bool:
    """Case-insensitive extension check. Entries may omit the leading dot."""
    ext = os.path.splitext(file_path)[1].lower()
    if not ext:
        return False
    wanted = {e.lower() for e in extensions}
    return ext in wanted or ext[1:] in wanted


@functools.lru_cache(maxsize=256)
def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    # Only ``*`` and ``?`` are special; everything else matches literally.
    out = ["^"]
    for ch in pattern:
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        else:
            out.append(re.escape(ch))
    out.append("$")
    return re.compile("".join(out), re.DOTALL)


def matches_pattern(file_path: str, patterns: Sequence[str]) -> bool:
    """Return True if any pattern matches the full path or its base name."""
    base = os.path.basename(file_path)
    for pattern in patterns:
        regex = _glob_to_regex(pattern)
        if regex.match(file_path) or regex.match(base):
            return True
    return False


def is_file_protected(
    file_path: str | None,
    extensions: Sequence[str],
    patterns: Sequence[str],
) -> bool:
    """
    Return True when the file is exempt from every cleanup mutation.

    Args:
        file_path: Normalized file path. Empty or None is never protected.
        extensions: Protected extensions, e.g. ``[".md", "txt"]``.
        patterns: Glob-like patterns, e.g. ``["README*", "*.config.*"]``.
    """
    if not file_path:
        return False
    return matches_extension(file_path, extensions) or matches_pattern(file_path, patterns)
