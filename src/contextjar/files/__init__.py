"""File identity and protection helpers."""

from contextjar.files.paths import (
    extract_primary_file_path,
    infer_worktree_root,
    normalize_file_path,
    relative_label,
)
from contextjar.files.protection import is_file_protected, matches_extension, matches_pattern

__all__ = [
    "extract_primary_file_path",
    "infer_worktree_root",
    "is_file_protected",
    "matches_extension",
    "matches_pattern",
    "normalize_file_path",
    "relative_label",
]
