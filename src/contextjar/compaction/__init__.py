"""Context Jar cleanup engines."""

from contextjar.compaction.accounting import DeltaAccountant
from contextjar.compaction.consolidation import ConsolidationEngine
from contextjar.compaction.finalization import FinalizationEngine, make_synthetic_read
from contextjar.compaction.snapshots import extract_after_from_edit_metadata, render_read_like_output

__all__ = [
    "ConsolidationEngine",
    "DeltaAccountant",
    "FinalizationEngine",
    "extract_after_from_edit_metadata",
    "make_synthetic_read",
    "render_read_like_output",
]
