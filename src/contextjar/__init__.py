"""
Context Jar — one trustworthy view per file in an agent's tool history.

Primary entry point::

    from contextjar import ContextJar

    jar = ContextJar.create(client, worktree="/path/to/repo")
    delta = await jar.transform_messages(messages)
    print(f"Saved ~{delta.net} tokens")
"""

from contextjar.compaction import ConsolidationEngine, DeltaAccountant, FinalizationEngine
from contextjar.config import create_default_config, load_config, load_or_create_config
from contextjar.events.bus import ContextJarEvent, EventBus
from contextjar.files import is_file_protected, normalize_file_path
from contextjar.invalidation import InvalidationTracker
from contextjar.models import (
    ChatMessage,
    ContextJarConfig,
    FileDiff,
    MessageInfo,
    ModelRef,
    OtherPart,
    ProtectedFilesConfig,
    SessionTokenStats,
    StepTokenDelta,
    TextPart,
    ToolPart,
    ToolStateCompleted,
    ToolTime,
)
from contextjar.plugin import ContextJar
from contextjar.stats import SessionStatsStore
from contextjar.summary import build_idle_summary
from contextjar.tokens import TokenEstimator

__version__ = "0.1.0"

__all__ = [
    # Core
    "ContextJar",
    "ConsolidationEngine",
    "FinalizationEngine",
    "InvalidationTracker",
    "SessionStatsStore",
    "DeltaAccountant",
    # Config
    "ContextJarConfig",
    "ProtectedFilesConfig",
    "create_default_config",
    "load_config",
    "load_or_create_config",
    # Models
    "ChatMessage",
    "MessageInfo",
    "ModelRef",
    "TextPart",
    "ToolPart",
    "OtherPart",
    "ToolStateCompleted",
    "ToolTime",
    "StepTokenDelta",
    "SessionTokenStats",
    "FileDiff",
    # Helpers
    "build_idle_summary",
    "is_file_protected",
    "normalize_file_path",
    # Events
    "ContextJarEvent",
    "EventBus",
    # Tokens
    "TokenEstimator",
]
