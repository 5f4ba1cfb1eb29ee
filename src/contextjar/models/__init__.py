"""Context Jar data models."""

from contextjar.models.config import ContextJarConfig, ProtectedFilesConfig
from contextjar.models.message import (
    ChatMessage,
    ChatMessagePart,
    MessageInfo,
    MessagePath,
    ModelRef,
    OtherPart,
    TextPart,
    ToolPart,
    ToolState,
    ToolStateCompleted,
    ToolStateError,
    ToolStatePending,
    ToolStateRunning,
    ToolTime,
)
from contextjar.models.stats import FileDiff, SessionTokenStats, StepTokenDelta

__all__ = [
    # Config
    "ContextJarConfig",
    "ProtectedFilesConfig",
    # Messages and parts
    "ChatMessage",
    "ChatMessagePart",
    "MessageInfo",
    "MessagePath",
    "ModelRef",
    "OtherPart",
    "TextPart",
    "ToolPart",
    # Tool states
    "ToolState",
    "ToolStateCompleted",
    "ToolStateError",
    "ToolStatePending",
    "ToolStateRunning",
    "ToolTime",
    # Accounting
    "FileDiff",
    "SessionTokenStats",
    "StepTokenDelta",
]
