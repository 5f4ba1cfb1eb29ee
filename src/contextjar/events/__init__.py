"""Context Jar event bus."""

from contextjar.events.bus import ContextJarEvent, EventBus, Handler
from contextjar.events.payloads import (
    CleanupCompletedPayload,
    CleanupFailedPayload,
    CleanupSkippedPayload,
    FilesInvalidatedPayload,
    SessionIdlePayload,
    SummaryPayload,
)

__all__ = [
    "CleanupCompletedPayload",
    "CleanupFailedPayload",
    "CleanupSkippedPayload",
    "ContextJarEvent",
    "EventBus",
    "FilesInvalidatedPayload",
    "Handler",
    "SessionIdlePayload",
    "SummaryPayload",
]
