"""Shared fixtures and builders for Context Jar tests."""

from __future__ import annotations

from typing import Any

import pytest

from contextjar.events.bus import ContextJarEvent, EventBus
from contextjar.files.paths import normalize_file_path
from contextjar.models.config import ContextJarConfig, ProtectedFilesConfig
from contextjar.models.message import (
    ChatMessage,
    ChatMessagePart,
    MessageInfo,
    MessagePath,
    ModelRef,
    TextPart,
    ToolPart,
    ToolStateCompleted,
    ToolStateRunning,
    ToolTime,
)
from contextjar.tokens.estimator import TokenEstimator

ROOT = "/repo"
SESSION_ID = "sess_TEST01"


@pytest.fixture
def estimator():
    """TokenEstimator using heuristic only (no tiktoken required in tests)."""
    e = TokenEstimator()
    e._force_heuristic = True
    return e


@pytest.fixture
def event_bus():
    """EventBus with a .collected list for asserting events."""
    bus = EventBus()
    collected: list[tuple[ContextJarEvent, dict[str, Any]]] = []

    def _collect(event: ContextJarEvent, payload: dict[str, Any]) -> None:
        collected.append((event, payload))

    bus.subscribe_all(_collect)
    bus.collected = collected  # type: ignore[attr-defined]
    return bus


@pytest.fixture
def protection():
    """Protects markdown files and anything named like a config."""
    return ProtectedFilesConfig(extensions=[".md"], patterns=["*.config.*", "README*"])


@pytest.fixture
def config(protection):
    return ContextJarConfig(protected_files=protection)


# ── Builders ───────────────────────────────────────────────────────────────────

_call_counter = 0


def _next_call_id(prefix: str) -> str:
    global _call_counter
    _call_counter += 1
    return f"call_{prefix}_{_call_counter:04d}"


def make_tool_part(
    tool: str,
    file_path: str | None,
    *,
    output: str = "",
    extra_input: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
    call_id: str | None = None,
    compacted: int | None = None,
) -> ToolPart:
    """Helper to create a completed tool part."""
    tool_input: dict[str, Any] = {}
    if file_path is not None:
        tool_input["filePath"] = file_path
    tool_input.update(extra_input or {})
    return ToolPart(
        tool=tool,
        call_id=call_id or _next_call_id(tool),
        state=ToolStateCompleted(
            input=tool_input,
            output=output,
            title=file_path or tool,
            metadata=metadata or {},
            time=ToolTime(
                start=1_000,
                end=1_001,
                **({"compacted": compacted} if compacted is not None else {}),
            ),
        ),
    )


def make_read(file_path: str, output: str = "<file>\n00001| hello\n</file>", **kw: Any) -> ToolPart:
    return make_tool_part("read", file_path, output=output, **kw)


def make_edit(file_path: str, after: str, **kw: Any) -> ToolPart:
    return make_tool_part(
        "edit",
        file_path,
        output="Edit applied successfully.",
        extra_input={"oldString": "old", "newString": "new"},
        metadata={"filediff": {"file": file_path, "before": "old", "after": after}},
        **kw,
    )


def make_multiedit(file_path: str, afters: list[str], **kw: Any) -> ToolPart:
    return make_tool_part(
        "multiedit",
        file_path,
        output="Edits applied.",
        extra_input={"edits": [{"oldString": "a", "newString": "b"} for _ in afters]},
        metadata={"results": [{"filediff": {"after": a}} for a in afters]},
        **kw,
    )


def make_write(file_path: str, content: str, **kw: Any) -> ToolPart:
    return make_tool_part(
        "write", file_path, output="Wrote file.", extra_input={"content": content}, **kw
    )


def make_running(tool: str, file_path: str) -> ToolPart:
    return ToolPart(
        tool=tool,
        call_id=_next_call_id(f"{tool}_running"),
        state=ToolStateRunning(input={"filePath": file_path}, time={"start": 1_000}),
    )


def make_message(
    role: str,
    parts: list[ChatMessagePart] | None = None,
    *,
    session_id: str = SESSION_ID,
    root: str | None = ROOT,
    model: str | None = None,
    agent: str | None = None,
) -> ChatMessage:
    """Helper to create a test ChatMessage."""
    model_ref = None
    if model is not None:
        provider, _, model_id = model.partition("/")
        model_ref = ModelRef(provider_id=provider, model_id=model_id)
    return ChatMessage(
        info=MessageInfo(
            role=role,
            session_id=session_id,
            agent=agent,
            model=model_ref,
            path=MessagePath(root=root, cwd=root) if root else None,
        ),
        parts=list(parts or []),
    )


def text(value: str) -> TextPart:
    return TextPart(text=value)


def visible_parts(messages: list[ChatMessage]) -> list[ChatMessagePart]:
    return [part for message in messages for part in message.parts]


def file_parts(messages: list[ChatMessage], file_path: str) -> list[ToolPart]:
    """All tool parts whose input resolves to ``file_path`` under ROOT."""
    return [
        part
        for part in visible_parts(messages)
        if isinstance(part, ToolPart)
        and normalize_file_path(part.state.input.get("filePath"), ROOT) == file_path
    ]


# ── Fake host client ───────────────────────────────────────────────────────────


class FakeSessionAPI:
    """Records calls; behaviour is configured per test."""

    def __init__(self) -> None:
        self.diffs: dict[str, Any] = {}
        self.diff_error: Exception | None = None
        self.prompt_error: Exception | None = None
        self.diff_calls: list[dict[str, Any]] = []
        self.prompt_calls: list[dict[str, Any]] = []

    async def diff(self, **kwargs: Any) -> Any:
        self.diff_calls.append(kwargs)
        if self.diff_error is not None:
            raise self.diff_error
        session_id = kwargs.get("sessionID") or kwargs["path"]["id"]
        return self.diffs.get(session_id, [])

    async def prompt(self, **kwargs: Any) -> Any:
        self.prompt_calls.append(kwargs)
        if self.prompt_error is not None:
            raise self.prompt_error
        return {"ok": True}


class FakeClient:
    def __init__(self) -> None:
        self.session = FakeSessionAPI()


@pytest.fixture
def client():
    return FakeClient()
