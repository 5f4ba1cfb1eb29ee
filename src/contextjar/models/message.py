"""Chat message, part and tool-state models for the host transcript."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag

# ── Shared base ────────────────────────────────────────────────────────────────


class _HostModel(BaseModel):
    """Base for host-owned objects. Unknown fields are preserved verbatim."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, protected_namespaces=())


class ModelRef(_HostModel):
    """Provider/model pair attached to a user message."""

    provider_id: str = Field(alias="providerID")
    model_id: str = Field(alias="modelID")

    @property
    def key(self) -> str:
        """Return the ``provider/model`` string used by the allow-list."""
        return f"{self.provider_id}/{self.model_id}"


# ── Tool states ────────────────────────────────────────────────────────────────


class ToolTime(_HostModel):
    """
    Start/end timestamps of a tool call.

    The host may add ``compacted`` (Unix ms) when it tombstones the output.
    It is kept as an extra field so that removing it drops the key from dumps.
    """

    start: int
    end: int

    def without_compacted(self) -> ToolTime:
        """Return a copy with the ``compacted`` marker removed entirely."""
        data = self.model_dump(by_alias=True)
        data.pop("compacted", None)
        return ToolTime.model_validate(data)


class ToolStatePending(_HostModel):
    status: Literal["pending"] = "pending"
    input: dict[str, Any] = Field(default_factory=dict)
    raw: str = ""


class RunningTime(_HostModel):
    start: int


class ToolStateRunning(_HostModel):
    status: Literal["running"] = "running"
    input: dict[str, Any] = Field(default_factory=dict)
    title: str | None = None
    metadata: dict[str, Any] | None = None
    time: RunningTime


class ToolStateCompleted(_HostModel):
    """The only state the cleanup engines ever look inside."""

    status: Literal["completed"] = "completed"
    input: dict[str, Any] = Field(default_factory=dict)
    output: str = ""
    title: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    time: ToolTime
    attachments: list[Any] | None = None


class ToolStateError(_HostModel):
    status: Literal["error"] = "error"
    input: dict[str, Any] = Field(default_factory=dict)
    error: str
    metadata: dict[str, Any] | None = None
    time: ToolTime


ToolState = Annotated[
    ToolStatePending | ToolStateRunning | ToolStateCompleted | ToolStateError,
    Field(discriminator="status"),
]


# ── Parts ──────────────────────────────────────────────────────────────────────


class ToolPart(_HostModel):
    """A tool invocation and its lifecycle state."""

    type: Literal["tool"] = "tool"
    id: str | None = None
    call_id: str | None = Field(default=None, alias="callID")
    tool: str
    state: ToolState
    metadata: dict[str, Any] | None = None


class TextPart(_HostModel):
    """A plain text segment of a message."""

    type: Literal["text"] = "text"
    text: str


class OtherPart(_HostModel):
    """Any part kind the cleanup engines do not interpret (reasoning, patches, ...)."""

    type: str


def _part_kind(value: Any) -> str:
    part_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if part_type in ("tool", "text"):
        return part_type
    return "other"


ChatMessagePart = Annotated[
    Annotated[ToolPart, Tag("tool")]
    | Annotated[TextPart, Tag("text")]
    | Annotated[OtherPart, Tag("other")],
    Discriminator(_part_kind),
]


# ── Messages ───────────────────────────────────────────────────────────────────


class MessagePath(_HostModel):
    root: str | None = None
    cwd: str | None = None


class MessageInfo(_HostModel):
    """Host metadata for a message. Only the fields used for routing are typed."""

    role: str
    session_id: str | None = Field(default=None, alias="sessionID")
    agent: str | None = None
    model: ModelRef | None = None
    path: MessagePath | None = None


class ChatMessage(_HostModel):
    """
    A single transcript message.

    The cleanup engines replace ``parts`` wholesale at the end of a pass and
    never reorder messages.
    """

    info: MessageInfo
    parts: list[ChatMessagePart] = Field(default_factory=list)

    @property
    def role(self) -> str:
        return self.info.role

    @property
    def session_id(self) -> str | None:
        return self.info.session_id
