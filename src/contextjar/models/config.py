"""Configuration models for Context Jar."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ProtectedFilesConfig(BaseModel):
    """Files that the cleanup engines must never touch."""

    extensions: list[str] = Field(
        default_factory=list,
        description="Extensions matched case-insensitively, with or without the leading dot.",
    )

    patterns: list[str] = Field(
        default_factory=list,
        description=(
            "Glob-like patterns supporting ``*`` and ``?``. Each is tested against "
            "both the full normalized path and its base name."
        ),
    )

    @field_validator("extensions")
    @classmethod
    def _lowercase_extensions(cls, value: list[str]) -> list[str]:
        return [ext.strip().lower() for ext in value if ext.strip()]


class ContextJarConfig(BaseModel):
    """
    Top-level configuration.

    Example::

        config = ContextJarConfig(
            allowed_models=["anthropic/claude-sonnet-4"],
            enforced=True,
            protected_files=ProtectedFilesConfig(extensions=[".md"], patterns=["README*"]),
        )
    """

    allowed_models: list[str] = Field(
        default_factory=list,
        description="``provider/model`` strings that cleanup runs for when ``enforced`` is on.",
    )

    enforced: bool = False
    """When False every model is allowed and ``allowed_models`` is ignored."""

    tool_overrides: dict[str, str] = Field(
        default_factory=dict,
        description="Per-tool model overrides, carried through for the host.",
    )

    protected_files: ProtectedFilesConfig = Field(default_factory=ProtectedFilesConfig)

    @classmethod
    def default(cls) -> ContextJarConfig:
        """Return a config instance with all defaults."""
        return cls()
