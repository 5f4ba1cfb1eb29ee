"""Model allow-list evaluation."""

from __future__ import annotations

from contextjar.models.config import ContextJarConfig


def is_model_allowed(model: str, config: ContextJarConfig) -> bool:
    if not config.enforced:
        return True
    return model in config.allowed_models


def should_skip_context_cleanup(model: str | None, config: ContextJarConfig | None) -> bool:
    """Skip only when enforcement is on and a known active model is not allowed."""
    if config is None or not model:
        return False
    return not is_model_allowed(model, config)
