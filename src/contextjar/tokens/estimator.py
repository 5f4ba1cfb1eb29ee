"""Token estimation with a tokenizer and a length-based fallback."""

from __future__ import annotations

import math
from typing import Any

import structlog


class TokenEstimator:
    """
    Best-effort token counting for cleanup accounting.

    Priority order:
    1. tiktoken with the configured encoding (``cl100k_base`` by default)
    2. Character-based heuristic (``ceil(len / 4)``) when tiktoken is missing
       or raises for any reason

    ``estimate()`` never raises. The numbers feed user-facing summaries only,
    so a rough count is always preferable to failing a cleanup pass.
    """

    def __init__(self, encoding: str = "cl100k_base") -> None:
        self._encoding = encoding
        self._encoder: Any = None
        self._force_heuristic: bool = False
        """Set to True in tests to skip tiktoken import."""
        self._logger = structlog.get_logger("contextjar.tokens")

    def estimate(self, text: str) -> int:
        """
        Estimate the token count for a string.

        Args:
            text: The text to estimate.

        Returns:
            Estimated token count, 0 for empty text.
        """
        if not text:
            return 0
        if self._force_heuristic:
            return self._heuristic(text)
        try:
            return len(self._get_encoder().encode(text, disallowed_special=()))
        except ImportError as exc:
            self._logger.debug("tokenizer_unavailable", encoding=self._encoding, error=str(exc))
            # Stop retrying the import on every call.
            self._force_heuristic = True
        except Exception as exc:
            self._logger.debug("tokenizer_failed", encoding=self._encoding, error=str(exc))
        return self._heuristic(text)

    def _get_encoder(self) -> Any:
        if self._encoder is None:
            import tiktoken

            self._encoder = tiktoken.get_encoding(self._encoding)
        return self._encoder

    @staticmethod
    def _heuristic(text: str) -> int:
        """Roughly 4 characters per token for English-ish text."""
        return math.ceil(len(text) / 4)
