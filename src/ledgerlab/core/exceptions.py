"""
Custom exceptions for LedgerLab.

This module provides exceptions that carry provenance so callers can decide
how to continue when one of several sources fails to load.
"""

from __future__ import annotations


class SourceLoadError(Exception):
    """
    Raised when reading or parsing a single source fails.

    The loader never drops a failing source on its own: the error is either
    raised (only one source configured) or returned to the caller, who decides
    whether to proceed with a reduced source set.

    Attributes:
        source_id: The ID of the source that failed
        path: The path the source was read from (if any)
    """

    def __init__(self, source_id: str, message: str, path: str | None = None):
        self.source_id = source_id
        self.path = path
        super().__init__(self._fmt(message))

    def _fmt(self, msg: str) -> str:
        """Format the error message with the source context."""
        suffix = f" | path: {self.path}" if self.path else ""
        return f"[Source {self.source_id}] {msg}{suffix}"
