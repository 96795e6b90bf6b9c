"""Error taxonomy for the extraction pipeline."""
from __future__ import annotations


class ExtractionError(RuntimeError):
    """Base error for a run that cannot continue."""


class GrammarError(ExtractionError):
    """A grammar or its queries could not be initialized.

    The whole run aborts before any file is parsed.
    """

    def __init__(self, language: str, reason: str) -> None:
        super().__init__(f"Failed to initialize grammar for {language}: {reason}")
        self.language = language
        self.reason = reason


__all__ = ["ExtractionError", "GrammarError"]
