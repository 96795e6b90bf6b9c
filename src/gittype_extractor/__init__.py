"""Extract typeable code challenges from source repositories with tree-sitter."""

from gittype_extractor.errors import ExtractionError, GrammarError
from gittype_extractor.languages import Language, register_language
from gittype_extractor.models import (
    Challenge,
    ChunkType,
    CodeChunk,
    CommentRange,
    ExtractionOptions,
    ExtractionReport,
    SourceFile,
    Span,
)

__all__ = [
    "Challenge",
    "ChunkType",
    "CodeChunk",
    "CommentRange",
    "ExtractionError",
    "ExtractionOptions",
    "ExtractionReport",
    "GrammarError",
    "Language",
    "SourceFile",
    "Span",
    "extract_challenges",
    "content_fingerprint",
    "register_language",
]


def __getattr__(name):
    # pipeline pulls in tree-sitter; loaded on first use.
    if name in ("extract_challenges", "content_fingerprint"):
        from gittype_extractor import pipeline

        return getattr(pipeline, name)
    raise AttributeError(f"module 'gittype_extractor' has no attribute {name!r}")
