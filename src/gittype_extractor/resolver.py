"""Validate candidate chunks and resolve overlaps into a stable ordering."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from gittype_extractor import languages as registry
from gittype_extractor.languages import DEFAULT_MIN_LINES, Language
from gittype_extractor.models import CodeChunk, CommentRange, Span

logger = logging.getLogger(__name__)

MIN_CHARS = 10


def _rank(language: Optional[Language], chunk: CodeChunk) -> int:
    return language.rank(chunk.chunk_type) if language is not None else 0


def _only_whitespace_outside(source: bytes, span: Span, ranges: Sequence[Span]) -> bool:
    """True when every byte of ``span`` outside ``ranges`` is whitespace."""
    pos = span.start
    for r in ranges:
        if r.end <= pos or r.start >= span.end:
            continue
        if source[pos:max(pos, r.start)].strip():
            return False
        pos = max(pos, r.end)
    return not source[pos:span.end].strip()


def drop_reason(
    chunk: CodeChunk,
    source: bytes,
    comments: Sequence[Span],
    masked: Sequence[Span],
    language: Optional[Language] = None,
) -> Optional[str]:
    """Return why ``chunk`` is rejected, or ``None`` when it is kept.

    ``masked`` holds comment and import spans together, sorted by start.
    """
    min_lines = language.min_lines if language is not None else DEFAULT_MIN_LINES
    if chunk.span.line_count < min_lines:
        return "too_few_lines"
    text = source[chunk.span.start:chunk.span.end].decode("utf-8", errors="replace")
    if len(text.strip()) < MIN_CHARS:
        return "too_short"
    if _only_whitespace_outside(source, chunk.span, comments):
        return "comment_only"
    if _only_whitespace_outside(source, chunk.span, masked):
        return "import_only"
    return None


def resolve(
    candidates: Iterable[CodeChunk],
    *,
    source: bytes,
    comments: Iterable[CommentRange] = (),
    imports: Iterable[Span] = (),
) -> List[CodeChunk]:
    """Filter candidates of one file and return them in final order.

    Identical spans keep only the highest-priority chunk type; strictly nested
    chunks are all kept. Order is path, start ascending, end descending, then
    priority.
    """
    comment_spans = sorted((c.span for c in comments), key=lambda s: (s.start, s.end))
    masked = sorted([*comment_spans, *imports], key=lambda s: (s.start, s.end))

    best: Dict[Tuple[str, int, int], CodeChunk] = {}
    for chunk in candidates:
        language = registry.by_name(chunk.language)
        reason = drop_reason(chunk, source, comment_spans, masked, language)
        if reason is not None:
            logger.debug("Dropping %s %s:%d-%d (%s)", chunk.chunk_type.value, chunk.path, chunk.span.start_line, chunk.span.end_line, reason)
            continue
        key = (chunk.path, chunk.span.start, chunk.span.end)
        current = best.get(key)
        if current is None or _rank(language, chunk) < _rank(language, current):
            best[key] = chunk

    return sorted(
        best.values(),
        key=lambda c: (c.path, c.span.start, -c.span.end, _rank(registry.by_name(c.language), c)),
    )


__all__ = ["MIN_CHARS", "drop_reason", "resolve"]
