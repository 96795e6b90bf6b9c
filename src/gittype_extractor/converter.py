"""Convert resolved chunks into ``Challenge`` records."""
from __future__ import annotations

import re
from typing import Iterable, List, Sequence, Tuple

from gittype_extractor.models import MAX_BLANK_RUN, Challenge, CodeChunk, CommentRange, ExtractionOptions

_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+\Z")


def _line_ending(line: str) -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    if line.endswith("\n"):
        return "\n"
    return ""


def collapse_blank_lines(content: str, max_run: int = MAX_BLANK_RUN) -> Tuple[str, List[int]]:
    """Shrink every run of whitespace-only lines to at most ``max_run`` empty lines.

    With the default of 0 blank lines are removed. Runs at the edges are
    treated like interior ones; non-blank lines are never modified.

    Returns the new text and a map from every old character offset
    (``0..len(content)`` inclusive) to its offset in the new text.
    """
    lines = _LINE_RE.findall(content)
    blank = [not line.strip() for line in lines]

    mapping = [0] * (len(content) + 1)
    parts: List[str] = []
    old_pos = new_pos = 0
    i = 0
    while i < len(lines):
        if blank[i]:
            j = i
            while j < len(lines) and blank[j]:
                j += 1
            run = lines[i:j]
            emitted = "".join(_line_ending(line) for line in run[:max_run])
            run_len = sum(len(line) for line in run)
            for k in range(run_len):
                mapping[old_pos + k] = new_pos
            parts.append(emitted)
            old_pos += run_len
            new_pos += len(emitted)
            i = j
            continue
        line = lines[i]
        for k in range(len(line)):
            mapping[old_pos + k] = new_pos + k
        parts.append(line)
        old_pos += len(line)
        new_pos += len(line)
        i += 1
    mapping[len(content)] = new_pos
    return "".join(parts), mapping


def _local_comment_ranges(chunk: CodeChunk, comments: Iterable[CommentRange], raw: bytes) -> List[Tuple[int, int]]:
    """Comment ranges fully inside the chunk, as character offsets into its text."""
    ranges: List[Tuple[int, int]] = []
    for comment in comments:
        if not chunk.span.contains(comment.span):
            continue
        s = comment.span.start - chunk.span.start
        e = comment.span.end - chunk.span.start
        start_char = len(raw[:s].decode("utf-8"))
        end_char = start_char + len(raw[s:e].decode("utf-8"))
        ranges.append((start_char, end_char))
    ranges.sort()
    return ranges


def convert(
    chunk: CodeChunk,
    comments: Sequence[CommentRange],
    options: ExtractionOptions,
    source: bytes,
) -> Challenge:
    """Slice the chunk out of ``source`` byte-exactly and build its ``Challenge``.

    Raises:
        UnicodeDecodeError: when the slice is not valid UTF-8.
    """
    raw = source[chunk.span.start:chunk.span.end]
    content = raw.decode("utf-8")
    ranges = _local_comment_ranges(chunk, comments, raw)
    if not options.preserve_empty_lines:
        content, mapping = collapse_blank_lines(content, options.max_blank_run)
        ranges = [(mapping[s], mapping[e]) for s, e in ranges]
    return Challenge(
        id=Challenge.make_id(chunk.path, chunk.span.start, chunk.span.end, chunk.chunk_type),
        content=content,
        chunk_type=chunk.chunk_type,
        language=chunk.language,
        file_path=chunk.path,
        start_line=chunk.span.start_line,
        end_line=chunk.span.end_line,
        start_byte=chunk.span.start,
        end_byte=chunk.span.end,
        name=chunk.name,
        comment_ranges=tuple(ranges),
    )


__all__ = ["MAX_BLANK_RUN", "collapse_blank_lines", "convert"]
