import bisect
from typing import List, Tuple

from gittype_extractor.models import Span


class LineMapper:
    """
    Maps byte offsets of one file to lines using precomputed newline positions.
    O(N) to build, O(log N) per lookup.
    """

    def __init__(self, contents: bytes):
        self.contents_len = len(contents)
        self.newlines: List[int] = []
        pos = contents.find(b"\n")
        while pos != -1:
            self.newlines.append(pos)
            pos = contents.find(b"\n", pos + 1)

    def _check(self, offset: int) -> None:
        if offset < 0 or offset > self.contents_len:
            raise ValueError(f"Offset {offset} out of bounds (0-{self.contents_len})")

    def byte_to_point(self, offset: int) -> Tuple[int, int]:
        """Return the 0-indexed ``(row, column)`` of ``offset``."""
        self._check(offset)
        idx = bisect.bisect_left(self.newlines, offset)
        if idx == 0:
            return (0, offset)
        return (idx, offset - self.newlines[idx - 1] - 1)

    def line_of(self, offset: int) -> int:
        """1-based line holding ``offset``; a newline byte belongs to its own line."""
        return self.byte_to_point(offset)[0] + 1

    def span(self, start: int, end: int) -> Span:
        """Build a ``Span``; the end line is the line of the last byte inside it."""
        self._check(end)
        last = end - 1 if end > start else start
        return Span(start, end, self.line_of(start), self.line_of(last))


__all__ = ["LineMapper"]
