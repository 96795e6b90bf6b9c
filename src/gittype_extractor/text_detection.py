from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Optional


PRINTABLE_BYTES = set(b"\t\n\r\f\b" + bytes(range(32, 127)))
SAMPLE_BYTES = 8192
NON_PRINTABLE_RATIO = 0.30


def looks_binary(sample: bytes) -> bool:
    """Byte heuristic: NUL bytes, or mostly non-printable data that is not UTF-8."""
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    try:
        sample.decode("utf-8")
        return False
    except UnicodeDecodeError as exc:
        # A multi-byte sequence cut by the sample boundary is still text.
        if exc.start >= len(sample) - 3 and exc.reason == "unexpected end of data":
            return False
    non_printable = sum(1 for b in sample if b not in PRINTABLE_BYTES)
    return non_printable / len(sample) > NON_PRINTABLE_RATIO


class BinaryDetector:
    """Classify files as binary/text using git attributes and byte heuristics."""

    def __init__(self, git_runner: Optional[Callable[[list[str]], str]] = None, base_dir: Path | str | None = None) -> None:
        self._git_runner = git_runner
        self._base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

    def is_binary(self, path: str, content: Optional[bytes] = None) -> bool:
        """Classify ``path``; ``content`` avoids a second read when already loaded."""
        attr = self._git_attr_binary(path)
        if attr is not None:
            return attr

        sample = content[:SAMPLE_BYTES] if content is not None else self._read_sample(path)
        if sample is None:
            return False
        return looks_binary(sample)

    def _git_attr_binary(self, path: str) -> Optional[bool]:
        if self._git_runner is None:
            return None
        try:
            out = self._git_runner(["check-attr", "binary", "--", path]).strip()
        except (OSError, RuntimeError, subprocess.CalledProcessError):
            return None
        if not out:
            return None
        # Format: "path: binary: value"
        value = out.rsplit(":", 1)[-1].strip().lower()
        if value == "set":
            return True
        if value in {"unset", "false"}:
            return False
        return None

    def _read_sample(self, path: str) -> Optional[bytes]:
        p = Path(path)
        if not p.is_absolute():
            p = self._base_dir / p
        try:
            with p.open("rb") as fh:
                return fh.read(SAMPLE_BYTES)
        except OSError:
            return None


__all__ = ["BinaryDetector", "looks_binary"]
