# Shared test fixtures utilities.
# Deterministic byte generators and throwaway repositories on disk so
# multiple test modules can reuse the same data without duplication.

from __future__ import annotations

import random
import shutil
import tempfile
import textwrap
from pathlib import Path
from typing import Dict, Union

FileBody = Union[str, bytes]


def rand_bytes(n: int, rate: float = 0.05, crlf: bool = False, seed: int = 42) -> bytes:
    """Generate deterministic ASCII-ish bytes with occasional newlines.

    - n: total length in bytes
    - rate: probability of inserting a newline at each step
    - crlf: if True, inserts CRLF; otherwise LF
    - seed: RNG seed for determinism
    """
    rnd = random.Random(seed)
    out = bytearray()
    for _ in range(n):
        if rnd.random() < rate:
            out += (b"\r\n" if crlf else b"\n")
        else:
            out.append(rnd.choice(b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ 0123456789"))
    return bytes(out)


def source(text: str) -> str:
    """Dedent a triple-quoted snippet and drop the leading newline."""
    return textwrap.dedent(text).lstrip("\n")


def write_tree(root: Path, files: Dict[str, FileBody]) -> Path:
    """Write ``files`` (relative posix path -> text or bytes) under ``root``."""
    for rel, body in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(body, bytes):
            path.write_bytes(body)
        else:
            path.write_bytes(body.encode("utf-8"))
    return root


class TempRepo:
    """Context manager yielding a temporary directory populated with ``files``."""

    def __init__(self, files: Dict[str, FileBody] | None = None) -> None:
        self.files = files or {}
        self.path: Path | None = None

    def __enter__(self) -> Path:
        self.path = Path(tempfile.mkdtemp(prefix="gittype-test-"))
        return write_tree(self.path, self.files)

    def __exit__(self, *exc) -> None:
        if self.path is not None:
            shutil.rmtree(self.path, ignore_errors=True)


GREETER_PY = source(
    '''
    class Greeter:
        def __init__(self, name):
            self.name = name
            self.greeting = "Hello"
            self.count = 0

        def greet(self):
            self.count += 1
            message = f"{self.greeting}, {self.name}!"
            return message
    '''
)

SHORT_FUNCTION_PY = source(
    '''
    def add(a, b):
        total = a + b
        return total
    '''
)

LICENSE_AND_IMPORT_PY = source(
    '''
    # Copyright (c) 2024 Example Corp.
    # Licensed under the MIT License.
    # See LICENSE for details.

    import os
    '''
)

COMPUTE_PY = source(
    '''
    def compute(values):
        total = 0
        for v in values:
            total += v
        return total
    '''
)


__all__ = [
    "COMPUTE_PY",
    "GREETER_PY",
    "LICENSE_AND_IMPORT_PY",
    "SHORT_FUNCTION_PY",
    "TempRepo",
    "rand_bytes",
    "source",
    "write_tree",
]
