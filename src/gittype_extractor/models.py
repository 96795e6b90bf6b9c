from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, Optional, Tuple

DEFAULT_MAX_FILE_SIZE_BYTES = 1024 * 1024

# Blank lines kept per run when empty lines are not preserved.
MAX_BLANK_RUN = 0


class ChunkType(str, Enum):
    FUNCTION = "function"
    METHOD = "method"
    CLASS = "class"
    STRUCT = "struct"
    ENUM = "enum"
    TRAIT = "trait"
    INTERFACE = "interface"
    MODULE = "module"
    NAMESPACE = "namespace"
    TYPE_ALIAS = "type_alias"
    VARIABLE = "variable"
    CONST = "const"
    COMPONENT = "component"
    FILE = "file"
    CODE_BLOCK = "code_block"
    LOOP = "loop"
    CONDITIONAL = "conditional"
    ERROR_HANDLING = "error_handling"
    SPECIAL_BLOCK = "special_block"
    COMPREHENSION = "comprehension"
    FUNCTION_CALL = "function_call"
    LAMBDA = "lambda"


@dataclass(frozen=True)
class Span:
    """Byte range ``[start, end)`` with the 1-based lines it touches."""

    start: int
    end: int
    start_line: int
    end_line: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"invalid span [{self.start}, {self.end})")
        if self.start_line < 1 or self.end_line < self.start_line:
            raise ValueError(f"invalid line range {self.start_line}-{self.end_line}")

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def contains(self, other: "Span") -> bool:
        return self.start <= other.start and other.end <= self.end

    def strictly_contains(self, other: "Span") -> bool:
        return self.contains(other) and (self.start, self.end) != (other.start, other.end)


@dataclass(frozen=True)
class SourceFile:
    path: str
    language: str
    content: bytes


@dataclass(frozen=True)
class CodeChunk:
    span: Span
    chunk_type: ChunkType
    path: str
    language: str
    name: Optional[str] = None


@dataclass(frozen=True)
class CommentRange:
    span: Span


@dataclass(frozen=True)
class Challenge:
    id: str
    content: str
    chunk_type: ChunkType
    language: str
    file_path: str
    start_line: int
    end_line: int
    start_byte: int
    end_byte: int
    name: Optional[str] = None
    # Character offsets local to ``content``.
    comment_ranges: Tuple[Tuple[int, int], ...] = ()

    @staticmethod
    def make_id(path: str, start: int, end: int, chunk_type: ChunkType) -> str:
        key = f"{path}::{start}::{end}::{chunk_type.value}"
        return hashlib.sha256(key.encode()).hexdigest()

    def display_title(self) -> str:
        """Return ``parent/file.ext:start-end`` for compact display."""
        p = PurePosixPath(self.file_path)
        short = f"{p.parent.name}/{p.name}" if p.parent.name else p.name
        return f"{short}:{self.start_line}-{self.end_line}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "chunk_type": self.chunk_type.value,
            "language": self.language,
            "file_path": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "start_byte": self.start_byte,
            "end_byte": self.end_byte,
            "name": self.name,
            "comment_ranges": [list(r) for r in self.comment_ranges],
        }


@dataclass(frozen=True)
class ExtractionOptions:
    """Read-only options shared by every worker of one run.

    ``languages`` holds canonical language names; ``None`` means every
    registered language.
    """

    languages: Optional[frozenset] = None
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    preserve_empty_lines: bool = True
    max_blank_run: int = MAX_BLANK_RUN
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES
    include_blocks: bool = False
    include_file_chunks: bool = False
    use_default_excludes: bool = True
    workers: Optional[int] = None

    @classmethod
    def create(
        cls,
        languages: Optional[Iterable[str]] = None,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
        **kwargs: Any,
    ) -> "ExtractionOptions":
        """Build options, resolving language names and aliases.

        Raises:
            ValueError: if any requested language is not registered.
        """
        from gittype_extractor import languages as registry

        names: Optional[frozenset] = None
        if languages is not None:
            requested = [str(x) for x in languages]
            unsupported = registry.validate_languages(requested)
            if unsupported:
                raise ValueError(f"Unsupported languages: {', '.join(unsupported)}")
            names = frozenset(registry.by_name(x).name for x in requested)  # type: ignore[union-attr]
        return cls(
            languages=names,
            include=tuple(include),
            exclude=tuple(exclude),
            **kwargs,
        )

    def wants(self, language_name: str) -> bool:
        return self.languages is None or language_name in self.languages


@dataclass
class ExtractionReport:
    """Counters for one run; skipped files are summarized, never raised."""

    files_scanned: int = 0
    files_processed: int = 0
    unsupported_files: int = 0
    excluded_files: int = 0
    candidate_chunks: int = 0
    dropped_chunks: int = 0
    challenges: int = 0
    cancelled: bool = False
    skipped: Dict[str, int] = field(default_factory=dict)

    def skip(self, reason: str) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files_scanned": self.files_scanned,
            "files_processed": self.files_processed,
            "unsupported_files": self.unsupported_files,
            "excluded_files": self.excluded_files,
            "candidate_chunks": self.candidate_chunks,
            "dropped_chunks": self.dropped_chunks,
            "challenges": self.challenges,
            "cancelled": self.cancelled,
            "skipped": dict(sorted(self.skipped.items())),
        }


__all__ = [
    "ChunkType",
    "Span",
    "SourceFile",
    "CodeChunk",
    "CommentRange",
    "Challenge",
    "ExtractionOptions",
    "ExtractionReport",
    "DEFAULT_MAX_FILE_SIZE_BYTES",
    "MAX_BLANK_RUN",
]
