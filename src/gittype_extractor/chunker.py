"""Structural extraction: turn query captures into candidate chunks.

All offsets are computed on the raw bytes of the file. Text is decoded only
after slicing.
"""
from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from tree_sitter import Node, QueryCursor, Tree

from gittype_extractor.languages import Language
from gittype_extractor.line_mapper import LineMapper
from gittype_extractor.models import ChunkType, CodeChunk, Span
from gittype_extractor.parser_pool import CompiledQueries, compile_queries

logger = logging.getLogger(__name__)

NAME_CAPTURE = "name"

BLOCK_MIN_LINES = 2
BLOCK_MIN_CHARS = 30
BLOCK_MAX_CHARS = 2000

_HEAD_NAME_RE = re.compile(r"([A-Za-z_][A-Za-z0-9_.$<>]*)\s*\(")


def extend_to_line_start(source: bytes, start: int) -> int:
    """Move ``start`` back to its line start when only spaces/tabs precede it."""
    i = start
    while i > 0 and source[i - 1] in (0x20, 0x09):
        i -= 1
    if i == 0 or source[i - 1] == 0x0A:
        return i
    return start


def _node_text(source: bytes, node: Node) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def _node_identifier_text(source: bytes, node: Node) -> Optional[str]:
    """
    Extract a declaration identifier: field ``name``, then the first child named
    '*identifier' or 'name', then a regex on the head slice.
    """
    named = node.child_by_field_name("name")
    if named is not None:
        return _node_text(source, named)
    for ch in node.named_children:
        if "identifier" in ch.type or ch.type == "name":
            return _node_text(source, ch)
    head = source[node.start_byte:min(node.end_byte, node.start_byte + 512)].decode("utf-8", errors="replace")
    m = _HEAD_NAME_RE.search(head)
    return m.group(1) if m else None


def _collapse(language: Language, found: Dict[Tuple[int, int], CodeChunk], chunk: CodeChunk) -> None:
    """Keep one chunk per span: the highest-priority type, with a name if any match had one."""
    key = (chunk.span.start, chunk.span.end)
    current = found.get(key)
    if current is None:
        found[key] = chunk
        return
    best, other = (chunk, current) if language.rank(chunk.chunk_type) < language.rank(current.chunk_type) else (current, chunk)
    if best.name is None and other.name is not None:
        best = CodeChunk(span=best.span, chunk_type=best.chunk_type, path=best.path, language=best.language, name=other.name)
    found[key] = best


def _ordered(language: Language, chunks: Iterable[CodeChunk]) -> List[CodeChunk]:
    return sorted(chunks, key=lambda c: (c.span.start, -c.span.end, language.rank(c.chunk_type)))


def extract_chunks(
    tree: Tree,
    source: bytes,
    language: Language,
    path: str,
    queries: Optional[CompiledQueries] = None,
) -> List[CodeChunk]:
    """Run the structural patterns of ``language`` and return candidate chunks.

    Every capture whose name maps to a chunk type yields one candidate. The
    span starts at the node, or at its line start when only indentation
    precedes it, and ends at the node end. Nodes holding a syntax error are
    skipped. Identical spans collapse to the highest-priority type. Output is
    ordered by start, outer chunks first.
    """
    queries = queries if queries is not None else compile_queries(language)
    mapper = LineMapper(source)
    found: Dict[Tuple[int, int], CodeChunk] = {}
    broken = 0
    for query in queries.structural:
        for _pattern, captures in QueryCursor(query).matches(tree.root_node):
            name_nodes = captures.get(NAME_CAPTURE) or []
            for capture_name, nodes in captures.items():
                chunk_type = language.chunk_type_for(capture_name)
                if chunk_type is None:
                    continue
                for node in nodes:
                    if node.has_error:
                        broken += 1
                        continue
                    name = _node_text(source, name_nodes[0]) if name_nodes else _node_identifier_text(source, node)
                    start = extend_to_line_start(source, node.start_byte)
                    chunk = CodeChunk(
                        span=mapper.span(start, node.end_byte),
                        chunk_type=chunk_type,
                        path=path,
                        language=language.name,
                        name=name,
                    )
                    _collapse(language, found, chunk)
    chunks = _ordered(language, found.values())
    if broken:
        logger.debug("%s: skipped %d captures with syntax errors", path, broken)
    logger.debug("%s: %d structural candidates", path, len(chunks))
    return chunks


def extract_blocks(
    tree: Tree,
    source: bytes,
    language: Language,
    path: str,
    parents: Sequence[CodeChunk],
    queries: Optional[CompiledQueries] = None,
) -> List[CodeChunk]:
    """Secondary pass: control-flow blocks inside structural chunks.

    Block queries run on the node covering each parent span of the already
    parsed tree. Kept blocks span at least ``BLOCK_MIN_LINES`` lines and
    ``BLOCK_MIN_CHARS``..``BLOCK_MAX_CHARS`` characters, and never duplicate a
    parent span.
    """
    queries = queries if queries is not None else compile_queries(language)
    if not queries.blocks or not parents:
        return []
    mapper = LineMapper(source)
    taken = {(p.span.start, p.span.end) for p in parents}
    found: Dict[Tuple[int, int], CodeChunk] = {}
    for parent in parents:
        scope = tree.root_node.descendant_for_byte_range(parent.span.start, parent.span.end)
        if scope is None:
            continue
        for query in queries.blocks:
            for capture_name, nodes in QueryCursor(query).captures(scope).items():
                chunk_type = language.chunk_type_for(capture_name)
                if chunk_type is None:
                    continue
                for node in nodes:
                    if node.has_error:
                        continue
                    start = extend_to_line_start(source, node.start_byte)
                    span = mapper.span(start, node.end_byte)
                    if (span.start, span.end) in taken or not parent.span.contains(span):
                        continue
                    if span.line_count < BLOCK_MIN_LINES:
                        continue
                    size = len(source[span.start:span.end].decode("utf-8", errors="replace"))
                    if not BLOCK_MIN_CHARS <= size <= BLOCK_MAX_CHARS:
                        continue
                    _collapse(language, found, CodeChunk(span, chunk_type, path, language.name))
    return _ordered(language, found.values())


def file_chunk(source: bytes, language: Language, path: str) -> CodeChunk:
    """The whole file as one chunk."""
    mapper = LineMapper(source)
    return CodeChunk(
        span=mapper.span(0, len(source)),
        chunk_type=ChunkType.FILE,
        path=path,
        language=language.name,
        name=PurePosixPath(path).name,
    )


__all__ = [
    "BLOCK_MAX_CHARS",
    "BLOCK_MIN_CHARS",
    "BLOCK_MIN_LINES",
    "extend_to_line_start",
    "extract_blocks",
    "extract_chunks",
    "file_chunk",
]
