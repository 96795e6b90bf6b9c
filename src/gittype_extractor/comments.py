"""Collect comment and import/declaration spans from a parsed tree."""
from __future__ import annotations

from typing import Callable, List

from tree_sitter import Node, Tree

from gittype_extractor.languages import Language
from gittype_extractor.models import CommentRange, Span


def _collect(tree: Tree, keep: Callable[[str], bool]) -> List[Span]:
    """Depth-first walk returning spans of nodes whose kind satisfies ``keep``.

    A kept node is not descended into, so doc-comment markers inside a comment
    do not produce extra spans.
    """
    spans: List[Span] = []
    stack: List[Node] = [tree.root_node]
    while stack:
        node = stack.pop()
        if keep(node.type) and node.end_byte > node.start_byte:
            spans.append(
                Span(
                    node.start_byte,
                    node.end_byte,
                    node.start_point[0] + 1,
                    node.end_point[0] + 1,
                )
            )
            continue
        stack.extend(reversed(node.children))
    spans.sort(key=lambda s: (s.start, s.end))
    return spans


def extract_comments(tree: Tree, language: Language) -> List[CommentRange]:
    if not language.comment_kinds:
        return []
    return [CommentRange(span) for span in _collect(tree, language.is_comment)]


def extract_import_ranges(tree: Tree, language: Language) -> List[Span]:
    """Spans of import, package and include declarations."""
    if not language.import_kinds:
        return []
    return _collect(tree, language.is_import)


__all__ = ["extract_comments", "extract_import_ranges"]
