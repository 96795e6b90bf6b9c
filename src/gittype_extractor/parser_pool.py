"""Per-worker tree-sitter parser ownership.

``tree_sitter.Parser`` objects are stateful and must not be shared across
threads. Each worker creates its own ``ParserPool``; the pool remembers the
thread that created it and refuses to be used from any other.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Set, Tuple

from tree_sitter import Language as TSLanguage
from tree_sitter import Parser, Query, QueryError, Tree
from tree_sitter_language_pack import get_language

from gittype_extractor.errors import GrammarError
from gittype_extractor.languages import Language

logger = logging.getLogger(__name__)

_WARNED_LOCK = threading.Lock()
_WARNED: Set[Tuple[str, str]] = set()


@dataclass(frozen=True)
class CompiledQueries:
    """Queries of one language, compiled for one worker."""

    structural: Tuple[Query, ...]
    blocks: Tuple[Query, ...]


def load_grammar(language: Language) -> TSLanguage:
    """Return the tree-sitter grammar for ``language``.

    Raises:
        GrammarError: when the grammar is not available.
    """
    try:
        return get_language(language.grammar)  # type: ignore[arg-type]
    except Exception as exc:
        raise GrammarError(language.name, f"grammar {language.grammar!r} unavailable ({exc})") from exc


def _warn_once(language: Language, pattern: str, exc: Exception) -> None:
    key = (language.name, pattern)
    with _WARNED_LOCK:
        if key in _WARNED:
            return
        _WARNED.add(key)
    logger.warning("Skipping invalid %s pattern %r: %s", language.name, pattern, exc)


def _compile_each(grammar: TSLanguage, language: Language, patterns: Iterable[str]) -> List[Query]:
    compiled: List[Query] = []
    for pattern in patterns:
        src = pattern.strip()
        if not src:
            continue
        try:
            compiled.append(Query(grammar, src))
        except QueryError as exc:
            _warn_once(language, src, exc)
    return compiled


def compile_queries(language: Language, grammar: TSLanguage | None = None) -> CompiledQueries:
    """Compile every pattern of ``language`` on its own.

    Invalid patterns are logged once and skipped.

    Raises:
        GrammarError: when no structural pattern compiles.
    """
    grammar = grammar if grammar is not None else load_grammar(language)
    structural = _compile_each(grammar, language, language.patterns)
    if not structural:
        raise GrammarError(language.name, "no structural query pattern compiled")
    blocks = _compile_each(grammar, language, language.block_patterns)
    return CompiledQueries(structural=tuple(structural), blocks=tuple(blocks))


class ParserPool:
    """One lazily created parser (and query set) per language, owned by one thread."""

    def __init__(self) -> None:
        self._owner = threading.get_ident()
        self._grammars: Dict[str, TSLanguage] = {}
        self._parsers: Dict[str, Parser] = {}
        self._queries: Dict[str, CompiledQueries] = {}

    def _check_owner(self) -> None:
        if threading.get_ident() != self._owner:
            raise RuntimeError("ParserPool used from a thread that does not own it")

    def _grammar(self, language: Language) -> TSLanguage:
        grammar = self._grammars.get(language.name)
        if grammar is None:
            grammar = load_grammar(language)
            self._grammars[language.name] = grammar
        return grammar

    def acquire(self, language: Language) -> Parser:
        self._check_owner()
        parser = self._parsers.get(language.name)
        if parser is None:
            try:
                parser = Parser(self._grammar(language))
            except ValueError as exc:
                raise GrammarError(language.name, str(exc)) from exc
            self._parsers[language.name] = parser
            logger.debug("Created %s parser for thread %s", language.name, self._owner)
        return parser

    def parse(self, language: Language, content: bytes) -> Tree:
        parser = self.acquire(language)
        parser.reset()
        return parser.parse(content)

    def queries(self, language: Language) -> CompiledQueries:
        self._check_owner()
        compiled = self._queries.get(language.name)
        if compiled is None:
            compiled = compile_queries(language, self._grammar(language))
            self._queries[language.name] = compiled
        return compiled

    def preload(self, languages: Iterable[Language]) -> None:
        """Load grammars and compile queries now, raising ``GrammarError`` early."""
        for language in languages:
            self.acquire(language)
            self.queries(language)


__all__ = ["CompiledQueries", "ParserPool", "compile_queries", "load_grammar"]
