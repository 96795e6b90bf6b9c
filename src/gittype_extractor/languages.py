"""Language registry: one data-driven ``Language`` value per grammar.

Built-in entries are loaded from ``languages.json`` at import time. The table
is read-only afterwards except through :func:`register_language`, which only
adds or replaces a single entry.
"""
from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from gittype_extractor.models import ChunkType

DEFAULT_MIN_LINES = 4


@dataclass(frozen=True)
class Language:
    name: str
    display_name: str
    grammar: str
    extensions: Tuple[str, ...]
    aliases: Tuple[str, ...] = ()
    patterns: Tuple[str, ...] = ()
    block_patterns: Tuple[str, ...] = ()
    captures: Mapping[str, ChunkType] = field(default_factory=dict, hash=False)
    priority: Tuple[ChunkType, ...] = ()
    comment_kinds: frozenset = frozenset()
    import_kinds: frozenset = frozenset()
    min_lines: int = DEFAULT_MIN_LINES
    color: str = "#cccccc"

    def is_comment(self, kind: str) -> bool:
        return kind in self.comment_kinds

    def is_import(self, kind: str) -> bool:
        return kind in self.import_kinds

    def chunk_type_for(self, capture_name: str) -> Optional[ChunkType]:
        return self.captures.get(capture_name)

    def rank(self, chunk_type: ChunkType) -> int:
        """Lower rank wins when two chunk types claim the same span."""
        try:
            return self.priority.index(chunk_type)
        except ValueError:
            return len(self.priority)


def _language_from_dict(data: Mapping[str, Any], default_priority: Iterable[str]) -> Language:
    captures = {str(k): ChunkType(v) for k, v in (data.get("captures") or {}).items()}
    priority = tuple(ChunkType(p) for p in (data.get("priority") or default_priority))
    return Language(
        name=str(data["name"]),
        display_name=str(data.get("display_name") or data["name"]),
        grammar=str(data.get("grammar") or data["name"]),
        extensions=tuple(_normalize(e) for e in data.get("extensions", [])),
        aliases=tuple(_normalize(a) for a in data.get("aliases", [])),
        patterns=tuple(data.get("patterns", [])),
        block_patterns=tuple(data.get("block_patterns", [])),
        captures=captures,
        priority=priority,
        comment_kinds=frozenset(data.get("comment_kinds", [])),
        import_kinds=frozenset(data.get("import_kinds", [])),
        min_lines=int(data.get("min_lines", DEFAULT_MIN_LINES)),
        color=str(data.get("color") or "#cccccc"),
    )


def _load_builtin_languages() -> List[Language]:
    cfg_path = Path(__file__).with_name("languages.json")
    with cfg_path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    default_priority = data.get("default_priority", [t.value for t in ChunkType])
    return [_language_from_dict(item, default_priority) for item in data.get("languages", [])]


_LOCK = threading.Lock()
_REGISTRY: Dict[str, Language] = {}
_BY_EXTENSION: Dict[str, Language] = {}
_BY_ALIAS: Dict[str, Language] = {}


def _normalize(key: str) -> str:
    return (key or "").strip().lower().lstrip(".")


def _rebuild_indexes() -> None:
    _BY_EXTENSION.clear()
    _BY_ALIAS.clear()
    for lang in _REGISTRY.values():
        for ext in lang.extensions:
            _BY_EXTENSION[ext] = lang
        for alias in (lang.name, *lang.aliases):
            _BY_ALIAS[_normalize(alias)] = lang


def register_language(language: Language) -> None:
    """Add ``language``, or replace the entry that has the same name."""
    key = _normalize(language.name)
    if not key:
        raise ValueError("Language name must be non-empty")
    if not language.extensions:
        raise ValueError(f"Language {language.name!r} declares no extensions")
    with _LOCK:
        _REGISTRY[key] = language
        _rebuild_indexes()


def unregister_language(name: str) -> None:
    with _LOCK:
        if _REGISTRY.pop(_normalize(name), None) is not None:
            _rebuild_indexes()


def resolve(extension_or_alias: str) -> Optional[Language]:
    key = _normalize(extension_or_alias)
    if not key:
        return None
    return _BY_EXTENSION.get(key) or _BY_ALIAS.get(key)


def for_path(path: str) -> Optional[Language]:
    """Resolve a language from a file path's extension only."""
    suffix = Path(path).suffix
    if not suffix:
        return None
    return _BY_EXTENSION.get(_normalize(suffix))


def by_name(name: str) -> Optional[Language]:
    """Look up by canonical name or alias."""
    return _BY_ALIAS.get(_normalize(name))


def all() -> Tuple[Language, ...]:  # noqa: A001 - registry accessor
    return tuple(_REGISTRY.values())


def supported_names() -> List[str]:
    return [lang.name for lang in _REGISTRY.values()]


def validate_languages(names: Iterable[str]) -> List[str]:
    """Return the entries of ``names`` that resolve to no registered language."""
    return [name for name in names if by_name(name) is None]


for _lang in _load_builtin_languages():
    _REGISTRY[_normalize(_lang.name)] = _lang
_rebuild_indexes()
del _lang


__all__ = [
    "DEFAULT_MIN_LINES",
    "Language",
    "register_language",
    "unregister_language",
    "resolve",
    "for_path",
    "by_name",
    "all",
    "supported_names",
    "validate_languages",
]
