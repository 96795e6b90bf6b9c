"""Repository scanner: enumerate supported source files under a root.

Candidates come from ``git ls-files`` when the root is a git work tree (so
``.gitignore`` is honored) and from a symlink-safe ``os.walk`` otherwise.
Include/exclude globs use gitignore syntax and are compiled once per scanner
with ``pathspec``; ``.gittypeignore`` is read as a gitignore file.
"""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Tuple

from pathspec import GitIgnoreSpec, PathSpec

from gittype_extractor import languages as registry
from gittype_extractor.errors import ExtractionError
from gittype_extractor.languages import Language
from gittype_extractor.models import ExtractionOptions

logger = logging.getLogger(__name__)

IGNORE_FILE = ".gittypeignore"

DEFAULT_EXCLUDE_PATTERNS: Tuple[str, ...] = (
    # build output
    "**/build/**",
    "**/dist/**",
    "**/target/**",
    "**/bin/**",
    "**/obj/**",
    # dependencies
    "**/node_modules/**",
    "**/vendor/**",
    # python
    "**/__pycache__/**",
    "**/*.pyc",
    "**/venv/**",
    "**/.venv/**",
    "**/env/**",
    # javascript / typescript
    "**/.next/**",
    "**/.nuxt/**",
    "**/coverage/**",
    "**/.nyc_output/**",
    # java / kotlin
    "**/*.class",
    "**/gradle/**",
    "**/.gradle/**",
    "**/buildSrc/**",
    "**/.m2/**",
    "**/.ivy2/**",
    # ruby
    "**/bundle/**",
    "**/.bundle/**",
    # swift
    "**/.build/**",
    "**/DerivedData/**",
    "**/Pods/**",
    "**/Carthage/**",
    # nuget
    "**/packages.config",
    "**/packages/**/*.dll",
    "**/packages/**/*.pdb",
    "**/packages/**/*.xml",
    # c / c++
    "**/*.o",
    "**/*.so",
    "**/*.a",
    "**/CMakeFiles/**",
    "**/cmake-build-*/**",
    "**/.vs/**",
    "**/x64/**",
    "**/x86/**",
    "**/Debug/**",
    "**/Release/**",
    # dart
    "**/.dart_tool/**",
    # haskell
    "**/.stack-work/**",
    "**/dist-newstyle/**",
    # generated code
    "**/generated/**",
    "**/.generated/**",
    "**/gen/**",
    "**/codegen/**",
    "**/*_pb2.py",
    "**/*.pb.go",
    # bazel
    "**/bazel-*/**",
    # system and temporary files
    "**/.git/**",
    "**/tmp/**",
    "**/temp/**",
    "**/*.tmp",
    "**/cache/**",
    "**/.cache/**",
    "**/logs/**",
    "**/*.log",
    # large generated test fixtures
    "**/colorize-fixtures/**",
    "**/perf-tests/**",
)

# Never descended into by the filesystem walk.
ALWAYS_IGNORED_DIRS = frozenset({".git", ".hg", ".svn"})


def run_git(args: List[str], cwd: Path) -> str:
    """Run a git command in ``cwd`` and return stdout as text.

    Raises:
        RuntimeError: when `git` is missing or the command fails.
    """
    try:
        out = subprocess.run(
            ["git", "-c", "core.quotepath=off", *args],
            cwd=str(cwd),
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        return out.stdout
    except FileNotFoundError as e:  # pragma: no cover
        raise RuntimeError("git not found on PATH") from e
    except subprocess.CalledProcessError as e:
        msg = e.stderr.strip() or e.stdout.strip() or "unknown git error"
        raise RuntimeError(f"git {' '.join(args)} failed: {msg}") from e


def _list_paths(args: List[str], cwd: Path) -> Set[str]:
    """Run a ``-z`` git listing and return its NUL separated paths verbatim."""
    raw = run_git([*args, "-z"], cwd)
    return {p for p in raw.split("\0") if p}


def compile_globs(patterns: Iterable[str]) -> Optional[PathSpec]:
    """Compile gitignore-style globs into one ``PathSpec``; ``None`` when empty.

    Raises:
        ValueError: when a pattern is not a valid glob.
    """
    lines = [p for p in (s.strip() for s in patterns) if p]
    if not lines:
        return None
    return PathSpec.from_lines("gitignore", lines)


def load_ignore_file(root: Path) -> Optional[GitIgnoreSpec]:
    """Compile ``.gittypeignore`` with full gitignore semantics, negations included."""
    path = root / IGNORE_FILE
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None
    try:
        spec = GitIgnoreSpec.from_lines(text.splitlines())
    except ValueError as exc:
        logger.warning("Ignoring %s: %s", path, exc)
        return None
    # Comment lines compile to patterns that match nothing.
    if not any(p.include is not None for p in spec.patterns):
        return None
    return spec


@dataclass
class ScanStats:
    seen: int = 0
    unsupported: int = 0
    excluded: int = 0
    yielded: int = 0


class RepositoryScanner:
    """Yield ``(relative_path, Language)`` for every selected file, sorted by path."""

    def __init__(self, root: Path | str, options: Optional[ExtractionOptions] = None, use_git: Optional[bool] = None) -> None:
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise ExtractionError(f"Repository root is not a directory: {root}")
        self.options = options or ExtractionOptions()
        excludes = list(DEFAULT_EXCLUDE_PATTERNS) if self.options.use_default_excludes else []
        excludes.extend(self.options.exclude)
        try:
            self.excludes = compile_globs(excludes)
            self.includes = compile_globs(self.options.include)
        except ValueError as exc:
            raise ExtractionError(f"Invalid glob pattern: {exc}") from exc
        self.ignored = load_ignore_file(self.root)
        if use_git is None:
            use_git = (self.root / ".git").exists() and shutil.which("git") is not None
        self.use_git = use_git
        self.stats = ScanStats()

    def _matches_excludes(self, relpath: str) -> bool:
        return self.excludes is not None and self.excludes.match_file(relpath)

    def is_excluded(self, relpath: str) -> bool:
        if self._matches_excludes(relpath):
            return True
        if self.ignored is not None and self.ignored.match_file(relpath):
            return True
        return self.includes is not None and not self.includes.match_file(relpath)

    def scan(self) -> Iterator[Tuple[str, Language]]:
        candidates = self._candidates()
        for relpath in sorted(candidates):
            self.stats.seen += 1
            if self.is_excluded(relpath):
                self.stats.excluded += 1
                continue
            lang = registry.for_path(relpath)
            if lang is None or not self.options.wants(lang.name):
                self.stats.unsupported += 1
                continue
            self.stats.yielded += 1
            yield relpath, lang

    def _candidates(self) -> Set[str]:
        if self.use_git:
            try:
                return self._git_candidates()
            except RuntimeError as exc:
                logger.warning("git listing failed under %s, walking the filesystem instead: %s", self.root, exc)
        return self._walk_candidates()

    def _git_candidates(self) -> Set[str]:
        listed = _list_paths(["ls-files", "--cached", "--others", "--exclude-standard"], self.root)
        # Deleted-but-tracked files and submodule entries are not regular files.
        return {p for p in listed if (self.root / p).is_file()}

    def _walk_candidates(self) -> Set[str]:
        found: Set[str] = set()
        visited: Set[Tuple[int, int]] = set()
        for dirpath, dirnames, filenames in os.walk(self.root, followlinks=True):
            try:
                st = os.stat(dirpath)
            except OSError as exc:
                logger.debug("Cannot stat %s: %s", dirpath, exc)
                dirnames[:] = []
                continue
            identity = (st.st_dev, st.st_ino)
            if identity in visited:
                logger.debug("Skipping already visited directory %s", dirpath)
                dirnames[:] = []
                continue
            visited.add(identity)

            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            prefix = "" if rel_dir == "." else rel_dir + "/"
            # Only exclude globs prune directories.
            dirnames[:] = sorted(
                d for d in dirnames
                if d not in ALWAYS_IGNORED_DIRS and not self._matches_excludes(prefix + d + "/")
            )
            for name in sorted(filenames):
                if os.path.isfile(os.path.join(dirpath, name)):
                    found.add(prefix + name)
        return found


__all__ = [
    "DEFAULT_EXCLUDE_PATTERNS",
    "RepositoryScanner",
    "ScanStats",
    "compile_globs",
    "load_ignore_file",
]
