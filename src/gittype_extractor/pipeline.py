"""
pipeline.py: extraction orchestrator

- Scans the repository once (sorted, filtered)
- Validates grammars and queries before any worker starts
- Fixed pool of worker threads; each owns its ParserPool
- Workers push one FileResult per file into a result queue (the only shared sink)
- The calling thread aggregates, reports progress and sorts the final output
- Per-file problems are counted as skips; GrammarError aborts the run
"""
from __future__ import annotations

import hashlib
import logging
import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from gittype_extractor import languages as registry
from gittype_extractor.chunker import extract_blocks, extract_chunks, file_chunk
from gittype_extractor.comments import extract_comments, extract_import_ranges
from gittype_extractor.config import load_config
from gittype_extractor.converter import convert
from gittype_extractor.errors import GrammarError
from gittype_extractor.languages import Language
from gittype_extractor.models import Challenge, ExtractionOptions, ExtractionReport, SourceFile
from gittype_extractor.parser_pool import ParserPool
from gittype_extractor.resolver import resolve
from gittype_extractor.scanner import RepositoryScanner, run_git
from gittype_extractor.text_detection import BinaryDetector

logger = logging.getLogger(__name__)

PROGRESS_BATCH = 16

SKIP_UNREADABLE = "unreadable"
SKIP_BINARY = "binary"
SKIP_TOO_LARGE = "too_large"
SKIP_UNPARSEABLE = "unparseable"
SKIP_FAILED = "failed"

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class WorkItem:
    index: int
    path: str
    language: Language


@dataclass
class FileResult:
    index: int
    path: str
    challenges: List[Challenge] = field(default_factory=list)
    candidates: int = 0
    dropped: int = 0
    skip_reason: Optional[str] = None
    cancelled: bool = False
    fatal: Optional[GrammarError] = None


@dataclass
class ExtractionResult:
    challenges: List[Challenge]
    report: ExtractionReport

    def __iter__(self):
        return iter(self.challenges)

    def __len__(self) -> int:
        return len(self.challenges)


def process_file(
    root: Path,
    item: WorkItem,
    options: ExtractionOptions,
    pool: ParserPool,
    detector: BinaryDetector,
) -> FileResult:
    """Extract the challenges of one file with the caller's parser pool.

    Raises:
        GrammarError: when the file's grammar or queries cannot be initialized.
    """
    language = item.language
    full = root / item.path
    result = FileResult(index=item.index, path=item.path)
    try:
        if full.stat().st_size > options.max_file_size_bytes:
            result.skip_reason = SKIP_TOO_LARGE
            return result
        src = SourceFile(path=item.path, language=language.name, content=full.read_bytes())
    except OSError as exc:
        logger.debug("Cannot read %s: %s", item.path, exc)
        result.skip_reason = SKIP_UNREADABLE
        return result
    content = src.content
    if detector.is_binary(src.path, content):
        result.skip_reason = SKIP_BINARY
        return result
    try:
        content.decode("utf-8")
    except UnicodeDecodeError:
        result.skip_reason = SKIP_UNREADABLE
        return result

    tree = pool.parse(language, content)
    has_errors = tree.root_node.has_error

    queries = pool.queries(language)
    candidates = extract_chunks(tree, content, language, item.path, queries)
    if options.include_blocks:
        candidates += extract_blocks(tree, content, language, item.path, candidates, queries)
    if options.include_file_chunks and not has_errors:
        candidates.append(file_chunk(content, language, item.path))
    if has_errors and not candidates:
        logger.debug("Syntax errors in %s and no clean chunk, skipping", item.path)
        result.skip_reason = SKIP_UNPARSEABLE
        return result

    comments = extract_comments(tree, language)
    imports = extract_import_ranges(tree, language)
    resolved = resolve(candidates, source=content, comments=comments, imports=imports)

    result.candidates = len(candidates)
    result.dropped = len(candidates) - len(resolved)
    result.challenges = [convert(chunk, comments, options, content) for chunk in resolved]
    logger.debug("%s: %d challenges from %d candidates", item.path, len(result.challenges), len(candidates))
    return result


class _Worker(threading.Thread):
    """Pulls work items until it sees the ``None`` sentinel."""

    def __init__(
        self,
        name: str,
        root: Path,
        options: ExtractionOptions,
        tasks: "queue.Queue[Optional[WorkItem]]",
        results: "queue.Queue[FileResult]",
        cancel: threading.Event,
        detector: BinaryDetector,
    ) -> None:
        super().__init__(name=name, daemon=True)
        self.root = root
        self.options = options
        self.tasks = tasks
        self.results = results
        self.cancel = cancel
        self.detector = detector

    def run(self) -> None:
        pool = ParserPool()
        while True:
            item = self.tasks.get()
            if item is None:
                return
            if self.cancel.is_set():
                self.results.put(FileResult(index=item.index, path=item.path, cancelled=True))
                continue
            try:
                result = process_file(self.root, item, self.options, pool, self.detector)
            except GrammarError as exc:
                result = FileResult(index=item.index, path=item.path, fatal=exc)
            except Exception:
                logger.exception("Extraction failed for %s", item.path)
                result = FileResult(index=item.index, path=item.path, skip_reason=SKIP_FAILED)
            self.results.put(result)


def _challenge_sort_key(ch: Challenge) -> Tuple[str, int, int, int]:
    lang = registry.by_name(ch.language)
    rank = lang.rank(ch.chunk_type) if lang is not None else 0
    return (ch.file_path, ch.start_byte, -ch.end_byte, rank)


def _validate_grammars(languages: Iterable[Language]) -> None:
    ParserPool().preload(languages)


def extract_challenges(
    root: Path | str,
    options: Optional[ExtractionOptions] = None,
    *,
    cancel: Optional[threading.Event] = None,
    progress: Optional[ProgressCallback] = None,
    scanner: Optional[RepositoryScanner] = None,
) -> ExtractionResult:
    """Extract every challenge under ``root``.

    The returned order depends only on repository contents and options, never
    on worker count or scheduling.

    Raises:
        ExtractionError: when ``root`` is not a directory.
        GrammarError: when a grammar needed by the run cannot be initialized.
    """
    options = options or ExtractionOptions()
    cancel = cancel or threading.Event()

    if options.languages is not None:
        requested = [registry.by_name(n) for n in sorted(options.languages)]
        _validate_grammars(lang for lang in requested if lang is not None)

    scanner = scanner or RepositoryScanner(root, options)
    items = [WorkItem(i, path, lang) for i, (path, lang) in enumerate(scanner.scan())]

    if options.languages is None:
        present: Dict[str, Language] = {}
        for item in items:
            present.setdefault(item.language.name, item.language)
        _validate_grammars(present.values())

    report = ExtractionReport(
        files_scanned=scanner.stats.seen,
        unsupported_files=scanner.stats.unsupported,
        excluded_files=scanner.stats.excluded,
    )
    total = len(items)
    worker_count = options.workers or load_config().workers
    worker_count = max(1, min(worker_count, total or 1))
    logger.info("Extracting %d files from %s with %d workers", total, scanner.root, worker_count)

    git_runner = (lambda args: run_git(args, scanner.root)) if scanner.use_git else None
    detector = BinaryDetector(git_runner, scanner.root)
    tasks: "queue.Queue[Optional[WorkItem]]" = queue.Queue()
    results: "queue.Queue[FileResult]" = queue.Queue()
    for item in items:
        tasks.put(item)
    for _ in range(worker_count):
        tasks.put(None)

    workers = [
        _Worker(f"gittype-worker-{n}", scanner.root, options, tasks, results, cancel, detector)
        for n in range(worker_count)
    ]
    for worker in workers:
        worker.start()

    collected: List[Challenge] = []
    fatal: Optional[GrammarError] = None
    for done in range(1, total + 1):
        res = results.get()
        if res.fatal is not None:
            fatal = fatal or res.fatal
            cancel.set()
        elif res.cancelled:
            report.cancelled = True
        elif res.skip_reason is not None:
            report.skip(res.skip_reason)
        else:
            report.files_processed += 1
            report.candidate_chunks += res.candidates
            report.dropped_chunks += res.dropped
            collected.extend(res.challenges)
        if progress is not None and (done % PROGRESS_BATCH == 0 or done == total):
            progress(done, total)

    for worker in workers:
        worker.join()
    if fatal is not None:
        raise fatal

    collected.sort(key=_challenge_sort_key)
    report.challenges = len(collected)
    logger.info(
        "Extracted %d challenges from %d files (%d skipped%s)",
        report.challenges,
        report.files_processed,
        sum(report.skipped.values()),
        ", cancelled" if report.cancelled else "",
    )
    return ExtractionResult(challenges=collected, report=report)


def content_fingerprint(root: Path | str, options: Optional[ExtractionOptions] = None) -> str:
    """sha256 over the sorted ``(path, bytes)`` of every scanned file.

    Callers may use it as a cache key; the pipeline itself stores nothing.
    """
    scanner = RepositoryScanner(root, options or ExtractionOptions())
    digest = hashlib.sha256()
    for path, _lang in scanner.scan():
        try:
            data = (scanner.root / path).read_bytes()
        except OSError:
            data = b""
        encoded = path.encode("utf-8")
        digest.update(len(encoded).to_bytes(8, "big"))
        digest.update(encoded)
        digest.update(len(data).to_bytes(8, "big"))
        digest.update(data)
    return digest.hexdigest()


__all__ = [
    "ExtractionResult",
    "FileResult",
    "PROGRESS_BATCH",
    "WorkItem",
    "content_fingerprint",
    "extract_challenges",
    "process_file",
]
