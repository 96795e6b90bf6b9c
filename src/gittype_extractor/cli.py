"""
gittype-extract: command line front end

- Positional `root`: repository directory to scan
- Language / include / exclude filters map onto ExtractionOptions
- Optional NDJSON dump of every challenge
- Prints a concise JSON summary to stdout
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from gittype_extractor.config import load_config
from gittype_extractor.errors import ExtractionError
from gittype_extractor.models import MAX_BLANK_RUN, Challenge, ExtractionOptions
from gittype_extractor.pipeline import extract_challenges

logger = logging.getLogger(__name__)


def ndjson_bytes(challenges: Iterable[Challenge]) -> bytes:
    lines = [json.dumps(ch.to_dict(), ensure_ascii=False) for ch in challenges]
    return ("\n".join(lines) + ("\n" if lines else "")).encode("utf-8")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gittype-extract", description="Extract typing challenges from a source repository.")
    parser.add_argument("root", help="Repository root directory")
    parser.add_argument("--lang", action="append", default=None, metavar="LANG", help="Restrict to a language name or alias (repeatable)")
    parser.add_argument("--include", action="append", default=[], metavar="GLOB", help="Only scan paths matching GLOB (repeatable)")
    parser.add_argument("--exclude", action="append", default=[], metavar="GLOB", help="Skip paths matching GLOB (repeatable)")
    parser.add_argument("--no-default-excludes", action="store_true", help="Do not apply the built-in exclude list")
    parser.add_argument("--collapse-empty-lines", action="store_true", help="Drop blank lines inside challenges")
    parser.add_argument("--max-blank-run", type=int, default=MAX_BLANK_RUN, metavar="N", help="With --collapse-empty-lines, keep up to N blank lines per run (default: %(default)s)")
    parser.add_argument("--blocks", action="store_true", help="Also extract loops, conditionals and other blocks")
    parser.add_argument("--file-chunks", action="store_true", help="Also emit one whole-file challenge per file")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: GITTYPE_WORKERS or min(8, cpus))")
    parser.add_argument("--ndjson", metavar="PATH", help="Write every challenge as NDJSON to PATH ('-' for stdout)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint; returns the process exit code."""
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config()
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(level=cfg.log_level, format="%(levelname)s %(name)s: %(message)s")

    if args.workers is not None and args.workers < 1:
        print("error: --workers must be >= 1", file=sys.stderr)
        return 2
    if args.max_blank_run < 0:
        print("error: --max-blank-run must be >= 0", file=sys.stderr)
        return 2
    try:
        options = ExtractionOptions.create(
            languages=args.lang,
            include=args.include,
            exclude=args.exclude,
            preserve_empty_lines=not args.collapse_empty_lines,
            max_blank_run=args.max_blank_run,
            max_file_size_bytes=cfg.max_file_size_bytes,
            include_blocks=args.blocks,
            include_file_chunks=args.file_chunks,
            use_default_excludes=not args.no_default_excludes,
            workers=args.workers or cfg.workers,
        )
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    try:
        result = extract_challenges(args.root, options)
    except ExtractionError as exc:
        logger.error("%s", exc)
        return 1

    if args.ndjson:
        payload = ndjson_bytes(result.challenges)
        if args.ndjson == "-":
            sys.stdout.buffer.write(payload)
            sys.stdout.flush()
        else:
            Path(args.ndjson).write_bytes(payload)

    by_type: dict = {}
    by_language: dict = {}
    for ch in result.challenges:
        by_type[ch.chunk_type.value] = by_type.get(ch.chunk_type.value, 0) + 1
        by_language[ch.language] = by_language.get(ch.language, 0) + 1

    summary = {
        "root": str(Path(args.root).resolve()),
        "report": result.report.to_dict(),
        "by_type": dict(sorted(by_type.items())),
        "by_language": dict(sorted(by_language.items())),
    }
    if args.ndjson != "-":
        print(json.dumps(summary, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
