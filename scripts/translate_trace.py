#!/usr/bin/env python3
"""Translate an obfuscated stack trace back to original source locations.

Reads the trace from a file, a literal argument, or stdin, resolves every
frame through the mapping documents in --maps-dir, and writes structured
JSON results to stdout with a summary on stderr.

Usage:
    python3 scripts/translate_trace.py error.log --maps-dir sourcemaps
    python3 scripts/translate_trace.py "Error: boom
        at _0x3a4f2b (/srv/app/dist/user.js:98:19)"
    cat error.log | python3 scripts/translate_trace.py
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

import orjson

from mapchain.config import TraceConfig
from mapchain.trace_resolver import resolve_trace

log = logging.getLogger("translate_trace")


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Translate an obfuscated stack trace using chained source maps."
    )
    parser.add_argument(
        "input",
        nargs="?",
        default=None,
        help="Error log file, or the stack trace text itself (default: stdin)",
    )
    parser.add_argument(
        "--maps-dir",
        type=Path,
        default=None,
        help="Directory holding <file>.js.map documents (default: ./sourcemaps)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Trace config JSON (maps_dir, artifact_root_marker, map_suffix, ...)",
    )
    parser.add_argument(
        "--no-column-fallback",
        action="store_true",
        help="Do not retry unresolved frames at column 0",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser


def read_trace(raw_input: str | None) -> str | None:
    """Input precedence: argument (file path, else literal text), then piped stdin."""
    if raw_input is not None:
        candidate = Path(raw_input)
        try:
            is_file = candidate.is_file()
        except OSError:
            is_file = False  # e.g. a multi-line trace longer than NAME_MAX
        if is_file:
            log.info("Reading from file: %s", candidate)
            return candidate.read_text(encoding="utf-8")
        return raw_input
    if not sys.stdin.isatty():
        log.info("Reading from stdin...")
        return sys.stdin.read()
    return None


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    config = TraceConfig.from_json(args.config) if args.config else TraceConfig()
    if args.maps_dir is not None:
        config = dataclasses.replace(config, maps_dir=args.maps_dir)
    if args.no_column_fallback:
        config = dataclasses.replace(config, column_zero_fallback=False)

    trace = read_trace(args.input)
    if trace is None:
        print("Error: no input provided", file=sys.stderr)
        sys.exit(1)
    if not trace.strip():
        print("Error: empty input", file=sys.stderr)
        sys.exit(1)

    report = resolve_trace(trace, config)
    dump_json(report.to_dict())
    print(
        f"Successfully translated {report.translated_count}/{report.frame_count} stack frames",
        file=sys.stderr,
    )


if __name__ == "__main__":
    main()
