#!/usr/bin/env python3
"""Chain compiler source maps with obfuscator source maps.

For every ``*.js.map`` under --stage0-dir (the compiler's maps, backed up
before obfuscation) the map at the same relative path under --dist-dir is
the obfuscator's map. Each pair is composed into a map from the obfuscated
output straight back to the original sources and written over the
obfuscator's map (or under --output-dir).

With --repair-only, no chaining happens: maps under --dist-dir whose source
is the obfuscator's "sourceMap" placeholder get an inferred source name.

Usage:
    python3 scripts/chain_sourcemaps.py --stage0-dir dist-sourcemaps-backup \\
        --dist-dir dist --workers 8 -v
    python3 scripts/chain_sourcemaps.py --dist-dir dist --repair-only
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

import orjson

from mapchain.batch import ChainJob, chain_documents, repair_document
from mapchain.config import ChainConfig
from mapchain.io_utils import load_mapping_document, write_mapping_document
from mapchain.mapping_types import MappingError

log = logging.getLogger("chain_sourcemaps")

MAP_GLOB = "*.js.map"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compose compiler and obfuscator source maps."
    )
    parser.add_argument(
        "--stage0-dir",
        type=Path,
        default=Path("./dist-sourcemaps-backup"),
        help="Directory of compiler maps (default: ./dist-sourcemaps-backup)",
    )
    parser.add_argument(
        "--dist-dir",
        type=Path,
        default=Path("./dist"),
        help="Directory of obfuscator maps (default: ./dist)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Write chained maps here instead of over --dist-dir maps",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Chain config JSON (workers, read_missing_content, ...)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Parallel chaining jobs (default: 4)",
    )
    parser.add_argument(
        "--no-read-sources",
        action="store_true",
        help="Do not embed source text that the compiler maps leave out",
    )
    parser.add_argument(
        "--repair-only",
        action="store_true",
        help="Only replace placeholder source names in --dist-dir maps",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser


def find_jobs(stage0_dir: Path, dist_dir: Path) -> list[ChainJob]:
    return [
        ChainJob(stage0_map=path, stage1_map=dist_dir / path.relative_to(stage0_dir))
        for path in sorted(stage0_dir.rglob(MAP_GLOB))
    ]


def run_repair(dist_dir: Path, config: ChainConfig) -> dict[str, int]:
    counts = {"repaired": 0, "unchanged": 0, "failed": 0}
    for path in sorted(dist_dir.rglob(MAP_GLOB)):
        try:
            document = load_mapping_document(path)
            repaired = repair_document(document, config)
            if repaired is document:
                counts["unchanged"] += 1
                continue
            write_mapping_document(repaired, path)
            log.info("Repaired %s -> %s", path, ", ".join(repaired.sources))
            counts["repaired"] += 1
        except (MappingError, OSError) as exc:
            log.error("Error processing %s: %s", path, exc)
            counts["failed"] += 1
    return counts


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    config = ChainConfig.from_json(args.config) if args.config else ChainConfig()
    if args.workers is not None:
        config = dataclasses.replace(config, workers=max(1, args.workers))
    if args.no_read_sources:
        config = dataclasses.replace(config, read_missing_content=False)

    dist_dir: Path = args.dist_dir
    if not dist_dir.is_dir():
        log.error("Dist directory not found: %s", dist_dir)
        sys.exit(1)

    if args.repair_only:
        counts = run_repair(dist_dir, config)
        sys.stdout.buffer.write(orjson.dumps(counts, option=orjson.OPT_INDENT_2) + b"\n")
        sys.exit(1 if counts["failed"] else 0)

    stage0_dir: Path = args.stage0_dir
    if not stage0_dir.is_dir():
        log.error("Compiler source maps not found: %s", stage0_dir)
        sys.exit(1)

    jobs = find_jobs(stage0_dir, dist_dir)
    log.info("Found %d compiler source maps in %s", len(jobs), stage0_dir)
    report = chain_documents(jobs, config)

    output_dir: Path | None = args.output_dir
    for outcome in report.outcomes:
        if outcome.document is None:
            continue
        target = outcome.job.stage1_map
        if output_dir is not None:
            target = output_dir / outcome.job.stage1_map.relative_to(dist_dir)
        write_mapping_document(outcome.document, target)

    sys.stdout.buffer.write(
        orjson.dumps(report.to_dict(), option=orjson.OPT_INDENT_2) + b"\n"
    )
    if report.failed:
        log.warning("Failed to chain %d source maps", report.failed)
    sys.exit(1 if report.failed else 0)


if __name__ == "__main__":
    main()
