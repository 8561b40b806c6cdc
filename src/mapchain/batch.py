"""Chain many mapping-document pairs, one independent job per pair.

Jobs run on a thread pool. Each job owns its documents, resolver and
output; a failing job is recorded in the report and never cancels the
others. Nothing is written to disk here: callers persist ``outcome.document``.
"""
from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from mapchain.composer import CompositionStats, compose_with_stats, repair_placeholder_sources
from mapchain.config import ChainConfig
from mapchain.io_utils import load_mapping_document
from mapchain.mapping_types import MappingDocument, MappingError

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChainJob:
    """One pair to compose: stage0 -> stage1 map and stage1 -> stage2 map."""

    stage0_map: Path
    stage1_map: Path

    @property
    def label(self) -> str:
        return self.stage1_map.name


@dataclass(frozen=True, slots=True)
class ChainOutcome:
    job: ChainJob
    document: MappingDocument | None = None
    stats: CompositionStats | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.document is not None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "stage0_map": str(self.job.stage0_map),
            "stage1_map": str(self.job.stage1_map),
            "status": "chained" if self.ok else "failed",
        }
        if self.stats is not None:
            out["segments_emitted"] = self.stats.emitted
            out["segments_dropped_unmapped"] = self.stats.dropped_unmapped
            out["segments_dropped_unresolved"] = self.stats.dropped_unresolved
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass(slots=True)
class ChainReport:
    outcomes: list[ChainOutcome] = field(default_factory=list[ChainOutcome])

    @property
    def chained(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    def to_dict(self) -> dict[str, Any]:
        return {
            "chained": self.chained,
            "failed": self.failed,
            "results": [o.to_dict() for o in self.outcomes],
        }


def chain_one(job: ChainJob, config: ChainConfig | None = None) -> ChainOutcome:
    """Load, decode and compose one pair. Errors are captured, not raised."""
    config = config or ChainConfig()
    try:
        stage0 = load_mapping_document(job.stage0_map)
        stage1 = load_mapping_document(job.stage1_map)
        document, stats = compose_with_stats(
            stage0,
            stage1,
            read_missing_content=config.read_missing_content,
            file=stage1.file or PurePosixPath(job.stage1_map.name).stem,
        )
    except (MappingError, OSError, ValueError) as exc:
        log.warning("Failed to chain %s: %s", job.label, exc)
        return ChainOutcome(job=job, error=str(exc))
    return ChainOutcome(job=job, document=document, stats=stats)


def chain_documents(
    jobs: list[ChainJob],
    config: ChainConfig | None = None,
) -> ChainReport:
    """Run every job; the report keeps the input order."""
    config = config or ChainConfig()
    outcomes: dict[int, ChainOutcome] = {}
    max_workers = max(1, config.workers)
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = {
            ex.submit(chain_one, job, config): i for i, job in enumerate(jobs)
        }
        for fut in concurrent.futures.as_completed(futures):
            outcomes[futures[fut]] = fut.result()

    report = ChainReport(outcomes=[outcomes[i] for i in range(len(jobs))])
    log.info("Chained %d mapping documents, %d failed", report.chained, report.failed)
    return report


def placeholder_replacement(document: MappingDocument, config: ChainConfig) -> str | None:
    """Inferred original source name for a document, from its generated file name."""
    generated = document.file
    if not generated and document.location is not None:
        generated = document.location.name.removesuffix(".map")
    if not generated:
        return None
    stem = PurePosixPath(generated.replace("\\", "/")).stem
    return config.placeholder_template.format(stem=stem)


def repair_document(document: MappingDocument, config: ChainConfig | None = None) -> MappingDocument:
    """Replace the obfuscator's placeholder source name, if present."""
    config = config or ChainConfig()
    replacement = placeholder_replacement(document, config)
    if replacement is None:
        return document
    return repair_placeholder_sources(
        document, replacement, placeholder=config.placeholder_source,
    )
