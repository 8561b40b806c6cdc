"""Resolve stack traces through mapping documents.

For each parsed frame: find the mapping document by file-name convention,
load and decode it, resolve the position with the configured fallback, and
attach the original file, line, column, display name and source line.

A frame that cannot be resolved gets a failure reason and is otherwise left
untranslated. Nothing here aborts the remaining frames.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mapchain.config import TraceConfig
from mapchain.io_utils import load_mapping_document
from mapchain.mapping_types import Err, MalformedMapping, MissingDocument
from mapchain.resolver import (
    FallbackPolicy,
    NamePolicy,
    PositionResolver,
    resolve_with_fallback,
)
from mapchain.stack_frames import (
    ParsedLine,
    StackFrame,
    UnparsableFrame,
    has_drive_letter,
    parse_frames,
)

log = logging.getLogger(__name__)

_SEPARATORS_RE = re.compile(r"[\\/]+")

NO_POSITION_ERROR = "No original position found in source map"


@dataclass(frozen=True, slots=True)
class TranslatedFrame:
    """Original location recovered for one frame (1-based line, 0-based column)."""

    file: str
    line: int
    column: int
    name: str
    source_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "name": self.name,
            "sourceCode": self.source_code,
        }


@dataclass(frozen=True, slots=True)
class ResolvedFrame:
    """Outcome for one input line: translated, failed, or passthrough."""

    parsed: ParsedLine
    translated: TranslatedFrame | None = None
    error: str | None = None
    map_path: Path | None = None

    @property
    def original(self) -> str:
        return self.parsed.raw

    @property
    def is_frame(self) -> bool:
        return isinstance(self.parsed, StackFrame)

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "translated": self.translated.to_dict() if self.translated else None,
            "error": self.error,
        }


@dataclass(slots=True)
class TraceReport:
    """All resolved lines of one trace, in input order."""

    frames: list[ResolvedFrame] = field(default_factory=list[ResolvedFrame])

    @property
    def frame_count(self) -> int:
        return sum(1 for f in self.frames if f.is_frame)

    @property
    def translated_count(self) -> int:
        return sum(1 for f in self.frames if f.translated is not None)

    @property
    def failed_count(self) -> int:
        return sum(1 for f in self.frames if f.error is not None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "frames": [f.to_dict() for f in self.frames],
            "frame_count": self.frame_count,
            "translated_count": self.translated_count,
            "failed_count": self.failed_count,
        }


def locate_mapping_document(file_path: str, config: TraceConfig) -> Path:
    """Derive the mapping document path for a generated file named in a frame.

    * absolute path containing the artifact-root marker: the part below the
      marker is mirrored under ``maps_dir``
    * other absolute paths: ``maps_dir / <basename><suffix>``
    * relative paths: same, with a ``.ts`` basename read as ``.js``
      (runtimes with source-map support already print the original name)
    """
    path = file_path.strip()
    if path.startswith("file://"):
        path = path[len("file://"):]
        if len(path) > 2 and path[0] == "/" and has_drive_letter(path[1:]):
            path = path[1:]
    absolute = path.startswith(("/", "\\")) or has_drive_letter(path)
    parts = [p for p in _SEPARATORS_RE.split(path) if p]
    if not parts:
        return config.maps_dir / config.map_suffix

    marker = config.artifact_root_marker
    if absolute and marker and marker in parts[:-1]:
        idx = len(parts) - 1 - parts[::-1].index(marker)
        below = parts[idx + 1:]
        return config.maps_dir.joinpath(*below[:-1], below[-1] + config.map_suffix)

    base = parts[-1]
    if not absolute and base.endswith(".ts"):
        base = base[:-3] + ".js"
    return config.maps_dir / (base + config.map_suffix)


def _load_resolver(
    map_path: Path,
    cache: dict[Path, PositionResolver | str],
) -> PositionResolver | str:
    """Resolver for ``map_path`` or a failure reason; memoized per trace."""
    cached = cache.get(map_path)
    if cached is not None:
        return cached
    loaded: PositionResolver | str
    try:
        loaded = PositionResolver(load_mapping_document(map_path))
    except MissingDocument as exc:
        loaded = str(exc)
    except (MalformedMapping, OSError) as exc:
        loaded = f"Error reading source map: {exc}"
    cache[map_path] = loaded
    return loaded


def resolve_frame(
    frame: StackFrame,
    config: TraceConfig,
    *,
    cache: dict[Path, PositionResolver | str] | None = None,
    fallback: FallbackPolicy | None = None,
    name_policy: NamePolicy | None = None,
) -> ResolvedFrame:
    """Resolve one parsed frame."""
    if cache is None:
        cache = {}
    map_path = locate_mapping_document(frame.file_path, config)
    resolver = _load_resolver(map_path, cache)
    if isinstance(resolver, str):
        log.debug("%s: %s", frame.file_path, resolver)
        return ResolvedFrame(parsed=frame, error=resolver, map_path=map_path)

    result = resolve_with_fallback(
        resolver, frame.line, frame.column, fallback or config.fallback_policy,
    )
    if isinstance(result, Err):
        log.debug(
            "%s:%d:%d unresolved (%s)",
            frame.file_path, frame.line, frame.column, result.error.reason,
        )
        return ResolvedFrame(parsed=frame, error=NO_POSITION_ERROR, map_path=map_path)

    position = result.value
    policy = name_policy or config.name_policy
    return ResolvedFrame(
        parsed=frame,
        translated=TranslatedFrame(
            file=position.source,
            line=position.line,
            column=position.column,
            name=policy.display_name(position.name, frame.function_name),
            source_code=resolver.source_line(position.source_index, position.line),
        ),
        map_path=map_path,
    )


def resolve_trace(text: str, config: TraceConfig | None = None) -> TraceReport:
    """Parse ``text`` and resolve every frame in it.

    Decoded documents are cached for the duration of this call only.
    """
    config = config or TraceConfig()
    fallback = config.fallback_policy
    name_policy = config.name_policy
    cache: dict[Path, PositionResolver | str] = {}

    report = TraceReport()
    for parsed in parse_frames(text):
        if isinstance(parsed, UnparsableFrame):
            report.frames.append(ResolvedFrame(parsed=parsed))
            continue
        report.frames.append(resolve_frame(
            parsed, config, cache=cache, fallback=fallback, name_policy=name_policy,
        ))
    return report
