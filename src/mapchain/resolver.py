"""Position resolution over a decoded mapping document.

Public coordinates: lines are 1-based, columns 0-based (the convention used
by stack traces and by source-map consumers). Internally everything is
0-based.

The resolver itself never falls back to another column or line. Fallbacks
are separate policy functions applied by callers such as the trace resolver:

* ``exact_column``          — query only the requested position
* ``retry_at_column_zero``  — then column 0 of the same line

Name selection is a ``NamePolicy``: it decides whether a resolved symbol
name looks like an obfuscator identifier and should give way to the name
printed in the stack frame.
"""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeAlias

from mapchain.mapping_types import (
    Err,
    GeneratedPosition,
    MappingDocument,
    Ok,
    OriginalPosition,
    ResolutionMiss,
    Result,
)
from mapchain.segment_index import SegmentIndex

# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------

FallbackPolicy: TypeAlias = Callable[[int, int], list[tuple[int, int]]]

# javascript-obfuscator's hexadecimal identifier generator: _0x3a4f2b
DEFAULT_SYNTHETIC_NAME_PATTERN = r"^_0x[0-9a-fA-F]+$"


def exact_column(line: int, column: int) -> list[tuple[int, int]]:
    return [(line, column)]


def retry_at_column_zero(line: int, column: int) -> list[tuple[int, int]]:
    """Query the exact column, then column 0 of the same line.

    Obfuscating transforms often collapse column precision, so the start of
    the line is the best remaining anchor. Never moves to another line.
    """
    if column > 0:
        return [(line, column), (line, 0)]
    return [(line, column)]


@dataclass(frozen=True, slots=True)
class NamePolicy:
    """Decides which symbol name to show for a resolved frame."""

    synthetic_pattern: re.Pattern[str] = field(
        default_factory=lambda: re.compile(DEFAULT_SYNTHETIC_NAME_PATTERN),
    )

    @classmethod
    def from_pattern(cls, pattern: str) -> NamePolicy:
        return cls(synthetic_pattern=re.compile(pattern))

    def looks_synthetic(self, name: str) -> bool:
        return bool(self.synthetic_pattern.search(name))

    def display_name(self, resolved_name: str | None, frame_function: str) -> str:
        """Resolved name unless it is missing or synthetic, else the frame's."""
        if resolved_name and not self.looks_synthetic(resolved_name):
            return resolved_name
        return frame_function


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class PositionResolver:
    """Answers position queries for one mapping document.

    Construction builds the full segment index; queries never mutate it.
    """

    def __init__(self, document: MappingDocument) -> None:
        self.document = document
        self._index = SegmentIndex(document.segments)
        self._source_lookup: dict[str, int] = {}
        for i in range(len(document.sources)):
            self._source_lookup.setdefault(document.sources[i], i)
            self._source_lookup.setdefault(document.resolved_source(i), i)
        self._line_cache: dict[int, list[str]] = {}

    @property
    def index(self) -> SegmentIndex:
        return self._index

    def resolve(self, line: int, column: int) -> Result[OriginalPosition, ResolutionMiss]:
        """Map a generated position to its original position."""
        if line < 1 or column < 0:
            return Err(ResolutionMiss("invalid_position", line, column))
        if not self._index.has_line(line - 1):
            return Err(ResolutionMiss("no_segments_on_line", line, column))
        segment = self._index.lookup(line - 1, column)
        if segment is None:
            return Err(ResolutionMiss("before_first_segment", line, column))
        if (
            segment.source_index is None
            or segment.original_line is None
            or segment.original_column is None
        ):
            return Err(ResolutionMiss("unmapped_segment", line, column))
        name = (
            self.document.names[segment.name_index]
            if segment.name_index is not None
            else None
        )
        return Ok(OriginalPosition(
            source=self.document.resolved_source(segment.source_index),
            source_index=segment.source_index,
            line=segment.original_line + 1,
            column=segment.original_column,
            name=name,
        ))

    def generated_position_for(
        self,
        source: str,
        line: int,
        column: int,
    ) -> Result[GeneratedPosition, ResolutionMiss]:
        """Map an original position (1-based line) back to the generated artifact."""
        source_index = self._source_lookup.get(source)
        if source_index is None:
            return Err(ResolutionMiss("unknown_source", line, column))
        if line < 1 or column < 0:
            return Err(ResolutionMiss("invalid_position", line, column))
        segment = self._index.lookup_generated(source_index, line - 1, column)
        if segment is None:
            return Err(ResolutionMiss("no_segments_on_line", line, column))
        return Ok(GeneratedPosition(
            line=segment.generated_line + 1,
            column=segment.generated_column,
        ))

    def source_content(self, source_index: int) -> str | None:
        return self.document.content_for(source_index)

    def source_line(self, source_index: int, line: int) -> str | None:
        """Trimmed text of original ``line`` (1-based), if content is embedded."""
        lines = self._line_cache.get(source_index)
        if lines is None:
            content = self.source_content(source_index)
            if content is None:
                return None
            lines = content.split("\n")
            self._line_cache[source_index] = lines
        if not 1 <= line <= len(lines):
            return None
        text = lines[line - 1].strip()
        return text or None


def resolve_with_fallback(
    resolver: PositionResolver,
    line: int,
    column: int,
    policy: FallbackPolicy = retry_at_column_zero,
) -> Result[OriginalPosition, ResolutionMiss]:
    """Try each candidate position from ``policy``; first hit wins.

    On a total miss the first candidate's miss is returned, since it
    describes the position that was actually asked for.
    """
    first_miss: Err[ResolutionMiss] | None = None
    for cand_line, cand_column in policy(line, column):
        result = resolver.resolve(cand_line, cand_column)
        if isinstance(result, Ok):
            return result
        if first_miss is None:
            first_miss = result
    if first_miss is None:
        return Err(ResolutionMiss("invalid_position", line, column))
    return first_miss
