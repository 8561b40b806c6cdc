"""Binary-searchable lookup structure over decoded segments.

Both directions use "greatest segment <= query" on the same line:

* generated -> original, keyed by (generated_line, generated_column)
* original -> generated, keyed by (source_index, original_line, original_column)

The generated side keeps generated-only segments: they end the span of the
mapped segment before them, so a query landing on one finds no origin
rather than borrowing its neighbour's. The original side only holds mapped
segments.

Columns are sorted stably, so when several segments share a column the one
that came first in the stream wins.
"""
from __future__ import annotations

import bisect
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TypeVar

from mapchain.mapping_types import Segment


@dataclass(frozen=True, slots=True)
class _LineIndex:
    """Sorted columns for one line plus the segments they belong to."""

    columns: list[int]
    segments: list[Segment]

    def floor(self, column: int) -> Segment | None:
        """First segment of the greatest column <= ``column``."""
        idx = bisect.bisect_right(self.columns, column) - 1
        if idx < 0:
            return None
        first = bisect.bisect_left(self.columns, self.columns[idx])
        return self.segments[first]


K = TypeVar("K")


def _build(rows: Iterable[tuple[K, int, Segment]]) -> dict[K, _LineIndex]:
    grouped: dict[K, list[tuple[int, Segment]]] = {}
    for key, column, segment in rows:
        grouped.setdefault(key, []).append((column, segment))
    index: dict[K, _LineIndex] = {}
    for key, line_rows in grouped.items():
        # list.sort is stable: stream order decides ties
        line_rows.sort(key=lambda row: row[0])
        index[key] = _LineIndex(
            columns=[column for column, _ in line_rows],
            segments=[segment for _, segment in line_rows],
        )
    return index


def _original_rows(segments: Iterable[Segment]) -> Iterable[tuple[tuple[int, int], int, Segment]]:
    for s in segments:
        if s.source_index is None or s.original_line is None or s.original_column is None:
            continue
        yield (s.source_index, s.original_line), s.original_column, s


class SegmentIndex:
    """Read-only index built once from a segment sequence."""

    def __init__(self, segments: Iterable[Segment]) -> None:
        segments = tuple(segments)
        self._by_generated = _build(
            (s.generated_line, s.generated_column, s) for s in segments
        )
        self._by_original = _build(_original_rows(segments))
        self._size = len(segments)

    def __len__(self) -> int:
        return self._size

    def has_line(self, generated_line: int) -> bool:
        return generated_line in self._by_generated

    def lookup(self, generated_line: int, generated_column: int) -> Segment | None:
        """Nearest preceding segment on ``generated_line`` (0-based).

        The result may be generated-only; callers needing an origin check
        ``Segment.has_original``.
        """
        line = self._by_generated.get(generated_line)
        if line is None:
            return None
        return line.floor(generated_column)

    def lookup_generated(
        self,
        source_index: int,
        original_line: int,
        original_column: int,
    ) -> Segment | None:
        """Nearest preceding mapped segment on one original line (0-based)."""
        line = self._by_original.get((source_index, original_line))
        if line is None:
            return None
        return line.floor(original_column)

    def segments_on_line(self, generated_line: int) -> list[Segment]:
        """Segments of one generated line, in column order."""
        line = self._by_generated.get(generated_line)
        return list(line.segments) if line is not None else []
