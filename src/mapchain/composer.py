"""Transitive composition of two mapping documents.

Given A (stage0 -> stage1) and B (stage1 -> stage2), ``compose`` derives
C (stage0 -> stage2):

1. Build a PositionResolver over A (complete before any query).
2. For every B segment with an original position, look that stage1
   position up in A. A hit becomes a C segment at B's generated position
   pointing at A's original position. A miss drops the segment, since a
   stage1-relative guess would claim an origin that does not exist.
3. Names: A's resolved name wins over B's. Obfuscators rename symbols, so
   the earlier name is the human one.

Tables are rebuilt for C. Sources are seeded with A's sources, names are
interned as segments are emitted; both de-duplicate by exact string.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from mapchain.io_utils import read_source_content
from mapchain.mapping_types import (
    MappingDocument,
    MissingContent,
    Ok,
    Segment,
)
from mapchain.resolver import PositionResolver

log = logging.getLogger(__name__)

PLACEHOLDER_SOURCE = "sourceMap"


class _InternTable:
    """Append-only string table with exact-match de-duplication."""

    def __init__(self) -> None:
        self._index: dict[str, int] = {}
        self._items: list[str] = []

    def index_for(self, value: str) -> int:
        idx = self._index.get(value)
        if idx is None:
            idx = len(self._items)
            self._index[value] = idx
            self._items.append(value)
        return idx

    @property
    def items(self) -> tuple[str, ...]:
        return tuple(self._items)


@dataclass(frozen=True, slots=True)
class CompositionStats:
    """Per-composition segment accounting."""

    emitted: int
    dropped_unmapped: int     # B segments with no original position
    dropped_unresolved: int   # B segments whose stage1 position A does not cover


def _collect_content(
    a: MappingDocument,
    *,
    read_missing_content: bool,
) -> dict[str, str]:
    """Content per A source name, embedded first, then read from disk."""
    content: dict[str, str] = {}
    for i, source in enumerate(a.sources):
        if source in content:
            continue
        embedded = a.content_for(i)
        if embedded is not None:
            content[source] = embedded
            continue
        if not read_missing_content or a.location is None:
            continue
        try:
            content[source] = read_source_content(a, i)
        except MissingContent as exc:
            log.warning("%s", exc)
    return content


def compose_with_stats(
    a: MappingDocument,
    b: MappingDocument,
    *,
    read_missing_content: bool = True,
    file: str | None = None,
) -> tuple[MappingDocument, CompositionStats]:
    """Compose A (stage0 -> stage1) with B (stage1 -> stage2).

    Args:
        a: Mapping from the original artifact to the intermediate one.
        b: Mapping from the intermediate artifact to the final one.
        read_missing_content: Read source text A does not embed from disk,
            relative to ``a.location``. Failures only omit that source.
        file: Output file name for C; defaults to B's, then A's.

    Returns:
        (C, stats). Neither input is modified.
    """
    resolver = PositionResolver(a)

    sources = _InternTable()
    for source in a.sources:
        sources.index_for(source)
    names = _InternTable()

    emitted: list[Segment] = []
    dropped_unmapped = 0
    dropped_unresolved = 0

    for segment in b.segments:
        if segment.source_index is None:
            dropped_unmapped += 1
            continue
        assert segment.original_line is not None
        assert segment.original_column is not None

        result = resolver.resolve(segment.original_line + 1, segment.original_column)
        if not isinstance(result, Ok):
            dropped_unresolved += 1
            continue
        origin = result.value

        name = origin.name
        if name is None and segment.name_index is not None:
            name = b.names[segment.name_index]

        emitted.append(Segment(
            generated_line=segment.generated_line,
            generated_column=segment.generated_column,
            source_index=sources.index_for(a.sources[origin.source_index]),
            original_line=origin.line - 1,
            original_column=origin.column,
            name_index=names.index_for(name) if name is not None else None,
        ))

    content = _collect_content(a, read_missing_content=read_missing_content)
    merged_sources = sources.items
    sources_content: tuple[str | None, ...] | None = None
    if content:
        sources_content = tuple(content.get(source) for source in merged_sources)

    composed = MappingDocument(
        sources=merged_sources,
        names=names.items,
        segments=tuple(emitted),
        sources_content=sources_content,
        file=file or b.file or a.file,
        source_root=a.source_root,
        location=None,
    )
    stats = CompositionStats(
        emitted=len(emitted),
        dropped_unmapped=dropped_unmapped,
        dropped_unresolved=dropped_unresolved,
    )
    log.debug(
        "Composed %d segments (dropped %d unmapped, %d unresolved)",
        stats.emitted, stats.dropped_unmapped, stats.dropped_unresolved,
    )
    return composed, stats


def compose(
    a: MappingDocument,
    b: MappingDocument,
    *,
    read_missing_content: bool = True,
    file: str | None = None,
) -> MappingDocument:
    """Compose A (stage0 -> stage1) with B (stage1 -> stage2) into C (stage0 -> stage2)."""
    composed, _ = compose_with_stats(
        a, b, read_missing_content=read_missing_content, file=file,
    )
    return composed


def repair_placeholder_sources(
    document: MappingDocument,
    replacement: str,
    *,
    placeholder: str = PLACEHOLDER_SOURCE,
) -> MappingDocument:
    """Return a copy with ``placeholder`` source names replaced.

    javascript-obfuscator writes the literal source name "sourceMap" when it
    is not told the input file name.
    """
    if placeholder not in document.sources:
        return document
    return replace(
        document,
        sources=tuple(replacement if s == placeholder else s for s in document.sources),
    )
