"""Core types shared by every mapchain layer.

All segment coordinates are 0-based (generated line, generated column,
original line, original column). The public resolver API converts lines to
1-based at its edge; nothing below it does.

Type hierarchy:
  Ok[T] / Err[E]     — Strict algebraic Result type
  Segment            — One decoded mapping entry (the single currency)
  MappingDocument    — Decoded v3 document: tables + segment stream
  OriginalPosition   — Resolved generated -> original answer
  GeneratedPosition  — Resolved original -> generated answer
  ResolutionMiss     — Typed "not found" payload (data, not an exception)

Exceptions:
  MappingError       — Base class
  MalformedMapping   — Structural decode failure, carries line/segment
  MissingDocument    — Primary mapping document absent
  MissingContent     — A source's content could not be read
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")
E = TypeVar("E")

SOURCE_MAP_VERSION = 3

# ---------------------------------------------------------------------------
# Result ADT: strict Ok/Err
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success case of Result[T, E].

    Usage::

        result = resolver.resolve(98, 19)
        match result:
            case Ok(value=pos): print(pos.source)
            case Err(error=miss): print(miss.reason)
    """
    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure case of Result[T, E]. Keeps the reason instead of a bare None."""
    error: E


Result: TypeAlias = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class MappingError(Exception):
    """Base class for mapping document failures."""


class MalformedMapping(MappingError, ValueError):
    """Raised when a mapping document cannot be decoded.

    ``line`` and ``segment`` locate the offending segment in the encoded
    stream (both 0-based); they are None for envelope-level problems.
    """

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        segment: int | None = None,
    ) -> None:
        self.line = line
        self.segment = segment
        if line is not None:
            where = f"line {line}" if segment is None else f"line {line}, segment {segment}"
            message = f"{message} ({where})"
        super().__init__(message)


class MissingDocument(MappingError, FileNotFoundError):
    """Raised when the primary mapping document does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Source map not found: {path}")


class MissingContent(MappingError, OSError):
    """Raised when a source's original text cannot be loaded."""

    def __init__(self, source: str, detail: str) -> None:
        self.source = source
        super().__init__(f"Could not read source {source!r}: {detail}")


# ---------------------------------------------------------------------------
# Segment / MappingDocument
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Segment:
    """One mapping entry correlating a generated position with an original one.

    A segment without ``source_index`` is generated-only (injected code with
    no origin). It stays in the stream and ends the span of the segment before
    it, so a lookup that lands on it is a miss.
    """
    generated_line: int
    generated_column: int
    source_index: int | None = None
    original_line: int | None = None
    original_column: int | None = None
    name_index: int | None = None

    @property
    def has_original(self) -> bool:
        return self.source_index is not None


@dataclass(frozen=True, slots=True)
class MappingDocument:
    """Decoded, read-only mapping document.

    ``location`` is the file the document was read from. It is used to find
    source content on disk and is never serialized.
    """
    sources: tuple[str, ...]
    names: tuple[str, ...]
    segments: tuple[Segment, ...]
    sources_content: tuple[str | None, ...] | None = None
    file: str | None = None
    source_root: str | None = None
    location: Path | None = None

    def resolved_source(self, index: int) -> str:
        """Source name at ``index`` with ``sourceRoot`` applied."""
        source = self.sources[index]
        if not self.source_root:
            return source
        return posixpath.join(self.source_root, source)

    def content_for(self, index: int) -> str | None:
        """Embedded content for source ``index``, or None."""
        if self.sources_content is None or index >= len(self.sources_content):
            return None
        return self.sources_content[index]

    def with_location(self, location: Path | None) -> MappingDocument:
        return replace(self, location=location)


# ---------------------------------------------------------------------------
# Resolution results
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class OriginalPosition:
    """Answer to "where did this generated position come from?".

    ``line`` is 1-based, ``column`` 0-based.
    """
    source: str
    source_index: int
    line: int
    column: int
    name: str | None = None


@dataclass(frozen=True, slots=True)
class GeneratedPosition:
    """Answer to "where did this original position end up?" (1-based line)."""
    line: int
    column: int


@dataclass(frozen=True, slots=True)
class ResolutionMiss:
    """Typed not-found result for a position query."""
    reason: str  # "no_segments_on_line" | "before_first_segment" | "unmapped_segment" | "unknown_source" | "invalid_position"
    line: int
    column: int
