"""Encode segment tables back into the v3 wire form.

Inverse of ``mapchain.decoder``. Segments are grouped by generated line in
stream order; columns inside a line are never re-sorted, so decode followed
by encode followed by decode reproduces the same segment sequence.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import orjson

from mapchain.mapping_types import SOURCE_MAP_VERSION, MappingDocument, Segment
from mapchain.vlq import encode_values


def encode_mappings(segments: Iterable[Segment]) -> str:
    """Delta-encode ``segments`` into a ``mappings`` string."""
    by_line: dict[int, list[Segment]] = {}
    for segment in segments:
        by_line.setdefault(segment.generated_line, []).append(segment)
    if not by_line:
        return ""

    source_index = 0
    original_line = 0
    original_column = 0
    name_index = 0

    encoded_lines: list[str] = []
    for line_no in range(max(by_line) + 1):
        generated_column = 0
        encoded: list[str] = []
        for segment in by_line.get(line_no, ()):
            fields = [segment.generated_column - generated_column]
            generated_column = segment.generated_column

            if segment.source_index is not None:
                assert segment.original_line is not None
                assert segment.original_column is not None
                fields += [
                    segment.source_index - source_index,
                    segment.original_line - original_line,
                    segment.original_column - original_column,
                ]
                source_index = segment.source_index
                original_line = segment.original_line
                original_column = segment.original_column

                if segment.name_index is not None:
                    fields.append(segment.name_index - name_index)
                    name_index = segment.name_index

            encoded.append(encode_values(fields))
        encoded_lines.append(",".join(encoded))

    return ";".join(encoded_lines)


def encode_document(document: MappingDocument) -> dict[str, Any]:
    """Build the JSON envelope for ``document``."""
    out: dict[str, Any] = {"version": SOURCE_MAP_VERSION}
    if document.file is not None:
        out["file"] = document.file
    if document.source_root:
        out["sourceRoot"] = document.source_root
    out["sources"] = list(document.sources)
    if document.sources_content is not None and any(
        c is not None for c in document.sources_content
    ):
        out["sourcesContent"] = list(document.sources_content)
    out["names"] = list(document.names)
    out["mappings"] = encode_mappings(document.segments)
    return out


def dumps_document(document: MappingDocument, *, pretty: bool = False) -> bytes:
    """Serialize ``document`` to JSON bytes."""
    opts = orjson.OPT_INDENT_2 if pretty else 0
    return orjson.dumps(encode_document(document), option=opts)
