"""Decode v3 mapping documents into an ordered segment table.

The ``mappings`` string is structured as generated lines (separated by
``;``), then segments per line (``,``), then fields within a segment (VLQs
are self-delimiting). A segment has 1 field (generated-only), 4 fields
(mapped) or 5 fields (mapped with name).

Every numeric field is a signed delta. The generated column restarts at 0 on
each generated line; source index, original line, original column and name
index carry over from the previous segment that had them, across the whole
document.

Decoding is all-or-nothing: a malformed stream raises ``MalformedMapping``
and no partial table is returned.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from mapchain.mapping_types import (
    SOURCE_MAP_VERSION,
    MalformedMapping,
    MappingDocument,
    Segment,
)
from mapchain.vlq import VlqDecodeError, decode_values

_VALID_FIELD_COUNTS = (1, 4, 5)


def decode_mappings(
    mappings: str,
    source_count: int,
    name_count: int,
) -> tuple[Segment, ...]:
    """Decode a ``mappings`` string against tables of the given sizes."""
    segments: list[Segment] = []
    if not mappings:
        return ()

    source_index = 0
    original_line = 0
    original_column = 0
    name_index = 0

    for line_no, line in enumerate(mappings.split(";")):
        generated_column = 0
        if line == "":
            continue

        for seg_no, raw in enumerate(line.split(",")):
            if raw == "":
                raise MalformedMapping("empty segment", line=line_no, segment=seg_no)
            try:
                fields = decode_values(raw)
            except VlqDecodeError as exc:
                raise MalformedMapping(
                    f"{exc} in segment {raw!r}", line=line_no, segment=seg_no,
                ) from exc
            if len(fields) not in _VALID_FIELD_COUNTS:
                raise MalformedMapping(
                    f"invalid segment field count {len(fields)}: {raw!r}",
                    line=line_no,
                    segment=seg_no,
                )

            generated_column += fields[0]
            if generated_column < 0:
                raise MalformedMapping(
                    f"negative generated column {generated_column}",
                    line=line_no,
                    segment=seg_no,
                )

            if len(fields) == 1:
                segments.append(Segment(line_no, generated_column))
                continue

            source_index += fields[1]
            original_line += fields[2]
            original_column += fields[3]
            if not 0 <= source_index < source_count:
                raise MalformedMapping(
                    f"source index {source_index} out of range (sources: {source_count})",
                    line=line_no,
                    segment=seg_no,
                )
            if original_line < 0 or original_column < 0:
                raise MalformedMapping(
                    f"negative original position {original_line}:{original_column}",
                    line=line_no,
                    segment=seg_no,
                )

            segment_name: int | None = None
            if len(fields) == 5:
                name_index += fields[4]
                if not 0 <= name_index < name_count:
                    raise MalformedMapping(
                        f"name index {name_index} out of range (names: {name_count})",
                        line=line_no,
                        segment=seg_no,
                    )
                segment_name = name_index

            segments.append(Segment(
                generated_line=line_no,
                generated_column=generated_column,
                source_index=source_index,
                original_line=original_line,
                original_column=original_column,
                name_index=segment_name,
            ))

    return tuple(segments)


def _string_table(obj: dict[str, Any], key: str, *, allow_null: bool) -> tuple[str, ...]:
    raw = obj.get(key, [])
    if not isinstance(raw, list):
        raise MalformedMapping(f"'{key}' must be a list")
    items: list[str] = []
    for item in raw:
        if item is None and allow_null:
            items.append("")
        elif isinstance(item, str):
            items.append(item)
        else:
            raise MalformedMapping(f"'{key}' must contain only strings, got {item!r}")
    return tuple(items)


def _sources_content(obj: dict[str, Any], source_count: int) -> tuple[str | None, ...] | None:
    raw = obj.get("sourcesContent")
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise MalformedMapping("'sourcesContent' must be a list")
    if len(raw) > source_count:
        raise MalformedMapping(
            f"'sourcesContent' has {len(raw)} entries for {source_count} sources"
        )
    content: list[str | None] = []
    for item in raw:
        if item is not None and not isinstance(item, str):
            raise MalformedMapping("'sourcesContent' must contain only strings or null")
        content.append(item)
    content.extend([None] * (source_count - len(content)))
    return tuple(content)


def decode_document(obj: Any, *, location: Path | None = None) -> MappingDocument:
    """Decode a parsed mapping document (the JSON object) into a MappingDocument.

    Args:
        obj: The parsed JSON envelope.
        location: Path the document was read from, if any. Kept on the
            result so source content can be located relative to it.

    Raises:
        MalformedMapping: on any envelope or stream problem.
    """
    if not isinstance(obj, dict):
        raise MalformedMapping("mapping document must be a JSON object")
    if "sections" in obj:
        raise MalformedMapping("indexed source maps ('sections') are not supported")

    version = obj.get("version")
    if version is not None and version != SOURCE_MAP_VERSION:
        raise MalformedMapping(
            f"unsupported version {version!r}; expected {SOURCE_MAP_VERSION}"
        )

    sources = _string_table(obj, "sources", allow_null=True)
    names = _string_table(obj, "names", allow_null=False)

    mappings = obj.get("mappings", "")
    if not isinstance(mappings, str):
        raise MalformedMapping("'mappings' must be a string")

    file = obj.get("file")
    if file is not None and not isinstance(file, str):
        raise MalformedMapping("'file' must be a string")
    source_root = obj.get("sourceRoot")
    if source_root is not None and not isinstance(source_root, str):
        raise MalformedMapping("'sourceRoot' must be a string")

    return MappingDocument(
        sources=sources,
        names=names,
        segments=decode_mappings(mappings, len(sources), len(names)),
        sources_content=_sources_content(obj, len(sources)),
        file=file,
        source_root=source_root or None,
        location=location,
    )
