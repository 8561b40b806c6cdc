"""File I/O for mapping documents and their original sources.

orjson handles all JSON parsing and serialization. The core never writes
implicitly; ``write_mapping_document`` exists for driver scripts.
"""
from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Any

import orjson

from mapchain.decoder import decode_document
from mapchain.encoder import dumps_document
from mapchain.mapping_types import (
    MalformedMapping,
    MappingDocument,
    MissingContent,
    MissingDocument,
)


def load_json(path: Path) -> Any:
    """Load JSON from a file using orjson."""
    return orjson.loads(path.read_bytes())


def load_mapping_document(path: Path) -> MappingDocument:
    """Read and decode the mapping document at ``path``.

    Raises:
        MissingDocument: if the file does not exist.
        MalformedMapping: if it is not valid JSON or fails to decode.
    """
    if not path.is_file():
        raise MissingDocument(path)
    try:
        obj = load_json(path)
    except orjson.JSONDecodeError as exc:
        raise MalformedMapping(f"invalid JSON in {path}: {exc}") from exc
    return decode_document(obj, location=path)


def write_mapping_document(
    document: MappingDocument,
    path: Path,
    *,
    pretty: bool = False,
) -> None:
    """Serialize ``document`` to ``path`` (compact by default, like generators emit)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps_document(document, pretty=pretty))


def source_path_for(document: MappingDocument, index: int) -> Path | None:
    """Filesystem path of source ``index``, relative to the document's location."""
    if document.location is None:
        return None
    source = document.sources[index]
    if document.source_root:
        source = posixpath.join(document.source_root, source)
    if "://" in source:
        scheme, _, rest = source.partition("://")
        if scheme != "file":
            return None
        source = rest
    return (document.location.parent / source).resolve()


def read_source_content(document: MappingDocument, index: int) -> str:
    """Read original text of source ``index`` from disk.

    Raises:
        MissingContent: when the path cannot be derived or read.
    """
    source = document.sources[index]
    try:
        path = source_path_for(document, index)
        text = path.read_text(encoding="utf-8") if path is not None else None
    except (OSError, ValueError) as exc:
        # ValueError covers undecodable bytes and NUL characters in the name
        raise MissingContent(source, str(exc)) from exc
    if text is None:
        raise MissingContent(source, "no readable location for source")
    return text
