"""Tests for mapchain.encoder, including the decode/encode round-trip law."""
from __future__ import annotations

import orjson
import pytest

from mapchain.decoder import decode_document, decode_mappings
from mapchain.encoder import dumps_document, encode_document, encode_mappings
from mapchain.mapping_types import MappingDocument, Segment


class TestEncodeMappings:
    def test_canonical_stream_is_reproduced(self) -> None:
        segments = decode_mappings("AAAA,KAAKA;EACH", 1, 1)
        assert encode_mappings(segments) == "AAAA,KAAKA;EACH"

    def test_leading_empty_lines(self) -> None:
        assert encode_mappings([Segment(2, 0, 0, 0, 0)]) == ";;AAAA"

    def test_generated_only_segment(self) -> None:
        assert encode_mappings([Segment(0, 0, 0, 0, 0), Segment(0, 1)]) == "AAAA,C"

    def test_empty(self) -> None:
        assert encode_mappings([]) == ""

    def test_deltas_span_lines(self) -> None:
        segments = [Segment(0, 0, 0, 10, 4, 1), Segment(1, 0, 0, 11, 0, 0)]
        # second segment: source +0, line +1, column -4, name -1
        assert encode_mappings(segments) == "AAUIC;AACJD"

    def test_column_order_inside_line_is_preserved(self) -> None:
        segments = [Segment(0, 5, 0, 0, 0), Segment(0, 4, 0, 0, 1)]
        assert encode_mappings(segments) == "KAAA,DAAC"


@pytest.mark.parametrize(
    "mappings",
    [
        "AAAA,KAAKA;EACH",
        ";;AAAA;",
        "AAAA,C;;gBAAgB,E",
        "KAAA,DAAA",
        "AAAAA,SAASC,EAAEA;AACAD",
        "AACA,AADA;AACAA",
    ],
)
def test_round_trip_law(mappings: str) -> None:
    obj = {
        "version": 3,
        "sources": ["a.ts", "b.ts"],
        "names": ["foo", "bar", "baz"],
        "mappings": mappings,
    }
    first = decode_document(obj)
    second = decode_document(encode_document(first))
    assert second.segments == first.segments
    assert second.sources == first.sources
    assert second.names == first.names


class TestEncodeDocument:
    def test_envelope_keys(self) -> None:
        doc = MappingDocument(
            sources=("user.ts",),
            names=("userController",),
            segments=(Segment(0, 0, 0, 0, 0, 0),),
            sources_content=("export class User {}",),
            file="user.js",
            source_root="../src",
        )
        out = encode_document(doc)
        assert out == {
            "version": 3,
            "file": "user.js",
            "sourceRoot": "../src",
            "sources": ["user.ts"],
            "sourcesContent": ["export class User {}"],
            "names": ["userController"],
            "mappings": "AAAAA",
        }

    def test_optional_keys_omitted(self) -> None:
        doc = MappingDocument(
            sources=("a.ts",),
            names=(),
            segments=(),
            sources_content=(None,),
        )
        out = encode_document(doc)
        assert "file" not in out
        assert "sourceRoot" not in out
        assert "sourcesContent" not in out

    def test_dumps_is_json(self) -> None:
        doc = MappingDocument(sources=("a.ts",), names=(), segments=(Segment(0, 0, 0, 0, 0),))
        parsed = orjson.loads(dumps_document(doc, pretty=True))
        assert parsed["mappings"] == "AAAA"
