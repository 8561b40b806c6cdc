"""Base64 VLQ primitives for the v3 ``mappings`` stream.

Each value is split into 5-bit groups, least significant first. Bit 5 of a
digit is the continuation flag; bit 0 of the first group carries the sign.
"""
from __future__ import annotations

from collections.abc import Iterable

BASE64_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"

_VLQ_BASE_SHIFT = 5
_VLQ_BASE = 1 << _VLQ_BASE_SHIFT
_VLQ_BASE_MASK = _VLQ_BASE - 1
_VLQ_CONTINUATION_BIT = _VLQ_BASE

_DIGIT_VALUES: dict[str, int] = {ch: i for i, ch in enumerate(BASE64_ALPHABET)}


class VlqDecodeError(ValueError):
    """Raised for an invalid digit or an unterminated value."""

    def __init__(self, message: str, offset: int) -> None:
        self.offset = offset
        super().__init__(message)


def encode_value(value: int) -> str:
    """Encode one signed integer."""
    vlq = (-value << 1) | 1 if value < 0 else value << 1
    out: list[str] = []
    while True:
        digit = vlq & _VLQ_BASE_MASK
        vlq >>= _VLQ_BASE_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION_BIT
        out.append(BASE64_ALPHABET[digit])
        if not vlq:
            return "".join(out)


def encode_values(values: Iterable[int]) -> str:
    """Encode a sequence of signed integers as one segment."""
    return "".join(encode_value(v) for v in values)


def decode_values(segment: str) -> list[int]:
    """Decode every value in ``segment``.

    Raises:
        VlqDecodeError: on a character outside the base64 alphabet, or when
            the last digit still has its continuation bit set.
    """
    values: list[int] = []
    shift = 0
    accum = 0
    in_value = False
    for offset, ch in enumerate(segment):
        digit = _DIGIT_VALUES.get(ch)
        if digit is None:
            raise VlqDecodeError(f"invalid base64 digit {ch!r}", offset)
        in_value = True
        accum += (digit & _VLQ_BASE_MASK) << shift
        if digit & _VLQ_CONTINUATION_BIT:
            shift += _VLQ_BASE_SHIFT
            continue
        negative = accum & 1
        accum >>= 1
        values.append(-accum if negative else accum)
        shift = 0
        accum = 0
        in_value = False
    if in_value:
        raise VlqDecodeError("unterminated VLQ value", len(segment))
    return values
