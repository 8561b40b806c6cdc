"""Tolerant stack-frame parser for V8-style diagnostic text.

Grammar (regex productions, composed bottom-up)::

    frame     := WS* "at" WS (call | bare)    (at the start of the line)
    call      := function WS "(" location ")"
    bare      := location
    location  := path ":" line ":" column
    path      := drive? path_char+
    drive     := [A-Za-z] ":" ("\\" | "/")
    function  := non-greedy text before " ("
    line      := DIGITS
    column    := DIGITS

Each production lives in ``FRAME_GRAMMAR`` so edge cases (drive letters,
back-slashes, parenthesis-less frames) can be tested one production at a
time. ``call`` is tried before ``bare``.

Every input line yields exactly one item: a ``StackFrame`` or an
``UnparsableFrame`` that carries the line verbatim, so error messages
interleaved with frames keep their place.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TypeAlias

ANONYMOUS_FUNCTION = "<anonymous>"

FRAME_GRAMMAR: dict[str, str] = {
    "drive": r"[A-Za-z]:[\\/]",
    "path_char": r"[^()]",
    "line": r"\d+",
    "column": r"\d+",
    "function": r".+?",
    "keyword": r"^\s*at\s+",
}

FRAME_GRAMMAR["path"] = rf"(?:{FRAME_GRAMMAR['drive']})?{FRAME_GRAMMAR['path_char']}+?"
FRAME_GRAMMAR["location"] = (
    rf"(?P<path>{FRAME_GRAMMAR['path']})"
    rf":(?P<line>{FRAME_GRAMMAR['line']})"
    rf":(?P<column>{FRAME_GRAMMAR['column']})"
)
FRAME_GRAMMAR["call"] = (
    rf"(?P<function>{FRAME_GRAMMAR['function']})\s+\({FRAME_GRAMMAR['location']}\)"
)
FRAME_GRAMMAR["bare"] = FRAME_GRAMMAR["location"]

DRIVE_RE = re.compile(FRAME_GRAMMAR["drive"])
LOCATION_RE = re.compile(FRAME_GRAMMAR["location"])
CALL_FRAME_RE = re.compile(FRAME_GRAMMAR["keyword"] + FRAME_GRAMMAR["call"])
BARE_FRAME_RE = re.compile(FRAME_GRAMMAR["keyword"] + FRAME_GRAMMAR["bare"])


@dataclass(frozen=True, slots=True)
class StackFrame:
    """One parsed frame. ``line`` and ``column`` are as printed by the runtime."""

    raw: str
    function_name: str
    file_path: str
    line: int
    column: int


@dataclass(frozen=True, slots=True)
class UnparsableFrame:
    """A line with no frame shape, kept verbatim."""

    raw: str


ParsedLine: TypeAlias = StackFrame | UnparsableFrame


def has_drive_letter(path: str) -> bool:
    return DRIVE_RE.match(path) is not None


def parse_location(text: str) -> tuple[str, int, int] | None:
    """Parse ``path:line:column``; None if ``text`` is not exactly that."""
    m = LOCATION_RE.fullmatch(text.strip())
    if m is None:
        return None
    return m.group("path"), int(m.group("line")), int(m.group("column"))


def parse_frame_line(text: str) -> ParsedLine:
    """Parse a single line of diagnostic text."""
    m = CALL_FRAME_RE.search(text)
    function_name = ANONYMOUS_FUNCTION
    if m is not None:
        function_name = m.group("function").strip() or ANONYMOUS_FUNCTION
    else:
        m = BARE_FRAME_RE.search(text)
        if m is None:
            return UnparsableFrame(raw=text)
    return StackFrame(
        raw=text,
        function_name=function_name,
        file_path=m.group("path").strip(),
        line=int(m.group("line")),
        column=int(m.group("column")),
    )


def parse_frames(text: str) -> list[ParsedLine]:
    """Parse multi-line diagnostic text, one item per input line, in order."""
    return [parse_frame_line(line.rstrip("\r")) for line in text.split("\n")]
