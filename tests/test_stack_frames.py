"""Tests for mapchain.stack_frames: the V8 frame grammar."""
from __future__ import annotations

import re

import pytest

from mapchain.stack_frames import (
    ANONYMOUS_FUNCTION,
    FRAME_GRAMMAR,
    StackFrame,
    UnparsableFrame,
    has_drive_letter,
    parse_frame_line,
    parse_frames,
    parse_location,
)


class TestGrammarProductions:
    @pytest.mark.parametrize("text", ["c:\\", "D:/", "z:\\"])
    def test_drive(self, text: str) -> None:
        assert re.fullmatch(FRAME_GRAMMAR["drive"], text)

    @pytest.mark.parametrize("text", ["c:", "1:\\", "cd:/"])
    def test_not_a_drive(self, text: str) -> None:
        assert not re.fullmatch(FRAME_GRAMMAR["drive"], text)

    def test_path_excludes_parentheses(self) -> None:
        assert re.fullmatch(FRAME_GRAMMAR["path"], "/app/dist/user.js")
        assert not re.fullmatch(FRAME_GRAMMAR["path"], "/app/(dist)/user.js")

    def test_location_groups(self) -> None:
        m = re.fullmatch(FRAME_GRAMMAR["location"], "C:\\dist\\user.js:98:19")
        assert m is not None
        assert m.group("path", "line", "column") == ("C:\\dist\\user.js", "98", "19")

    def test_has_drive_letter(self) -> None:
        assert has_drive_letter("d:\\dist\\user.js")
        assert not has_drive_letter("/usr/lib/node.js")


class TestParseLocation:
    def test_posix(self) -> None:
        assert parse_location("/srv/app/dist/index.js:12:4") == ("/srv/app/dist/index.js", 12, 4)

    def test_windows(self) -> None:
        assert parse_location("d:\\dist\\user.js:98:19") == ("d:\\dist\\user.js", 98, 19)

    def test_rejects_partial(self) -> None:
        assert parse_location("/srv/app/index.js:12") is None
        assert parse_location("not a location") is None


class TestParseFrameLine:
    def test_call_frame_with_drive_letter(self) -> None:
        frame = parse_frame_line("    at _0x3a4f2b (d:\\dist\\user.js:98:19)")
        assert isinstance(frame, StackFrame)
        assert frame.function_name == "_0x3a4f2b"
        assert frame.file_path == "d:\\dist\\user.js"
        assert (frame.line, frame.column) == (98, 19)

    def test_call_frame_posix(self) -> None:
        frame = parse_frame_line("    at Object.handler (/srv/app/dist/index.js:7:13)")
        assert isinstance(frame, StackFrame)
        assert frame.function_name == "Object.handler"
        assert frame.file_path == "/srv/app/dist/index.js"

    def test_function_names_with_spaces_and_brackets(self) -> None:
        frame = parse_frame_line("    at new UserService (/srv/dist/user.js:3:9)")
        assert isinstance(frame, StackFrame)
        assert frame.function_name == "new UserService"

        frame = parse_frame_line("    at Object.<anonymous> (/srv/dist/main.js:1:1)")
        assert isinstance(frame, StackFrame)
        assert frame.function_name == "Object.<anonymous>"

    def test_bare_frame_is_anonymous(self) -> None:
        frame = parse_frame_line("    at /srv/app/dist/index.js:40:2")
        assert isinstance(frame, StackFrame)
        assert frame.function_name == ANONYMOUS_FUNCTION
        assert frame.file_path == "/srv/app/dist/index.js"
        assert (frame.line, frame.column) == (40, 2)

    def test_file_url_path(self) -> None:
        frame = parse_frame_line("    at run (file:///srv/app/dist/index.js:5:1)")
        assert isinstance(frame, StackFrame)
        assert frame.file_path == "file:///srv/app/dist/index.js"

    @pytest.mark.parametrize(
        "line",
        [
            "Error: Test error",
            "",
            "    at <anonymous>",
            "    at native",
            "Look at this",
            "Error: job timed out at 12:30:45",
            "Retry scheduled at /srv/app/dist/index.js:40:2",
        ],
    )
    def test_unparsable(self, line: str) -> None:
        assert parse_frame_line(line) == UnparsableFrame(raw=line)

    def test_raw_text_kept(self) -> None:
        line = "    at _0x1727fb (d:\\dist\\index.js:12:5)"
        frame = parse_frame_line(line)
        assert frame.raw == line


class TestParseFrames:
    def test_order_and_one_item_per_line(self) -> None:
        text = (
            "Error: Test error\n"
            "    at _0x3a4f2b (d:\\dist\\user.js:98:19)\n"
            "    at /srv/app/dist/index.js:40:2\r\n"
            "    at process.processTicksAndRejections (node:internal/process/task_queues:95:5)"
        )
        items = parse_frames(text)
        assert len(items) == 4
        assert isinstance(items[0], UnparsableFrame)
        assert [type(i) for i in items[1:]] == [StackFrame, StackFrame, StackFrame]
        assert items[2].raw == "    at /srv/app/dist/index.js:40:2"
        last = items[3]
        assert isinstance(last, StackFrame)
        assert last.file_path == "node:internal/process/task_queues"
        assert (last.line, last.column) == (95, 5)
