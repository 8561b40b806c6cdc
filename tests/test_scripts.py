"""Tests for the translate_trace and chain_sourcemaps driver scripts."""
from __future__ import annotations

import importlib.util
import io
from pathlib import Path
from typing import Any

import orjson
import pytest

from mapchain.io_utils import load_mapping_document, write_mapping_document
from mapchain.mapping_types import MappingDocument, Segment

TRACE = "Error: Test error\n    at _0x3a4f2b (d:\\dist\\user.js:98:19)"


def _load_script(name: str) -> Any:
    root = Path(__file__).resolve().parents[1]
    script_path = root / "scripts" / f"{name}.py"
    spec = importlib.util.spec_from_file_location(name, script_path)
    assert spec is not None
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


def _chained_map(path: Path) -> None:
    write_mapping_document(
        MappingDocument(
            sources=("../src/user.ts",),
            names=("userController",),
            segments=(Segment(97, 19, 0, 4, 10, 0),),
            sources_content=("a\nb\nc\nd\n  throw new Error('Test error');\n",),
        ),
        path,
    )


class TestTranslateTrace:
    def test_literal_trace_argument(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        _chained_map(tmp_path / "user.js.map")
        mod = _load_script("translate_trace")
        mod.main([TRACE, "--maps-dir", str(tmp_path)])
        captured = capsys.readouterr()
        out = orjson.loads(captured.out)
        assert out["translated_count"] == 1
        translated = out["frames"][1]["translated"]
        assert translated["file"] == "../src/user.ts"
        assert (translated["line"], translated["column"]) == (5, 10)
        assert translated["sourceCode"] == "throw new Error('Test error');"
        assert "Successfully translated 1/1 stack frames" in captured.err

    def test_trace_from_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        log_file = tmp_path / "error.log"
        log_file.write_text(TRACE, encoding="utf-8")
        mod = _load_script("translate_trace")
        mod.main([str(log_file), "--maps-dir", str(tmp_path / "maps")])
        out = orjson.loads(capsys.readouterr().out)
        assert out["frame_count"] == 1
        assert out["frames"][1]["error"].startswith("Source map not found: ")

    def test_trace_from_stdin(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        mod = _load_script("translate_trace")
        monkeypatch.setattr("sys.stdin", io.StringIO(TRACE))
        assert mod.read_trace(None) == TRACE

    def test_empty_input_exits(self, capsys: pytest.CaptureFixture[str]) -> None:
        mod = _load_script("translate_trace")
        with pytest.raises(SystemExit) as exc:
            mod.main(["   "])
        assert exc.value.code == 1
        assert "empty input" in capsys.readouterr().err


class TestChainSourcemaps:
    def _layout(self, tmp_path: Path) -> tuple[Path, Path]:
        stage0_dir = tmp_path / "dist-sourcemaps-backup"
        dist_dir = tmp_path / "dist"
        write_mapping_document(
            MappingDocument(
                sources=("../src/user.ts",),
                names=("userController",),
                segments=(Segment(4, 10, 0, 1, 3, 0),),
                file="user.js",
            ),
            stage0_dir / "api" / "user.js.map",
        )
        write_mapping_document(
            MappingDocument(
                sources=("sourceMap",),
                names=("_0x3a4f2b",),
                segments=(Segment(97, 19, 0, 4, 10, 0),),
            ),
            dist_dir / "api" / "user.js.map",
        )
        return stage0_dir, dist_dir

    def test_find_jobs(self, tmp_path: Path) -> None:
        stage0_dir, dist_dir = self._layout(tmp_path)
        mod = _load_script("chain_sourcemaps")
        jobs = mod.find_jobs(stage0_dir, dist_dir)
        assert len(jobs) == 1
        assert jobs[0].stage1_map == dist_dir / "api" / "user.js.map"

    def test_chain_to_output_dir(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        stage0_dir, dist_dir = self._layout(tmp_path)
        output_dir = tmp_path / "out"
        mod = _load_script("chain_sourcemaps")
        with pytest.raises(SystemExit) as exc:
            mod.main([
                "--stage0-dir", str(stage0_dir),
                "--dist-dir", str(dist_dir),
                "--output-dir", str(output_dir),
                "--workers", "2",
                "--no-read-sources",
            ])
        assert exc.value.code == 0
        report = orjson.loads(capsys.readouterr().out)
        assert (report["chained"], report["failed"]) == (1, 0)

        chained = load_mapping_document(output_dir / "api" / "user.js.map")
        assert chained.sources == ("../src/user.ts",)
        assert chained.names == ("userController",)
        untouched = load_mapping_document(dist_dir / "api" / "user.js.map")
        assert untouched.sources == ("sourceMap",)

    def test_missing_stage0_dir(self, tmp_path: Path) -> None:
        (tmp_path / "dist").mkdir()
        mod = _load_script("chain_sourcemaps")
        with pytest.raises(SystemExit) as exc:
            mod.main(["--stage0-dir", str(tmp_path / "nope"), "--dist-dir", str(tmp_path / "dist")])
        assert exc.value.code == 1

    def test_repair_only(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _, dist_dir = self._layout(tmp_path)
        mod = _load_script("chain_sourcemaps")
        with pytest.raises(SystemExit) as exc:
            mod.main(["--dist-dir", str(dist_dir), "--repair-only"])
        assert exc.value.code == 0
        counts = orjson.loads(capsys.readouterr().out)
        assert counts == {"repaired": 1, "unchanged": 0, "failed": 0}
        repaired = load_mapping_document(dist_dir / "api" / "user.js.map")
        assert repaired.sources == ("../src/user.ts",)
