"""Configuration records for trace resolution and map chaining.

Both load from JSON (``from_json``); every key is optional and falls back to
the field default. Driver scripts apply CLI overrides on top with
``dataclasses.replace``.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mapchain.composer import PLACEHOLDER_SOURCE
from mapchain.io_utils import load_json
from mapchain.resolver import (
    DEFAULT_SYNTHETIC_NAME_PATTERN,
    FallbackPolicy,
    NamePolicy,
    exact_column,
    retry_at_column_zero,
)


@dataclass(frozen=True, slots=True)
class TraceConfig:
    """Where to find mapping documents for stack frames and how to resolve them."""

    maps_dir: Path = Path("./sourcemaps")
    artifact_root_marker: str = "dist"  # path component that roots generated artifacts
    map_suffix: str = ".map"
    column_zero_fallback: bool = True
    synthetic_name_pattern: str = DEFAULT_SYNTHETIC_NAME_PATTERN

    @classmethod
    def from_json(cls, path: Path) -> TraceConfig:
        """Load from a trace config JSON file."""
        data = load_json(path)
        defaults = cls()
        maps_dir = data.get("maps_dir")
        return cls(
            maps_dir=Path(maps_dir) if maps_dir else defaults.maps_dir,
            artifact_root_marker=data.get("artifact_root_marker", defaults.artifact_root_marker),
            map_suffix=data.get("map_suffix", defaults.map_suffix),
            column_zero_fallback=bool(
                data.get("column_zero_fallback", defaults.column_zero_fallback)
            ),
            synthetic_name_pattern=data.get(
                "synthetic_name_pattern", defaults.synthetic_name_pattern,
            ),
        )

    @property
    def fallback_policy(self) -> FallbackPolicy:
        return retry_at_column_zero if self.column_zero_fallback else exact_column

    @property
    def name_policy(self) -> NamePolicy:
        return NamePolicy.from_pattern(self.synthetic_name_pattern)


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Options for composing batches of mapping documents."""

    workers: int = 4
    read_missing_content: bool = True
    placeholder_source: str = PLACEHOLDER_SOURCE
    placeholder_template: str = "../src/{stem}.ts"  # {stem}: generated file name without extension

    @classmethod
    def from_json(cls, path: Path) -> ChainConfig:
        """Load from a chain config JSON file."""
        data = load_json(path)
        defaults = cls()
        return cls(
            workers=max(1, int(data.get("workers", defaults.workers))),
            read_missing_content=bool(
                data.get("read_missing_content", defaults.read_missing_content)
            ),
            placeholder_source=data.get("placeholder_source", defaults.placeholder_source),
            placeholder_template=data.get("placeholder_template", defaults.placeholder_template),
        )
