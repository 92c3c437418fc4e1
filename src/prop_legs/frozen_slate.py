"""Frozen slates: the complete input of one run, serialized for replay.

A slate written by `export_frozen_slate` and read back by `load_frozen_slate` rebuilds the
exact same leg set, which makes slates the fixtures for regression tests.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import polars as pl

from prop_legs.models import Candidate
from prop_legs.storage import atomic_write_json, load_json
from prop_legs.time_utils import validate_target_date

SCHEMA_VERSION = 1

_CANDIDATE_SCHEMA: list[tuple[str, Any]] = [
    ("pool_index", pl.Int64),
    ("subject", pl.Utf8),
    ("stat", pl.Utf8),
    ("line", pl.Float64),
    ("side", pl.Utf8),
    ("confidence", pl.Float64),
    ("edge", pl.Float64),
    ("team", pl.Utf8),
    ("event_id", pl.Utf8),
    ("game_date", pl.Utf8),
    ("archetype", pl.Utf8),
    ("category", pl.Utf8),
    ("injury_status", pl.Utf8),
    ("hit_rate", pl.Float64),
    ("reliability_tier", pl.Utf8),
    ("projected_value", pl.Float64),
    ("actual_line", pl.Float64),
    ("source", pl.Utf8),
]

_CANDIDATE_SORT_KEYS = ["pool_index", "subject", "stat", "side"]


@dataclass(frozen=True)
class FrozenSlate:
    target_date: str
    preset: str
    rule_version: str
    candidates: list[dict[str, Any]]
    h2h: dict[str, Any] = field(default_factory=dict)
    environment: dict[str, Any] = field(default_factory=dict)
    defense: dict[str, Any] = field(default_factory=dict)
    verdicts: dict[str, Any] = field(default_factory=dict)
    reliability: dict[str, Any] = field(default_factory=dict)
    category_samples: dict[str, Any] = field(default_factory=dict)
    schema_version: int = SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "target_date": self.target_date,
            "preset": self.preset,
            "rule_version": self.rule_version,
            "candidates": [dict(row) for row in self.candidates],
            "h2h": dict(self.h2h),
            "environment": dict(self.environment),
            "defense": dict(self.defense),
            "verdicts": dict(self.verdicts),
            "reliability": dict(self.reliability),
            "category_samples": dict(self.category_samples),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> FrozenSlate:
        version = payload.get("schema_version")
        if version != SCHEMA_VERSION:
            raise ValueError(f"unsupported frozen slate schema_version: {version}")
        candidates = payload.get("candidates", [])
        if not isinstance(candidates, list):
            raise ValueError("frozen slate candidates must be a list")

        def _table(key: str) -> dict[str, Any]:
            value = payload.get(key) or {}
            if not isinstance(value, dict):
                raise ValueError(f"frozen slate {key} must be an object")
            return value

        return cls(
            target_date=validate_target_date(str(payload.get("target_date", ""))),
            preset=str(payload.get("preset", "")),
            rule_version=str(payload.get("rule_version", "")),
            candidates=[row for row in candidates if isinstance(row, dict)],
            h2h=_table("h2h"),
            environment=_table("environment"),
            defense=_table("defense"),
            verdicts=_table("verdicts"),
            reliability=_table("reliability"),
            category_samples=_table("category_samples"),
        )


def freeze_slate(
    *,
    target_date: str,
    preset: str,
    rule_version: str,
    candidates: Sequence[Candidate | Mapping[str, Any]],
    h2h: Mapping[str, Any] | None = None,
    environment: Mapping[str, Any] | None = None,
    defense: Mapping[str, Any] | None = None,
    verdicts: Mapping[str, Any] | None = None,
    reliability: Mapping[str, Any] | None = None,
    category_samples: Mapping[str, Any] | None = None,
) -> FrozenSlate:
    rows = [item.to_dict() if isinstance(item, Candidate) else dict(item) for item in candidates]
    return FrozenSlate(
        target_date=validate_target_date(target_date),
        preset=preset,
        rule_version=rule_version,
        candidates=rows,
        h2h=dict(h2h or {}),
        environment=dict(environment or {}),
        defense=dict(defense or {}),
        verdicts=dict(verdicts or {}),
        reliability=dict(reliability or {}),
        category_samples=dict(category_samples or {}),
    )


def frozen_slate_filename(target_date: str, preset: str) -> str:
    return f"frozen_slate_{target_date}_{preset}.json"


def export_frozen_slate(slate: FrozenSlate, path: Path) -> Path:
    """Write a slate as sorted-key JSON; a directory target gets the standard filename."""
    target = path
    if path.is_dir():
        target = path / frozen_slate_filename(slate.target_date, slate.preset)
    atomic_write_json(target, slate.to_dict())
    return target


def load_frozen_slate(path: Path) -> FrozenSlate:
    payload = load_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"frozen slate root must be an object: {path}")
    return FrozenSlate.from_dict(payload)


def _enforce_schema(frame: pl.DataFrame) -> pl.DataFrame:
    columns = [name for name, _ in _CANDIDATE_SCHEMA]
    working = frame
    for name, dtype in _CANDIDATE_SCHEMA:
        if name not in working.columns:
            working = working.with_columns(pl.lit(None).cast(dtype).alias(name))
        else:
            working = working.with_columns(pl.col(name).cast(dtype, strict=False))
    return working.select(columns)


def candidates_frame(slate: FrozenSlate) -> pl.DataFrame:
    rows = [{name: row.get(name) for name, _ in _CANDIDATE_SCHEMA} for row in slate.candidates]
    if not rows:
        return pl.DataFrame(schema=dict(_CANDIDATE_SCHEMA))
    frame = _enforce_schema(pl.DataFrame(rows, infer_schema_length=None))
    return frame.sort(_CANDIDATE_SORT_KEYS, nulls_last=True)


def lake_frozen_slate(path: Path, out_path: Path | None = None) -> Path:
    """Export a slate's candidate pool as a schema-enforced Parquet table."""
    slate = load_frozen_slate(path)
    output = out_path if out_path is not None else path.with_suffix(".parquet")
    output.parent.mkdir(parents=True, exist_ok=True)
    candidates_frame(slate).write_parquet(output, compression="zstd")
    return output
