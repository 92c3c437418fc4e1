"""Merge heterogeneous candidate sources into one schema-uniform, deduplicated pool."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from prop_legs.models import UNKNOWN_TEAM, Candidate
from prop_legs.names import (
    canonical_team,
    normalize_person_name,
    normalize_side,
    normalize_stat,
)
from prop_legs.util.parsing import clamp_unit, safe_float, safe_str, safe_unit

logger = logging.getLogger(__name__)

SourceKind = Literal["category", "risk"]


@dataclass(frozen=True)
class SourceDefaults:
    confidence: float
    hit_rate_for_edge: float | None
    side: str = "over"


# Fallbacks for fields a source leaves empty. Hit rate is never defaulted here.
SOURCE_DEFAULTS: dict[str, SourceDefaults] = {
    "category": SourceDefaults(confidence=0.8, hit_rate_for_edge=0.7),
    "risk": SourceDefaults(confidence=0.7, hit_rate_for_edge=None),
}


@dataclass(frozen=True)
class CandidateSource:
    """One ordered source of raw candidate rows; earlier sources win."""

    name: str
    rows: Sequence[Mapping[str, Any]]
    kind: SourceKind = "risk"


@dataclass
class NormalizationReport:
    candidates: list[Candidate] = field(default_factory=list)
    total_records: int = 0
    malformed: int = 0
    duplicates: int = 0
    side_conflicts: int = 0
    out_players: int = 0
    per_source: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_records": self.total_records,
            "kept": len(self.candidates),
            "malformed": self.malformed,
            "duplicates": self.duplicates,
            "side_conflicts": self.side_conflicts,
            "out_players": self.out_players,
            "per_source": dict(sorted(self.per_source.items())),
        }


def _first(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _optional_text(value: Any) -> str | None:
    text = safe_str(value)
    return text or None


def is_out_status(status: str | None) -> bool:
    return "out" in (status or "").lower()


def _line_for(row: Mapping[str, Any], kind: str) -> float:
    if kind == "category":
        raw = _first(row, "actual_line", "recommended_line", "line")
    else:
        raw = _first(row, "line", "actual_line")
    return safe_float(raw) or 0.0


def _edge_for(row: Mapping[str, Any], defaults: SourceDefaults, hit_rate: float | None) -> float:
    explicit = safe_float(row.get("edge"))
    if explicit is not None:
        return explicit
    if defaults.hit_rate_for_edge is None:
        return 0.0
    rate = hit_rate if hit_rate is not None else defaults.hit_rate_for_edge
    return rate * 10 - 5


def candidate_from_row(
    row: Mapping[str, Any],
    *,
    source: CandidateSource,
    pool_index: int,
    team_map: Mapping[str, str] | None = None,
    injuries: Mapping[str, str] | None = None,
) -> Candidate | None:
    """Normalize one raw record; returns None when the record is malformed."""
    subject = safe_str(_first(row, "subject", "player_name", "player"))
    stat = safe_str(_first(row, "stat", "prop_type", "market"))
    if not subject or not normalize_stat(stat):
        return None

    defaults = SOURCE_DEFAULTS.get(source.kind, SOURCE_DEFAULTS["risk"])
    side_keys = ("recommended_side", "side") if source.kind == "category" else ("side",)
    raw_side = _first(row, *side_keys)
    side = normalize_side(str(raw_side)) if raw_side is not None else defaults.side
    if not side:
        return None

    person = normalize_person_name(subject)
    team_raw = ""
    if team_map:
        team_raw = safe_str(team_map.get(person))
    if not team_raw:
        team_raw = safe_str(_first(row, "team", "team_name", "team_abbrev"))
    team = canonical_team(team_raw) if team_raw else UNKNOWN_TEAM

    injury = _optional_text(_first(row, "injury_status", "injuryStatus"))
    if injury is None and injuries:
        injury = _optional_text(injuries.get(person))

    hit_rate = safe_unit(_first(row, "hit_rate", "recent_hit_rate", "l10_hit_rate"))
    confidence = safe_unit(_first(row, "confidence", "confidence_score"))
    archetype = _optional_text(row.get("archetype"))

    return Candidate(
        subject=subject,
        stat=stat,
        line=_line_for(row, source.kind),
        side=side,  # type: ignore[arg-type]
        confidence=clamp_unit(confidence if confidence is not None else defaults.confidence),
        edge=_edge_for(row, defaults, hit_rate),
        team=team,
        event_id=safe_str(row.get("event_id")),
        game_date=safe_str(_first(row, "game_date", "analysis_date")),
        archetype=archetype.upper() if archetype else None,
        category=_optional_text(row.get("category")),
        injury_status=injury,
        hit_rate=hit_rate,
        reliability_tier=_optional_text(row.get("reliability_tier")),
        projected_value=safe_float(row.get("projected_value")),
        actual_line=safe_float(row.get("actual_line")),
        source=safe_str(row.get("source")) or source.name,
        pool_index=pool_index,
    )


def merge_candidate_sources(
    sources: Iterable[CandidateSource],
    *,
    team_map: Mapping[str, str] | None = None,
    injuries: Mapping[str, str] | None = None,
) -> NormalizationReport:
    """Merge sources in priority order, keeping the first record seen per subject."""
    normalized_teams = (
        {normalize_person_name(name): team for name, team in team_map.items()} if team_map else None
    )
    normalized_injuries = (
        {normalize_person_name(name): status for name, status in injuries.items()}
        if injuries
        else None
    )
    report = NormalizationReport()
    seen_subjects: dict[str, Candidate] = {}

    for source in sources:
        kept_for_source = 0
        for row in source.rows:
            report.total_records += 1
            if not isinstance(row, Mapping):
                report.malformed += 1
                continue
            candidate = candidate_from_row(
                row,
                source=source,
                pool_index=len(report.candidates),
                team_map=normalized_teams,
                injuries=normalized_injuries,
            )
            if candidate is None:
                report.malformed += 1
                continue
            if is_out_status(candidate.injury_status):
                report.out_players += 1
                continue
            key = normalize_person_name(candidate.subject)
            existing = seen_subjects.get(key)
            if existing is not None:
                same_stat = normalize_stat(existing.stat) == normalize_stat(candidate.stat)
                if same_stat and existing.side != candidate.side:
                    report.side_conflicts += 1
                    logger.debug(
                        "dropping %s from %s: %s already recommends %s",
                        candidate.label,
                        source.name,
                        existing.source,
                        existing.side,
                    )
                else:
                    report.duplicates += 1
                continue
            seen_subjects[key] = candidate
            report.candidates.append(candidate)
            kept_for_source += 1
        report.per_source[source.name] = report.per_source.get(source.name, 0) + kept_for_source

    return report
