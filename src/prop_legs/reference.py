"""Read-only reference snapshot for one target date.

All external maps are re-keyed once with the canonical normalizers from `names`, so the
filter and synergy code only ever does exact dictionary lookups.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from prop_legs.models import (
    Candidate,
    EnvironmentContext,
    HeadToHeadRecord,
    ReliabilityRecord,
    ValidationVerdict,
)
from prop_legs.names import (
    canonical_team,
    normalize_pace,
    normalize_person_name,
    normalize_script,
    normalize_side,
    normalize_stat,
    stat_family,
)
from prop_legs.rules import CategoryRule
from prop_legs.util.parsing import clamp_unit, safe_float, safe_int, safe_str, safe_unit

DEFENSE_STAT_TYPES = ("points", "rebounds", "assists")
VERDICT_STATUSES = ("approved", "conditional", "rejected")


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _split_key(raw: str, parts: int) -> list[str] | None:
    pieces = [piece.strip() for piece in str(raw).split("|")]
    if len(pieces) != parts or not all(pieces):
        return None
    return pieces


def parse_environment(payload: Mapping[str, Any] | EnvironmentContext) -> EnvironmentContext:
    if isinstance(payload, EnvironmentContext):
        return payload
    total = safe_float(_pick(payload, "expected_total", "vegas_total", "vegasTotal"))
    grind = safe_float(_pick(payload, "grind_factor", "grindFactor"))
    opponent = safe_str(_pick(payload, "opponent", "opponent_abbrev"))
    return EnvironmentContext(
        expected_total=total if total is not None else 220.0,
        pace=normalize_pace(safe_str(_pick(payload, "pace", "pace_rating", "paceRating"))),
        game_script=normalize_script(safe_str(_pick(payload, "game_script", "gameScript"))),
        grind_factor=clamp_unit(grind) if grind is not None else 0.5,
        opponent=canonical_team(opponent) if opponent else "",
        event_id=safe_str(payload.get("event_id")),
    )


def parse_h2h(payload: Mapping[str, Any] | HeadToHeadRecord, opponent: str) -> HeadToHeadRecord:
    if isinstance(payload, HeadToHeadRecord):
        return payload
    return HeadToHeadRecord(
        games_played=safe_int(_pick(payload, "games_played", "gamesPlayed")) or 0,
        avg_stat=safe_float(_pick(payload, "avg_stat", "avgStat")) or 0.0,
        hit_rate_over=safe_unit(_pick(payload, "hit_rate_over", "hitRateOver")) or 0.0,
        hit_rate_under=safe_unit(_pick(payload, "hit_rate_under", "hitRateUnder")) or 0.0,
        max_stat=safe_float(_pick(payload, "max_stat", "maxStat")) or 0.0,
        min_stat=safe_float(_pick(payload, "min_stat", "minStat")) or 0.0,
        opponent=opponent,
    )


def parse_verdict(payload: Mapping[str, Any] | ValidationVerdict) -> ValidationVerdict | None:
    if isinstance(payload, ValidationVerdict):
        return payload
    status = safe_str(_pick(payload, "status", "validation_status")).lower()
    if status not in VERDICT_STATUSES:
        return None
    return ValidationVerdict(
        status=status,  # type: ignore[arg-type]
        reason=safe_str(_pick(payload, "reason", "rejection_reason")),
        confidence_adjustment=safe_float(
            _pick(payload, "confidence_adjustment", "adjustment")
        )
        or 0.0,
    )


def parse_reliability(payload: Mapping[str, Any] | ReliabilityRecord) -> ReliabilityRecord:
    if isinstance(payload, ReliabilityRecord):
        return payload
    return ReliabilityRecord(
        tier=safe_str(_pick(payload, "tier", "reliability_tier")) or "unknown",
        hit_rate=safe_unit(payload.get("hit_rate")),
        should_block=bool(_pick(payload, "should_block", "shouldBlock")),
    )


def _sample_count(value: Any) -> int | None:
    if isinstance(value, Mapping):
        value = _pick(value, "total", "sample_size", "settled")
    return safe_int(value)


@dataclass(frozen=True)
class ReferenceData:
    """Canonically keyed lookups; a missing entry always means "no opinion"."""

    h2h: Mapping[tuple[str, str, str], HeadToHeadRecord] = field(default_factory=dict)
    environment: Mapping[str, EnvironmentContext] = field(default_factory=dict)
    defense: Mapping[tuple[str, str], int] = field(default_factory=dict)
    verdicts: Mapping[tuple[str, str, str], ValidationVerdict] = field(default_factory=dict)
    reliability: Mapping[tuple[str, str], ReliabilityRecord] = field(default_factory=dict)
    category_samples: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_mappings(
        cls,
        *,
        h2h: Mapping[str, Any] | None = None,
        environment: Mapping[str, Any] | None = None,
        defense: Mapping[str, Any] | None = None,
        verdicts: Mapping[str, Any] | None = None,
        reliability: Mapping[str, Any] | None = None,
        category_samples: Mapping[str, Any] | None = None,
    ) -> ReferenceData:
        """Build a snapshot from plain `a|b|c`-keyed maps; unusable entries are skipped."""
        h2h_out: dict[tuple[str, str, str], HeadToHeadRecord] = {}
        for raw_key, payload in (h2h or {}).items():
            parts = _split_key(raw_key, 3)
            if parts is None or not isinstance(payload, (Mapping, HeadToHeadRecord)):
                continue
            subject, opponent, stat = parts
            team = canonical_team(opponent)
            h2h_out[(normalize_person_name(subject), team, stat_family(stat))] = parse_h2h(
                payload, team
            )

        env_out: dict[str, EnvironmentContext] = {}
        for raw_team, payload in (environment or {}).items():
            team = canonical_team(str(raw_team))
            if team and isinstance(payload, (Mapping, EnvironmentContext)):
                env_out[team] = parse_environment(payload)

        defense_out: dict[tuple[str, str], int] = {}
        for raw_key, value in (defense or {}).items():
            parts = _split_key(raw_key, 2)
            rank = safe_int(value)
            if parts is None or rank is None:
                continue
            defense_out[(canonical_team(parts[0]), stat_family(parts[1]))] = rank

        verdict_out: dict[tuple[str, str, str], ValidationVerdict] = {}
        for raw_key, payload in (verdicts or {}).items():
            parts = _split_key(raw_key, 3)
            if parts is None or not isinstance(payload, (Mapping, ValidationVerdict)):
                continue
            verdict = parse_verdict(payload)
            side = normalize_side(parts[2])
            if verdict is None or not side:
                continue
            verdict_out[(normalize_person_name(parts[0]), stat_family(parts[1]), side)] = verdict

        reliability_out: dict[tuple[str, str], ReliabilityRecord] = {}
        for raw_key, payload in (reliability or {}).items():
            parts = _split_key(raw_key, 2)
            if parts is None or not isinstance(payload, (Mapping, ReliabilityRecord)):
                continue
            key = (normalize_person_name(parts[0]), stat_family(parts[1]))
            reliability_out[key] = parse_reliability(payload)

        samples_out: dict[str, int] = {}
        for raw_category, value in (category_samples or {}).items():
            count = _sample_count(value)
            if count is not None:
                samples_out[str(raw_category).strip().upper()] = count

        return cls(
            h2h=h2h_out,
            environment=env_out,
            defense=defense_out,
            verdicts=verdict_out,
            reliability=reliability_out,
            category_samples=samples_out,
        )

    def environment_for(self, candidate: Candidate) -> EnvironmentContext | None:
        return self.environment.get(candidate.team)

    def opponent_for(self, candidate: Candidate) -> str:
        context = self.environment_for(candidate)
        return context.opponent if context is not None else ""

    def h2h_for(self, candidate: Candidate) -> HeadToHeadRecord | None:
        """Look up the matchup history against today's opponent.

        Without a known opponent, a record is used only when it is the single one on file
        for (subject, stat); several would make the choice ambiguous.
        """
        subject = normalize_person_name(candidate.subject)
        family = stat_family(candidate.stat)
        opponent = self.opponent_for(candidate)
        if opponent:
            return self.h2h.get((subject, opponent, family))
        matches = [
            record
            for (record_subject, _, record_family), record in self.h2h.items()
            if record_subject == subject and record_family == family
        ]
        return matches[0] if len(matches) == 1 else None

    def defense_rank_for(self, candidate: Candidate, rule: CategoryRule | None) -> int | None:
        opponent = self.opponent_for(candidate)
        if not opponent:
            return None
        rank = self.defense.get((opponent, defense_stat_type(candidate, rule)))
        if rank is None or rank <= 0:
            return None
        return rank

    def verdict_for(self, candidate: Candidate) -> ValidationVerdict | None:
        subject = normalize_person_name(candidate.subject)
        return self.verdicts.get((subject, stat_family(candidate.stat), candidate.side))

    def reliability_for(self, candidate: Candidate) -> ReliabilityRecord | None:
        key = (normalize_person_name(candidate.subject), stat_family(candidate.stat))
        return self.reliability.get(key)

    def sample_size_for(self, candidate: Candidate) -> int | None:
        if not candidate.category:
            return None
        return self.category_samples.get(candidate.category.strip().upper())


def defense_stat_type(candidate: Candidate, rule: CategoryRule | None) -> str:
    """Defense tables only rank points, rebounds and assists."""
    if rule is not None and rule.stat_type in DEFENSE_STAT_TYPES:
        return rule.stat_type
    normalized = normalize_stat(candidate.stat)
    if "rebound" in normalized:
        return "rebounds"
    if "assist" in normalized:
        return "assists"
    return "points"
