"""Six-stage eligibility filter chain.

Stages run in a fixed order and each one only sees survivors of the stages before it, so
the cheap static checks run ahead of the reference-data lookups. Every stage is a plain
function of `(candidate, context)` and can be tested on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace

from prop_legs.diagnostics import DiagnosticsRecorder
from prop_legs.models import Candidate, EnvironmentContext
from prop_legs.names import normalize_stat, stat_family
from prop_legs.patterns import PatternResult, evaluate_pattern
from prop_legs.reference import ReferenceData
from prop_legs.rules import RuleTable
from prop_legs.util.parsing import clamp_unit

logger = logging.getLogger(__name__)

H2H_MIN_MEETINGS = 2
H2H_DECISIVE_MEETINGS = 3
H2H_MIN_SIDE_HIT_RATE = 0.40
H2H_OVER_AVG_FLOOR = 0.75
H2H_UNDER_AVG_CEILING = 1.25
CONDITIONAL_MIN_HIT_RATE = 0.70
NO_PROJECTION_REASON = "no projection"


@dataclass(frozen=True)
class FilterContext:
    reference: ReferenceData
    rules: RuleTable


@dataclass(frozen=True)
class StageOutcome:
    passed: bool
    reason: str
    candidate: Candidate
    pattern: PatternResult | None = None
    defense_rank: int | None = None


@dataclass(frozen=True)
class EligibleCandidate:
    """A survivor of every stage, carrying what the pattern stage learned."""

    candidate: Candidate
    pattern: PatternResult
    defense_rank: int | None = None
    environment: EnvironmentContext | None = None


def _ok(candidate: Candidate, reason: str) -> StageOutcome:
    return StageOutcome(passed=True, reason=reason, candidate=candidate)


def _reject(candidate: Candidate, reason: str) -> StageOutcome:
    return StageOutcome(passed=False, reason=reason, candidate=candidate)


def _stat_matches(normalized: str, stat: str) -> bool:
    return stat_family(normalized) == stat or stat.rstrip("s") in normalized


def check_archetype(candidate: Candidate, context: FilterContext) -> StageOutcome:
    archetype = (candidate.archetype or "").upper()
    if not archetype or archetype == "UNKNOWN":
        return _ok(candidate, "no archetype")
    normalized = normalize_stat(candidate.stat)
    overrides = context.rules.category_overrides.get(candidate.category or "", ())
    if any(_stat_matches(normalized, stat) for stat in overrides):
        return _ok(candidate, f"{candidate.category} override for {archetype}")
    for blocked in context.rules.archetype_blocks.get(archetype, ()):
        if _stat_matches(normalized, blocked):
            return _reject(candidate, f"{archetype} blocks {blocked}")
    return _ok(candidate, f"{archetype} aligned")


def check_reliability(candidate: Candidate, context: FilterContext) -> StageOutcome:
    record = context.reference.reliability_for(candidate)
    if record is None:
        return _ok(candidate, "no reliability record")
    if record.should_block:
        return _reject(candidate, f"reliability block ({record.tier})")
    return _ok(candidate, f"reliability {record.tier}")


def directional_edge(candidate: Candidate) -> float | None:
    """Projected minus line for overs, line minus projected for unders."""
    if candidate.projected_value is None and candidate.actual_line is None:
        return None
    line = candidate.actual_line if candidate.actual_line is not None else candidate.line
    projection = candidate.projected_value if candidate.projected_value is not None else line
    if candidate.side == "over":
        return projection - line
    return line - projection


def check_edge(candidate: Candidate, context: FilterContext) -> StageOutcome:
    edge = directional_edge(candidate)
    if edge is None:
        return _reject(candidate, NO_PROJECTION_REASON)
    family = stat_family(candidate.stat)
    threshold = context.rules.edge_threshold(family)
    if edge < threshold:
        return _reject(candidate, f"edge {edge:.2f} < min {threshold:g} ({family})")
    return _ok(candidate, f"edge {edge:.2f} >= {threshold:g}")


def check_h2h(candidate: Candidate, context: FilterContext) -> StageOutcome:
    record = context.reference.h2h_for(candidate)
    if record is None or record.games_played < H2H_MIN_MEETINGS:
        return _ok(candidate, "no matchup history")
    games = record.games_played
    opponent = record.opponent or "opponent"
    if games >= H2H_DECISIVE_MEETINGS:
        hit_rate = record.side_hit_rate(candidate.side)
        if hit_rate < H2H_MIN_SIDE_HIT_RATE:
            return _reject(
                candidate,
                f"{hit_rate:.0%} {candidate.side} vs {opponent} over {games} meetings",
            )
        line = candidate.line
        if candidate.side == "over" and record.avg_stat < line * H2H_OVER_AVG_FLOOR:
            return _reject(candidate, f"h2h avg {record.avg_stat:.1f} too far below {line:g}")
        if candidate.side == "under" and record.avg_stat > line * H2H_UNDER_AVG_CEILING:
            return _reject(candidate, f"h2h avg {record.avg_stat:.1f} too far above {line:g}")
    return _ok(candidate, f"h2h ok vs {opponent} ({games} meetings)")


def check_environment(candidate: Candidate, context: FilterContext) -> StageOutcome:
    verdict = context.reference.verdict_for(candidate)
    if verdict is None:
        return _ok(candidate, "no verdict")
    adjustment = verdict.confidence_adjustment / 100.0
    if verdict.status == "rejected":
        return _reject(candidate, f"verdict rejected: {verdict.reason or 'no reason given'}")
    if verdict.status == "conditional":
        hit_rate = candidate.hit_rate or 0.0
        if hit_rate < CONDITIONAL_MIN_HIT_RATE:
            return _reject(
                candidate,
                f"conditional verdict needs hit rate >= {CONDITIONAL_MIN_HIT_RATE:.0%}",
            )
        adjusted = replace(candidate, confidence=clamp_unit(candidate.confidence + adjustment))
        return _ok(adjusted, "conditional verdict overridden by hit rate")
    if adjustment > 0:
        adjusted = replace(candidate, confidence=clamp_unit(candidate.confidence + adjustment))
        return _ok(adjusted, f"approved (+{verdict.confidence_adjustment:g})")
    return _ok(candidate, "approved")


def check_pattern(candidate: Candidate, context: FilterContext) -> StageOutcome:
    rule = context.rules.rule_for(candidate.category)
    environment = context.reference.environment_for(candidate)
    rank = context.reference.defense_rank_for(candidate, rule)
    result = evaluate_pattern(candidate, environment, rank, rule)
    return StageOutcome(
        passed=result.passes,
        reason=result.reason,
        candidate=candidate,
        pattern=result,
        defense_rank=rank,
    )


Stage = Callable[[Candidate, FilterContext], StageOutcome]

FILTER_STAGES: tuple[tuple[str, Stage], ...] = (
    ("archetype", check_archetype),
    ("reliability", check_reliability),
    ("edge", check_edge),
    ("h2h", check_h2h),
    ("environment", check_environment),
    ("pattern", check_pattern),
)


def run_filter_chain(
    candidates: Sequence[Candidate],
    reference: ReferenceData,
    rules: RuleTable,
    recorder: DiagnosticsRecorder | None = None,
) -> list[EligibleCandidate]:
    """Run every candidate through all stages; returns survivors in pool order."""
    context = FilterContext(reference=reference, rules=rules)
    eligible: list[EligibleCandidate] = []
    for original in candidates:
        if recorder is not None:
            recorder.record_candidate(original)
        current = original
        last: StageOutcome | None = None
        for stage, check in FILTER_STAGES:
            last = check(current, context)
            if recorder is not None:
                recorder.record_stage(current, stage, last.passed, last.reason)
            if not last.passed:
                logger.debug("%s rejected at %s: %s", current.label, stage, last.reason)
                break
            current = last.candidate
        if last is None or not last.passed or last.pattern is None:
            continue
        eligible.append(
            EligibleCandidate(
                candidate=current,
                pattern=last.pattern,
                defense_rank=last.defense_rank,
                environment=reference.environment_for(current),
            )
        )
    if recorder is not None:
        recorder.record_eligible(len(eligible))
    return eligible
