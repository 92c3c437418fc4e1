from typing import Any

import pytest

from prop_legs.diagnostics import DiagnosticsRecorder
from prop_legs.filters import (
    NO_PROJECTION_REASON,
    FilterContext,
    check_archetype,
    check_edge,
    check_environment,
    check_h2h,
    check_reliability,
    directional_edge,
    run_filter_chain,
)
from prop_legs.models import Candidate
from prop_legs.reference import ReferenceData
from prop_legs.rules import DEFAULT_RULE_TABLE


def _candidate(**extra: Any) -> Candidate:
    fields: dict[str, Any] = {
        "subject": "Filter Player",
        "stat": "points",
        "line": 20.5,
        "side": "over",
        "confidence": 0.7,
        "edge": 0.0,
        "team": "PHX",
        "hit_rate": 0.75,
        "projected_value": 26.0,
        "actual_line": 20.5,
    }
    fields.update(extra)
    return Candidate(**fields)


def _context(**mappings: Any) -> FilterContext:
    reference = ReferenceData.from_mappings(**mappings)
    return FilterContext(reference=reference, rules=DEFAULT_RULE_TABLE)


def test_archetype_blocks_misaligned_stats() -> None:
    outcome = check_archetype(_candidate(archetype="PURE_SHOOTER", stat="rebounds"), _context())
    assert not outcome.passed
    assert outcome.reason == "PURE_SHOOTER blocks rebounds"

    assert check_archetype(_candidate(archetype="PURE_SHOOTER"), _context()).passed
    assert check_archetype(_candidate(archetype="UNKNOWN", stat="blocks"), _context()).passed
    assert check_archetype(_candidate(archetype=None), _context()).passed


def test_category_override_beats_archetype_block() -> None:
    blocked = _candidate(archetype="GLASS_CLEANER", stat="assists", line=4.5)
    assert not check_archetype(blocked, _context()).passed

    overridden = _candidate(
        archetype="GLASS_CLEANER", stat="assists", line=4.5, category="BIG_ASSIST_OVER"
    )
    assert check_archetype(overridden, _context()).passed
    # The override only covers assists.
    points = _candidate(archetype="GLASS_CLEANER", category="BIG_ASSIST_OVER")
    assert not check_archetype(points, _context()).passed


def test_reliability_block() -> None:
    context = _context(
        reliability={"Filter Player|points": {"tier": "avoid", "should_block": True}}
    )
    outcome = check_reliability(_candidate(), context)
    assert not outcome.passed
    assert "avoid" in outcome.reason
    assert check_reliability(_candidate(stat="rebounds"), context).passed


def test_directional_edge() -> None:
    assert directional_edge(_candidate()) == pytest.approx(5.5)
    under = _candidate(side="under", projected_value=15.0)
    assert directional_edge(under) == pytest.approx(5.5)
    assert directional_edge(_candidate(actual_line=None, line=22.5)) == pytest.approx(3.5)
    assert directional_edge(_candidate(projected_value=None)) == 0.0
    assert directional_edge(_candidate(projected_value=None, actual_line=None)) is None


def test_edge_stage_enforces_family_floor() -> None:
    assert check_edge(_candidate(), _context()).passed
    short = check_edge(_candidate(projected_value=24.0), _context())
    assert not short.passed
    assert short.reason == "edge 3.50 < min 4.5 (points)"
    threes = _candidate(stat="threes", line=2.5, actual_line=2.5, projected_value=3.5)
    assert check_edge(threes, _context()).passed


def test_edge_stage_requires_projection() -> None:
    outcome = check_edge(_candidate(projected_value=None, actual_line=None), _context())
    assert not outcome.passed
    assert outcome.reason == NO_PROJECTION_REASON


def _h2h(**record: Any) -> FilterContext:
    return _context(
        environment={"PHX": {"opponent": "DEN"}},
        h2h={"Filter Player|DEN|points": record},
    )


def test_h2h_needs_three_meetings_to_reject() -> None:
    assert check_h2h(_candidate(), _h2h(games_played=2, hit_rate_over=0.0)).passed
    outcome = check_h2h(_candidate(), _h2h(games_played=3, hit_rate_over=0.3, avg_stat=25.0))
    assert not outcome.passed
    assert "3 meetings" in outcome.reason


def test_h2h_average_bounds() -> None:
    over = check_h2h(_candidate(), _h2h(games_played=4, hit_rate_over=0.5, avg_stat=14.0))
    assert not over.passed

    under = _candidate(side="under", line=10.5)
    hot = _h2h(games_played=4, hit_rate_under=0.5, avg_stat=14.0)
    assert not check_h2h(under, hot).passed
    fine = _h2h(games_played=4, hit_rate_under=0.5, avg_stat=12.0)
    assert check_h2h(under, fine).passed


def _verdict(status: str, adjustment: float = 0.0) -> FilterContext:
    return _context(
        verdicts={"Filter Player|points|over": {"status": status, "adjustment": adjustment}}
    )


def test_rejected_verdict() -> None:
    outcome = check_environment(_candidate(), _verdict("rejected"))
    assert not outcome.passed
    assert outcome.reason.startswith("verdict rejected")


def test_conditional_verdict_needs_hit_rate() -> None:
    assert not check_environment(_candidate(hit_rate=0.65), _verdict("conditional", 5)).passed
    assert not check_environment(_candidate(hit_rate=None), _verdict("conditional")).passed
    outcome = check_environment(_candidate(hit_rate=0.72), _verdict("conditional", 5))
    assert outcome.passed
    assert outcome.candidate.confidence == pytest.approx(0.75)


def test_approved_verdict_only_raises_confidence() -> None:
    raised = check_environment(_candidate(), _verdict("approved", 10))
    assert raised.candidate.confidence == pytest.approx(0.8)
    lowered = check_environment(_candidate(), _verdict("approved", -10))
    assert lowered.passed
    assert lowered.candidate.confidence == 0.7
    capped = check_environment(_candidate(confidence=0.98), _verdict("approved", 10))
    assert capped.candidate.confidence == 1.0


def test_filter_chain_stops_at_first_failure() -> None:
    candidates = [
        _candidate(subject="Blocked", archetype="PURE_SHOOTER", stat="rebounds", pool_index=0),
        _candidate(subject="No Projection", projected_value=None, actual_line=None, pool_index=1),
        _candidate(subject="Eligible", category="STAR_FLOOR_OVER", pool_index=2),
    ]
    recorder = DiagnosticsRecorder()
    reference = ReferenceData.from_mappings(
        environment={"PHX": {"expected_total": 225, "game_script": "SHOOTOUT"}}
    )

    eligible = run_filter_chain(candidates, reference, DEFAULT_RULE_TABLE, recorder)

    assert [entry.candidate.subject for entry in eligible] == ["Eligible"]
    assert eligible[0].pattern.score == 7.0
    assert eligible[0].environment is not None
    snapshot = recorder.snapshot(target_date="2026-01-26", preset="balanced", rule_version="v6.0")
    assert snapshot.stage_counts["archetype"] == 1
    assert snapshot.stage_counts["edge"] == 1
    assert snapshot.eligible_count == 1
    blocked_trace = snapshot.candidates[0]
    assert [event.stage for event in blocked_trace.events] == ["archetype"]
    assert len(snapshot.candidates[2].events) == 6
