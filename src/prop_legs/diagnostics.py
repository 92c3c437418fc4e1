"""Structured trace of every filtering, scoring and selection decision.

The recorder is a pure observer. Selection code hands it facts and never reads anything
back, so a run with and without a recorder picks the same legs.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from prop_legs.models import Candidate, ScoreBreakdown, SelectedLeg

STAGES = ("archetype", "reliability", "edge", "h2h", "environment", "pattern")
SAFETY_STAGE = "safety"


@dataclass(frozen=True)
class StageEvent:
    stage: str
    passed: bool
    reason: str


@dataclass(frozen=True)
class RejectionEvent:
    subject: str
    stat: str
    category: str | None
    side: str
    stage: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "stat": self.stat,
            "category": self.category,
            "side": self.side,
            "stage": self.stage,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class CandidateTrace:
    pool_index: int
    label: str
    events: tuple[StageEvent, ...]
    breakdown: ScoreBreakdown | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pool_index": self.pool_index,
            "label": self.label,
            "events": [
                {"stage": event.stage, "passed": event.passed, "reason": event.reason}
                for event in self.events
            ],
            "breakdown": self.breakdown.to_dict() if self.breakdown is not None else None,
        }


@dataclass(frozen=True)
class LegTrace:
    position: int
    label: str
    slot: str
    phase: str
    score: float
    individual_score: float
    synergy: float
    breakdown: ScoreBreakdown

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "label": self.label,
            "slot": self.slot,
            "phase": self.phase,
            "score": self.score,
            "individual_score": self.individual_score,
            "synergy": self.synergy,
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass(frozen=True)
class Diagnostics:
    target_date: str
    preset: str
    rule_version: str
    total_candidates: int
    eligible_count: int
    stage_counts: dict[str, int]
    rejections: tuple[RejectionEvent, ...]
    candidates: tuple[CandidateTrace, ...]
    selected: tuple[LegTrace, ...]
    normalization: dict[str, Any] = field(default_factory=dict)

    @property
    def selected_count(self) -> int:
        return len(self.selected)

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_date": self.target_date,
            "preset": self.preset,
            "rule_version": self.rule_version,
            "total_candidates": self.total_candidates,
            "eligible_count": self.eligible_count,
            "selected_count": self.selected_count,
            "stage_counts": dict(self.stage_counts),
            "rejections": [event.to_dict() for event in self.rejections],
            "candidates": [trace.to_dict() for trace in self.candidates],
            "selected": [trace.to_dict() for trace in self.selected],
            "normalization": dict(self.normalization),
        }


class DiagnosticsRecorder:
    """Collects run facts; `snapshot()` freezes them into a `Diagnostics` value."""

    def __init__(self) -> None:
        self._labels: dict[int, str] = {}
        self._events: dict[int, list[StageEvent]] = {}
        self._breakdowns: dict[int, ScoreBreakdown] = {}
        self._rejections: list[RejectionEvent] = []
        self._selected: list[LegTrace] = []
        self._eligible = 0
        self._normalization: dict[str, Any] = {}

    def record_normalization(self, summary: dict[str, Any]) -> None:
        self._normalization = dict(summary)

    def record_candidate(self, candidate: Candidate) -> None:
        self._labels.setdefault(candidate.pool_index, candidate.label)
        self._events.setdefault(candidate.pool_index, [])

    def record_stage(self, candidate: Candidate, stage: str, passed: bool, reason: str) -> None:
        self.record_candidate(candidate)
        self._events[candidate.pool_index].append(StageEvent(stage, passed, reason))
        if not passed:
            self._rejections.append(
                RejectionEvent(
                    subject=candidate.subject,
                    stat=candidate.stat,
                    category=candidate.category,
                    side=candidate.side,
                    stage=stage,
                    reason=reason,
                )
            )

    def record_eligible(self, count: int) -> None:
        self._eligible = count

    def record_score(self, candidate: Candidate, breakdown: ScoreBreakdown) -> None:
        self.record_candidate(candidate)
        self._breakdowns[candidate.pool_index] = breakdown

    def record_selection(self, leg: SelectedLeg, phase: str) -> None:
        self._selected.append(
            LegTrace(
                position=len(self._selected) + 1,
                label=leg.candidate.label,
                slot=leg.slot,
                phase=phase,
                score=leg.score,
                individual_score=leg.individual_score,
                synergy=leg.synergy,
                breakdown=leg.breakdown,
            )
        )

    def record_safety_drop(self, leg: SelectedLeg, reason: str) -> None:
        self.record_stage(leg.candidate, SAFETY_STAGE, False, reason)
        kept = [trace for trace in self._selected if trace.label != leg.candidate.label]
        self._selected = [replace(trace, position=index + 1) for index, trace in enumerate(kept)]

    def snapshot(self, *, target_date: str, preset: str, rule_version: str) -> Diagnostics:
        stage_counts = {stage: 0 for stage in STAGES}
        for event in self._rejections:
            stage_counts[event.stage] = stage_counts.get(event.stage, 0) + 1
        traces = tuple(
            CandidateTrace(
                pool_index=index,
                label=self._labels[index],
                events=tuple(self._events.get(index, ())),
                breakdown=self._breakdowns.get(index),
            )
            for index in sorted(self._labels)
        )
        return Diagnostics(
            target_date=target_date,
            preset=preset,
            rule_version=rule_version,
            total_candidates=len(self._labels),
            eligible_count=self._eligible,
            stage_counts=stage_counts,
            rejections=tuple(self._rejections),
            candidates=traces,
            selected=tuple(self._selected),
            normalization=dict(self._normalization),
        )
