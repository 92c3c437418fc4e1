"""Deterministic two-phase leg selection: category quotas first, then fallback fill."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from prop_legs.diagnostics import DiagnosticsRecorder
from prop_legs.filters import EligibleCandidate
from prop_legs.models import FALLBACK_SLOT, Candidate, ScoreBreakdown, SelectedLeg
from prop_legs.names import normalize_person_name
from prop_legs.presets import WeightConfig
from prop_legs.reference import ReferenceData
from prop_legs.rules import QuotaSlot, RuleTable
from prop_legs.scoring import score_candidate
from prop_legs.synergy import CombinedScore, combined_score, find_hard_conflicts

logger = logging.getLogger(__name__)

PHASE_CATEGORY = "category"
PHASE_FALLBACK = "fallback"


@dataclass
class SelectionState:
    """Exclusion sets threaded through both phases."""

    used_teams: set[str] = field(default_factory=set)
    used_subjects: set[str] = field(default_factory=set)
    category_counts: dict[str, int] = field(default_factory=dict)
    legs: list[SelectedLeg] = field(default_factory=list)

    @property
    def selected(self) -> list[Candidate]:
        return [leg.candidate for leg in self.legs]

    def is_available(self, candidate: Candidate, rules: RuleTable) -> bool:
        if candidate.team in self.used_teams:
            return False
        if normalize_person_name(candidate.subject) in self.used_subjects:
            return False
        category = candidate.category or ""
        quota = rules.quota_for(category) if category else 0
        return not (quota and self.category_counts.get(category, 0) >= quota)

    def add(self, leg: SelectedLeg) -> None:
        candidate = leg.candidate
        self.legs.append(leg)
        self.used_teams.add(candidate.team)
        self.used_subjects.add(normalize_person_name(candidate.subject))
        if candidate.category:
            self.category_counts[candidate.category] = (
                self.category_counts.get(candidate.category, 0) + 1
            )


@dataclass(frozen=True)
class _Ranked:
    entry: EligibleCandidate
    breakdown: ScoreBreakdown
    combined: CombinedScore


def _matches_slot(entry: EligibleCandidate, slot: QuotaSlot) -> bool:
    return entry.candidate.category == slot.category and entry.candidate.side == slot.side


def _rank(
    pool: Sequence[tuple[EligibleCandidate, ScoreBreakdown]],
    state: SelectionState,
    reference: ReferenceData,
    rules: RuleTable,
) -> list[_Ranked]:
    ranked: list[_Ranked] = []
    selected = state.selected
    for entry, breakdown in pool:
        combined = combined_score(entry.candidate, breakdown.total, selected, reference, rules)
        if combined.blocked:
            logger.debug("%s blocked by a hard conflict", entry.candidate.label)
            continue
        ranked.append(_Ranked(entry=entry, breakdown=breakdown, combined=combined))
    ranked.sort(key=lambda item: (-item.combined.total, item.entry.candidate.pool_index))
    return ranked


def _leg(item: _Ranked, slot: str) -> SelectedLeg:
    return SelectedLeg(
        candidate=item.entry.candidate,
        score=item.combined.total,
        individual_score=item.combined.individual,
        synergy=item.combined.synergy,
        slot=slot,
        pattern_score=item.entry.pattern.score,
        breakdown=item.breakdown,
        opponent_defense_rank=item.entry.defense_rank,
    )


def select_legs(
    eligible: Sequence[EligibleCandidate],
    reference: ReferenceData,
    weights: WeightConfig,
    rules: RuleTable,
    recorder: DiagnosticsRecorder | None = None,
) -> list[SelectedLeg]:
    """Fill quota slots in priority order, then top up from any remaining candidate.

    Each pick is re-ranked against the partial selection so synergy reflects what is
    already chosen. Ties fall back to pool order. May return fewer than
    `rules.target_legs` legs.
    """
    scored: list[tuple[EligibleCandidate, ScoreBreakdown]] = []
    for entry in eligible:
        breakdown = score_candidate(
            entry.candidate,
            entry.pattern.score,
            weights,
            sample_size=reference.sample_size_for(entry.candidate),
        )
        scored.append((entry, breakdown))
        if recorder is not None:
            recorder.record_score(entry.candidate, breakdown)

    target = max(0, rules.target_legs)
    state = SelectionState()

    for slot in rules.quotas:
        added = 0
        while added < slot.quota and len(state.legs) < target:
            pool = [
                item
                for item in scored
                if _matches_slot(item[0], slot) and state.is_available(item[0].candidate, rules)
            ]
            ranked = _rank(pool, state, reference, rules)
            if not ranked:
                break
            leg = _leg(ranked[0], slot.category)
            state.add(leg)
            added += 1
            if recorder is not None:
                recorder.record_selection(leg, PHASE_CATEGORY)

    while len(state.legs) < target:
        pool = [item for item in scored if state.is_available(item[0].candidate, rules)]
        ranked = _rank(pool, state, reference, rules)
        if not ranked:
            break
        leg = _leg(ranked[0], FALLBACK_SLOT)
        state.add(leg)
        if recorder is not None:
            recorder.record_selection(leg, PHASE_FALLBACK)

    return _drop_hard_conflicts(state.legs, recorder)


def _drop_hard_conflicts(
    legs: list[SelectedLeg], recorder: DiagnosticsRecorder | None
) -> list[SelectedLeg]:
    conflicts = find_hard_conflicts(legs)
    if not conflicts:
        return legs
    dropped = {later for _, later in conflicts}
    for index in sorted(dropped):
        leg = legs[index]
        logger.warning("dropping %s: conflicts with an earlier leg", leg.candidate.label)
        if recorder is not None:
            recorder.record_safety_drop(leg, "same subject on both sides")
    return [leg for index, leg in enumerate(legs) if index not in dropped]
