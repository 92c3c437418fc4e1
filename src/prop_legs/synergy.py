"""Pairwise synergy and conflict scoring between legs."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from prop_legs.models import UNKNOWN_TEAM, Candidate, SelectedLeg
from prop_legs.names import normalize_person_name, stat_family
from prop_legs.reference import ReferenceData
from prop_legs.rules import DEFAULT_RULE_TABLE, RuleTable

HARD_CONFLICT = -2.0
SOFT_CONFLICT = -1.0
ENVIRONMENT_BONUS = 1.0
CROSS_EVENT_UNDER_BONUS = 0.5
SYNERGY_MULTIPLIER = 2.0
DEFAULT_EXPECTED_TOTAL = 220.0


@dataclass(frozen=True)
class CombinedScore:
    individual: float
    synergy: float
    blocked: bool = False

    @property
    def total(self) -> float:
        if self.blocked:
            return -math.inf
        return self.individual + SYNERGY_MULTIPLIER * self.synergy


def is_hard_conflict(a: Candidate, b: Candidate) -> bool:
    same_subject = normalize_person_name(a.subject) == normalize_person_name(b.subject)
    return same_subject and a.side != b.side


def _same_team(a: Candidate, b: Candidate) -> bool:
    return a.team == b.team and a.team != UNKNOWN_TEAM


def _event_id(candidate: Candidate, reference: ReferenceData) -> str:
    if candidate.event_id:
        return candidate.event_id
    context = reference.environment_for(candidate)
    return context.event_id if context is not None else ""


def _faces(a: Candidate, b: Candidate, reference: ReferenceData) -> bool:
    opponent = reference.opponent_for(a)
    return bool(opponent) and opponent == b.team


def _same_event(a: Candidate, b: Candidate, reference: ReferenceData) -> bool:
    event_a = _event_id(a, reference)
    if event_a and event_a == _event_id(b, reference):
        return True
    return _faces(a, b, reference) or _faces(b, a, reference)


def _expected_total(candidate: Candidate, reference: ReferenceData) -> float:
    context = reference.environment_for(candidate)
    return context.expected_total if context is not None else DEFAULT_EXPECTED_TOTAL


def pair_synergy(
    a: Candidate,
    b: Candidate,
    reference: ReferenceData,
    rules: RuleTable = DEFAULT_RULE_TABLE,
) -> float:
    """Compatibility of two legs; -2 marks a pair that may never be co-selected."""
    if is_hard_conflict(a, b):
        return HARD_CONFLICT

    same_team = _same_team(a, b)
    if not (same_team or _same_event(a, b, reference)):
        if a.side == "under" and b.side == "under":
            return CROSS_EVENT_UNDER_BONUS
        return 0.0

    family_a = stat_family(a.stat)
    family_b = stat_family(b.stat)
    both_over = a.side == "over" and b.side == "over"

    if (
        same_team
        and both_over
        and family_a == "points"
        and family_b == "points"
        and min(a.line, b.line) >= rules.high_line_points
    ):
        return SOFT_CONFLICT

    synergy = 0.0
    totals = (_expected_total(a, reference), _expected_total(b, reference))
    if min(totals) < rules.low_total:
        if both_over and family_a == "rebounds" and family_b == "rebounds":
            synergy += ENVIRONMENT_BONUS
        if a.side == "under" and b.side == "under":
            synergy += ENVIRONMENT_BONUS
    if max(totals) > rules.high_total and not same_team:
        scoring = {"points", "assists"}
        if both_over and family_a in scoring and family_b in scoring:
            synergy += ENVIRONMENT_BONUS
    return synergy


def combined_score(
    candidate: Candidate,
    individual: float,
    selected: Sequence[Candidate],
    reference: ReferenceData,
    rules: RuleTable = DEFAULT_RULE_TABLE,
) -> CombinedScore:
    """Score a candidate against the partial selection built so far."""
    total = 0.0
    for partner in selected:
        value = pair_synergy(candidate, partner, reference, rules)
        if value <= HARD_CONFLICT:
            return CombinedScore(individual=individual, synergy=total, blocked=True)
        total += value
    return CombinedScore(individual=individual, synergy=total)


def find_hard_conflicts(legs: Sequence[SelectedLeg]) -> list[tuple[int, int]]:
    """Index pairs of selected legs that bet both sides of one subject."""
    conflicts: list[tuple[int, int]] = []
    for i, left in enumerate(legs):
        for j in range(i + 1, len(legs)):
            if is_hard_conflict(left.candidate, legs[j].candidate):
                conflicts.append((i, j))
    return conflicts
