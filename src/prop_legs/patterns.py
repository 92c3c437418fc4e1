"""Per-category context pattern scoring."""

from __future__ import annotations

from dataclasses import dataclass

from prop_legs.models import Candidate, EnvironmentContext
from prop_legs.names import normalize_pace, normalize_script
from prop_legs.rules import CategoryRule

UNDER_GRIND_FACTOR = 0.65
OVER_POINTS_GRIND_FACTOR = 0.75


@dataclass(frozen=True)
class PatternResult:
    passes: bool
    score: float
    reasons: tuple[str, ...] = ()

    @property
    def reason(self) -> str:
        return " | ".join(self.reasons) or "base criteria met"


def _fail(reason: str) -> PatternResult:
    return PatternResult(passes=False, score=0.0, reasons=(reason,))


def evaluate_pattern(
    candidate: Candidate,
    context: EnvironmentContext | None,
    defense_rank: int | None,
    rule: CategoryRule | None,
) -> PatternResult:
    """Score a candidate against its category rule.

    Hard fails return immediately with a zero score; everything else is additive. The
    result depends only on the arguments.
    """
    if rule is None:
        return PatternResult(passes=True, score=0.0, reasons=("no category rule",))

    is_under = candidate.side == "under"
    line = candidate.line
    if rule.min_line is not None and line < rule.min_line:
        return _fail(f"line {line:g} < min {rule.min_line:g}")
    if rule.max_line is not None and line > rule.max_line:
        return _fail(f"line {line:g} > max {rule.max_line:g}")

    score = 2.0
    reasons = ["line ok (+2)"]

    if context is None:
        if rule.needs_environment:
            score -= 2
            reasons.append("no environment (-2)")
    else:
        script = normalize_script(context.game_script)
        pace = normalize_pace(context.pace)
        total = context.expected_total

        if script in {normalize_script(item) for item in rule.excluded_script}:
            return _fail(f"script {script} excluded")

        if rule.preferred_script:
            if script in {normalize_script(item) for item in rule.preferred_script}:
                score += 3
                reasons.append(f"script {script} preferred (+3)")
            else:
                score -= 1
                reasons.append(f"script {script} not preferred (-1)")

        if rule.preferred_pace:
            if pace in {normalize_pace(item) for item in rule.preferred_pace}:
                score += 2
                reasons.append(f"pace {pace} preferred (+2)")
            else:
                score -= 1
                reasons.append(f"pace {pace} not preferred (-1)")

        if rule.max_total is not None:
            if total <= rule.max_total:
                score += 2
                reasons.append(f"total {total:g} <= {rule.max_total:g} (+2)")
            else:
                score -= 2
                reasons.append(f"total {total:g} > {rule.max_total:g} (-2)")

        if rule.min_total is not None:
            if total >= rule.min_total:
                score += 2
                reasons.append(f"total {total:g} >= {rule.min_total:g} (+2)")
            else:
                score -= 1
                reasons.append(f"total {total:g} < {rule.min_total:g} (-1)")

        if is_under and context.grind_factor >= UNDER_GRIND_FACTOR:
            score += 1
            reasons.append("grind favors under (+1)")
        if (
            not is_under
            and context.grind_factor >= OVER_POINTS_GRIND_FACTOR
            and rule.stat_type == "points"
        ):
            score -= 1
            reasons.append("grind fades points over (-1)")

    threshold = rule.defense_rank_threshold
    if threshold is not None:
        if defense_rank is None:
            if is_under:
                return _fail("under requires a verified defense rank")
            score -= 1
            reasons.append("no defense rank (-1)")
        elif defense_rank <= threshold:
            score += 4
            reasons.append(f"vs #{defense_rank} defense (+4)")
        else:
            if is_under:
                return _fail(f"under vs weak defense #{defense_rank} (need top {threshold})")
            score -= 2
            reasons.append(f"vs weak #{defense_rank} defense (-2)")

    return PatternResult(passes=True, score=score, reasons=tuple(reasons))
