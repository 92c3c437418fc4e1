"""Unified ranking score."""

from __future__ import annotations

from prop_legs.models import Candidate, ScoreBreakdown
from prop_legs.presets import WeightConfig


def score_candidate(
    candidate: Candidate,
    pattern_score: float,
    weights: WeightConfig,
    *,
    sample_size: int | None = None,
) -> ScoreBreakdown:
    """Decompose one candidate's score under an explicit weight preset.

    `sample_size` is the settled-pick count for the candidate's category; `None` means the
    category has no tracked history and carries no small-sample penalty.
    """
    has_hit_rate = candidate.hit_rate is not None
    effective_hit_rate = candidate.hit_rate if has_hit_rate else weights.hit_rate_default
    small_sample = sample_size is not None and sample_size < weights.small_sample_floor
    return ScoreBreakdown(
        pattern=pattern_score * weights.pattern,
        hit_rate=float(effective_hit_rate) * weights.hit_rate,
        confidence=candidate.confidence * weights.confidence,
        missing_hit_rate_penalty=0.0 if has_hit_rate else weights.missing_hit_rate_penalty,
        small_sample_penalty=weights.small_sample_penalty if small_sample else 0.0,
    )


def unified_score(
    candidate: Candidate,
    pattern_score: float,
    weights: WeightConfig,
    *,
    sample_size: int | None = None,
) -> float:
    return score_candidate(candidate, pattern_score, weights, sample_size=sample_size).total
