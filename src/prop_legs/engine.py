"""Run entry point: normalize, filter, score and select one leg set."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from prop_legs.diagnostics import DiagnosticsRecorder
from prop_legs.filters import run_filter_chain
from prop_legs.frozen_slate import FrozenSlate
from prop_legs.models import Candidate, SelectionResult
from prop_legs.normalize import CandidateSource, merge_candidate_sources
from prop_legs.presets import WeightConfig, resolve_preset
from prop_legs.reference import ReferenceData
from prop_legs.rules import DEFAULT_RULE_TABLE, RuleTable
from prop_legs.selector import select_legs
from prop_legs.time_utils import validate_target_date

logger = logging.getLogger(__name__)

POOL_SOURCE = "pool"


def _pool_rows(candidates: Sequence[Candidate | Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    return [item.to_dict() if isinstance(item, Candidate) else item for item in candidates]


def build_parlay(
    *,
    target_date: str,
    preset: str | WeightConfig,
    candidates: Sequence[Candidate | Mapping[str, Any]],
    h2h: Mapping[str, Any] | None = None,
    environment: Mapping[str, Any] | None = None,
    defense: Mapping[str, Any] | None = None,
    verdicts: Mapping[str, Any] | None = None,
    reliability: Mapping[str, Any] | None = None,
    category_samples: Mapping[str, Any] | None = None,
    rules: RuleTable | None = None,
) -> SelectionResult:
    """Select legs for one target date.

    The preset key and the date are validated before any data is touched; both raise
    `ValueError` subclasses. Everything after that degrades gracefully: bad rows are
    counted and dropped, missing reference entries mean "no opinion".
    """
    date = validate_target_date(target_date)
    weights = resolve_preset(preset)
    table = rules or DEFAULT_RULE_TABLE
    recorder = DiagnosticsRecorder()

    report = merge_candidate_sources(
        [CandidateSource(name=POOL_SOURCE, rows=_pool_rows(candidates), kind="risk")]
    )
    recorder.record_normalization(report.to_dict())
    reference = ReferenceData.from_mappings(
        h2h=h2h,
        environment=environment,
        defense=defense,
        verdicts=verdicts,
        reliability=reliability,
        category_samples=category_samples,
    )

    eligible = run_filter_chain(report.candidates, reference, table, recorder)
    legs = select_legs(eligible, reference, weights, table, recorder)
    diagnostics = recorder.snapshot(
        target_date=date,
        preset=weights.key,
        rule_version=table.version,
    )
    logger.debug(
        "%s/%s: %d candidates, %d eligible, %d selected (rules %s)",
        date,
        weights.key,
        len(report.candidates),
        len(eligible),
        len(legs),
        table.version,
    )
    return SelectionResult(
        legs=tuple(legs),
        preset=weights.key,
        target_date=date,
        rule_version=table.version,
        diagnostics=diagnostics,
    )


def build_from_slate(
    slate: FrozenSlate,
    *,
    preset: str | WeightConfig | None = None,
    rules: RuleTable | None = None,
) -> SelectionResult:
    """Replay a frozen slate, optionally under a different preset or rule table."""
    table = rules or DEFAULT_RULE_TABLE
    if slate.rule_version and slate.rule_version != table.version:
        logger.warning(
            "slate was frozen under rules %s, replaying with %s",
            slate.rule_version,
            table.version,
        )
    return build_parlay(
        target_date=slate.target_date,
        preset=preset if preset is not None else slate.preset,
        candidates=slate.candidates,
        h2h=slate.h2h,
        environment=slate.environment,
        defense=slate.defense,
        verdicts=slate.verdicts,
        reliability=slate.reliability,
        category_samples=slate.category_samples,
        rules=table,
    )
