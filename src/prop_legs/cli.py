"""Command line interface for prop-legs."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from prop_legs.cli_parser import build_parser, extract_global_overrides
from prop_legs.engine import build_from_slate
from prop_legs.frozen_slate import (
    export_frozen_slate,
    freeze_slate,
    lake_frozen_slate,
    load_frozen_slate,
)
from prop_legs.models import SelectionResult
from prop_legs.normalize import SOURCE_DEFAULTS, CandidateSource, merge_candidate_sources
from prop_legs.presets import list_presets, resolve_preset
from prop_legs.rules import DEFAULT_RULE_TABLE, RuleTable, load_rule_table
from prop_legs.runtime_config import (
    current_runtime_config,
    load_runtime_config,
    set_current_runtime_config,
)
from prop_legs.settings import Settings
from prop_legs.storage import atomic_write_json, load_mapping, load_rows
from prop_legs.time_utils import et_today, validate_target_date


class CLIError(RuntimeError):
    """User-facing CLI error."""


def _load_rules(raw: str) -> RuleTable:
    """Explicit `--rules` wins, then the configured rules path, then the built-in table."""
    try:
        if raw.strip():
            return load_rule_table(Path(raw).expanduser())
        configured = Path(Settings.from_runtime().rules_path).expanduser()
        if configured.exists():
            return load_rule_table(configured)
    except RuntimeError as exc:
        raise CLIError(str(exc)) from exc
    return DEFAULT_RULE_TABLE


def _parse_source(raw: str) -> tuple[str, str, Path]:
    name, has_name, rest = raw.partition("=")
    kind, has_kind, path = rest.partition(":")
    kind = kind.strip().lower()
    if not has_name or not has_kind or not name.strip() or not path.strip():
        raise CLIError(f"invalid --source (expected NAME=KIND:PATH): {raw}")
    if kind not in SOURCE_DEFAULTS:
        known = ", ".join(sorted(SOURCE_DEFAULTS))
        raise CLIError(f"invalid source kind '{kind}' (known: {known})")
    return name.strip(), kind, Path(path.strip()).expanduser()


def _optional_mapping(raw: str) -> dict[str, Any]:
    if not raw.strip():
        return {}
    return load_mapping(Path(raw).expanduser())


def _cmd_presets_ls(args: argparse.Namespace) -> int:
    presets = list_presets()
    if args.json:
        print(json.dumps([preset.to_dict() for preset in presets], sort_keys=True, indent=2))
        return 0
    for preset in presets:
        print(
            f"{preset.key}\tpattern={preset.pattern:g}\thit_rate={preset.hit_rate:g}"
            f"\tconfidence={preset.confidence:g}"
            f"\tmissing_hit_rate={preset.missing_hit_rate_penalty:g}"
            f"\t{preset.description}"
        )
    return 0


def _cmd_rules_show(args: argparse.Namespace) -> int:
    rules = _load_rules(args.rules)
    print(f"version={rules.version}")
    if rules.description:
        print(f"description={rules.description}")
    print(f"target_legs={rules.target_legs}")
    for slot in rules.quotas:
        print(f"quota={slot.category}:{slot.side}:{slot.quota}")
    for family, threshold in sorted(rules.edge_thresholds.items()):
        print(f"edge_threshold={family}:{threshold:g}")
    print(f"edge_threshold=default:{rules.default_edge_threshold:g}")
    return 0


def _cmd_slate_freeze(args: argparse.Namespace) -> int:
    if not args.source:
        raise CLIError("slate freeze requires at least one --source NAME=KIND:PATH")
    sources = []
    for raw in args.source:
        name, kind, path = _parse_source(raw)
        rows = load_rows(path)
        sources.append(CandidateSource(name=name, rows=rows, kind=kind))  # type: ignore[arg-type]

    target_date = validate_target_date(args.date) if args.date.strip() else et_today()
    preset = resolve_preset(args.preset).key
    rules = _load_rules(args.rules)
    report = merge_candidate_sources(
        sources,
        team_map=_optional_mapping(args.teams),
        injuries=_optional_mapping(args.injuries),
    )
    slate = freeze_slate(
        target_date=target_date,
        preset=preset,
        rule_version=rules.version,
        candidates=report.candidates,
        h2h=_optional_mapping(args.h2h),
        environment=_optional_mapping(args.environment),
        defense=_optional_mapping(args.defense),
        verdicts=_optional_mapping(args.verdicts),
        reliability=_optional_mapping(args.reliability),
        category_samples=_optional_mapping(args.samples),
    )

    if args.out.strip():
        out_path = Path(args.out).expanduser()
    else:
        out_path = current_runtime_config().slates_dir
        out_path.mkdir(parents=True, exist_ok=True)
    written = export_frozen_slate(slate, out_path)
    summary = report.to_dict()
    print(f"slate={written}")
    print(
        f"candidates={summary['kept']} malformed={summary['malformed']} "
        f"duplicates={summary['duplicates']} side_conflicts={summary['side_conflicts']} "
        f"out_players={summary['out_players']}"
    )
    if Settings.from_runtime().write_parquet:
        print(f"parquet={lake_frozen_slate(written)}")
    return 0


def _cmd_slate_lake(args: argparse.Namespace) -> int:
    out_path = Path(args.out).expanduser() if args.out.strip() else None
    written = lake_frozen_slate(Path(args.slate).expanduser(), out_path)
    print(f"parquet={written}")
    return 0


def _print_legs(result: SelectionResult) -> None:
    print(
        f"date={result.target_date} preset={result.preset} rules={result.rule_version} "
        f"legs={len(result.legs)}"
    )
    for position, leg in enumerate(result.legs, start=1):
        candidate = leg.candidate
        print(
            f"{position}. [{leg.slot}] {candidate.label} ({candidate.team}) "
            f"score={leg.score:.2f} synergy={leg.synergy:+.2f} pattern={leg.pattern_score:g}"
        )
    diagnostics = result.diagnostics
    if diagnostics is not None:
        counts = " ".join(f"{stage}={count}" for stage, count in diagnostics.stage_counts.items())
        print(
            f"candidates={diagnostics.total_candidates} eligible={diagnostics.eligible_count} "
            f"rejected: {counts}"
        )


def _cmd_build(args: argparse.Namespace) -> int:
    slate = load_frozen_slate(Path(args.slate).expanduser())
    rules = _load_rules(args.rules)
    result = build_from_slate(slate, preset=args.preset or None, rules=rules)
    report = result.to_dict()

    if args.out.strip():
        out_path = Path(args.out).expanduser()
    else:
        reports_dir = Path(Settings.from_runtime().reports_dir).expanduser()
        out_path = reports_dir / f"parlay_{result.target_date}_{result.preset}.json"
    atomic_write_json(out_path, report)

    if args.json:
        print(json.dumps(report, sort_keys=True, indent=2))
    else:
        _print_legs(result)
        print(f"report={out_path}")
    return 0


def _configure_logging() -> None:
    level = Settings.from_runtime().log_level.upper()
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""
    raw_argv = list(argv) if isinstance(argv, list) else sys.argv[1:]
    try:
        parsed_argv, overrides = extract_global_overrides(raw_argv)
        config_override = overrides["--config"]
        config_path = Path(config_override).expanduser() if config_override else None
        runtime_config = load_runtime_config(config_path)
    except RuntimeError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    data_dir = overrides["--data-dir"]
    reports_dir = overrides["--reports-dir"]
    runtime_config = runtime_config.with_path_overrides(
        data_dir=Path(data_dir).expanduser().resolve() if data_dir else None,
        reports_dir=Path(reports_dir).expanduser().resolve() if reports_dir else None,
    )
    try:
        set_current_runtime_config(runtime_config)
        try:
            _configure_logging()
            default_preset = Settings.from_runtime().default_preset
        except ValidationError as exc:
            print(f"invalid settings: {exc}", file=sys.stderr)
            return 2

        parser = build_parser(handlers=sys.modules[__name__], default_preset=default_preset)
        args = parser.parse_args(parsed_argv)
        func = getattr(args, "func", None)
        if func is None:
            parser.print_help()
            return 0
        try:
            return int(func(args))
        except (CLIError, FileNotFoundError, ValueError) as exc:
            print(str(exc), file=sys.stderr)
            return 2
    finally:
        set_current_runtime_config(None)


if __name__ == "__main__":
    raise SystemExit(main())
