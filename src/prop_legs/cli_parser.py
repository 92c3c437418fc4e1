"""Parser construction for prop-legs CLI."""

from __future__ import annotations

import argparse
from typing import Any

GLOBAL_FLAGS = ("--config", "--data-dir", "--reports-dir")


def extract_global_overrides(argv: list[str]) -> tuple[list[str], dict[str, str]]:
    """Pull global path flags out of argv so they work before or after the subcommand."""
    cleaned: list[str] = []
    overrides = {flag: "" for flag in GLOBAL_FLAGS}
    idx = 0
    while idx < len(argv):
        token = argv[idx]
        matched = False
        for flag in GLOBAL_FLAGS:
            if token == flag:
                if idx + 1 >= len(argv):
                    raise RuntimeError(f"{flag} requires a value")
                overrides[flag] = str(argv[idx + 1]).strip()
                idx += 2
                matched = True
                break
            if token.startswith(f"{flag}="):
                overrides[flag] = token.split("=", 1)[1].strip()
                idx += 1
                matched = True
                break
        if not matched:
            cleaned.append(token)
            idx += 1
    return cleaned, overrides


def build_parser(*, handlers: Any, default_preset: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prop-legs")
    parser.add_argument(
        "--config",
        default="",
        help="Path to runtime config TOML (default: config/runtime.toml).",
    )
    parser.add_argument("--data-dir", default="", help="Override data dir for this invocation.")
    parser.add_argument(
        "--reports-dir",
        default="",
        help="Override reports output dir for this invocation.",
    )
    subparsers = parser.add_subparsers(dest="command")

    presets = subparsers.add_parser("presets", help="Inspect scoring weight presets")
    presets_subparsers = presets.add_subparsers(dest="presets_command")
    presets_ls = presets_subparsers.add_parser("ls", help="List weight presets")
    presets_ls.add_argument("--json", action="store_true")
    presets_ls.set_defaults(func=handlers._cmd_presets_ls)

    rules = subparsers.add_parser("rules", help="Inspect the rule table")
    rules_subparsers = rules.add_subparsers(dest="rules_command")
    rules_show = rules_subparsers.add_parser("show", help="Show rule table version and quotas")
    rules_show.add_argument("--rules", default="", help="Rule table TOML path.")
    rules_show.set_defaults(func=handlers._cmd_rules_show)

    slate = subparsers.add_parser("slate", help="Freeze and export slates")
    slate_subparsers = slate.add_subparsers(dest="slate_command")

    slate_freeze = slate_subparsers.add_parser(
        "freeze", help="Freeze raw candidate and reference files into one slate"
    )
    slate_freeze.add_argument(
        "--source",
        action="append",
        default=[],
        metavar="NAME=KIND:PATH",
        help="Candidate source in priority order; KIND is category or risk. Repeatable.",
    )
    slate_freeze.add_argument("--environment", default="", help="Team -> environment JSON.")
    slate_freeze.add_argument("--h2h", default="", help="subject|opponent|stat -> record JSON.")
    slate_freeze.add_argument("--defense", default="", help="team|stat -> rank JSON.")
    slate_freeze.add_argument("--verdicts", default="", help="subject|stat|side -> verdict JSON.")
    slate_freeze.add_argument("--reliability", default="", help="subject|stat -> record JSON.")
    slate_freeze.add_argument("--samples", default="", help="category -> settled count JSON.")
    slate_freeze.add_argument("--teams", default="", help="subject -> team JSON.")
    slate_freeze.add_argument("--injuries", default="", help="subject -> injury status JSON.")
    slate_freeze.add_argument("--date", default="", help="Target date YYYY-MM-DD.")
    slate_freeze.add_argument("--preset", default=default_preset)
    slate_freeze.add_argument("--rules", default="", help="Rule table TOML path.")
    slate_freeze.add_argument("--out", default="", help="Output file or directory.")
    slate_freeze.set_defaults(func=handlers._cmd_slate_freeze)

    slate_lake = slate_subparsers.add_parser("lake", help="Export slate candidates to Parquet")
    slate_lake.add_argument("--slate", required=True, help="Frozen slate JSON path.")
    slate_lake.add_argument("--out", default="", help="Parquet output path.")
    slate_lake.set_defaults(func=handlers._cmd_slate_lake)

    build = subparsers.add_parser("build", help="Select legs from a frozen slate")
    build.add_argument("--slate", required=True, help="Frozen slate JSON path.")
    build.add_argument("--preset", default="", help="Override the slate's weight preset.")
    build.add_argument("--rules", default="", help="Rule table TOML path.")
    build.add_argument("--out", default="", help="Report JSON output path.")
    build.add_argument("--json", action="store_true", help="Print the report as JSON.")
    build.set_defaults(func=handlers._cmd_build)

    return parser
