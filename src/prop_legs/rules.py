"""Versioned rule table: archetype blocks, category rules, edge floors and quotas.

The table is configuration, not code. `DEFAULT_RULE_TABLE` mirrors `config/rules.toml`;
`load_rule_table` reads a TOML file so that a run can be replayed against the exact rule
version that produced it. Every run tags its diagnostics with `RuleTable.version`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from prop_legs.names import normalize_side, normalize_stat
from prop_legs.runtime_config import as_float, as_int, as_str, as_table, read_toml

DEFAULT_EDGE_THRESHOLD = 2.0


@dataclass(frozen=True)
class CategoryRule:
    """Contextual preferences for one category; `None` means "no opinion"."""

    min_line: float | None = None
    max_line: float | None = None
    preferred_pace: tuple[str, ...] = ()
    preferred_script: tuple[str, ...] = ()
    excluded_script: tuple[str, ...] = ()
    max_total: float | None = None
    min_total: float | None = None
    defense_rank_threshold: int | None = None
    stat_type: str | None = None

    @property
    def needs_environment(self) -> bool:
        return bool(
            self.preferred_script
            or self.excluded_script
            or self.preferred_pace
            or self.max_total is not None
            or self.min_total is not None
        )


@dataclass(frozen=True)
class QuotaSlot:
    category: str
    side: str
    quota: int = 1


@dataclass(frozen=True)
class RuleTable:
    version: str
    archetype_blocks: Mapping[str, tuple[str, ...]]
    category_overrides: Mapping[str, tuple[str, ...]]
    category_rules: Mapping[str, CategoryRule]
    edge_thresholds: Mapping[str, float]
    quotas: tuple[QuotaSlot, ...]
    target_legs: int = 6
    default_edge_threshold: float = DEFAULT_EDGE_THRESHOLD
    high_line_points: float = 15.5
    low_total: float = 215.0
    high_total: float = 228.0
    description: str = field(default="", compare=False)

    def rule_for(self, category: str | None) -> CategoryRule | None:
        if not category:
            return None
        return self.category_rules.get(category)

    def edge_threshold(self, family: str) -> float:
        return self.edge_thresholds.get(family, self.default_edge_threshold)

    def quota_for(self, category: str) -> int:
        return sum(slot.quota for slot in self.quotas if slot.category == category)


_DEFAULT_ARCHETYPE_BLOCKS = {
    "ELITE_REBOUNDER": ("points", "threes"),
    "GLASS_CLEANER": ("points", "threes", "assists"),
    "RIM_PROTECTOR": ("points", "threes"),
    "PURE_SHOOTER": ("rebounds", "blocks"),
    "PLAYMAKER": ("rebounds", "blocks"),
    "COMBO_GUARD": ("rebounds", "blocks"),
    "SCORING_GUARD": ("rebounds", "blocks"),
}

_DEFAULT_CATEGORY_RULES = {
    "BIG_REBOUNDER": CategoryRule(
        min_line=7.5,
        max_line=14.5,
        preferred_pace=("SLOW", "MEDIUM"),
        max_total=222,
        preferred_script=("COMPETITIVE", "GRIND_OUT"),
        stat_type="rebounds",
    ),
    "ROLE_PLAYER_REB": CategoryRule(
        min_line=3.5,
        max_line=6.5,
        preferred_pace=("SLOW", "MEDIUM"),
        stat_type="rebounds",
    ),
    "LOW_SCORER_UNDER": CategoryRule(
        min_line=4.5,
        max_line=10.5,
        defense_rank_threshold=12,
        preferred_script=("GRIND_OUT", "COMPETITIVE"),
        stat_type="points",
    ),
    "BIG_ASSIST_OVER": CategoryRule(
        min_line=2.5,
        max_line=5.5,
        excluded_script=("GRIND_OUT",),
        stat_type="assists",
    ),
    "STAR_FLOOR_OVER": CategoryRule(
        min_line=18.5,
        preferred_script=("SHOOTOUT", "COMPETITIVE"),
        min_total=218,
        stat_type="points",
    ),
    "THREE_POINT_SHOOTER": CategoryRule(
        min_line=0.5,
        max_line=4.5,
        preferred_script=("SHOOTOUT", "COMPETITIVE"),
        min_total=215,
        stat_type="threes",
    ),
    "ASSIST_ANCHOR": CategoryRule(
        max_line=6.5,
        preferred_script=("GRIND_OUT",),
        stat_type="assists",
    ),
    "HIGH_REB_UNDER": CategoryRule(
        min_line=8.5,
        preferred_pace=("FAST",),
        stat_type="rebounds",
    ),
}

_DEFAULT_EDGE_THRESHOLDS = {
    "points": 4.5,
    "rebounds": 2.5,
    "assists": 2.0,
    "threes": 1.0,
    "pra": 6.0,
    "pr": 4.0,
    "pa": 4.0,
    "ra": 3.0,
}

_DEFAULT_QUOTAS = (
    QuotaSlot("STAR_FLOOR_OVER", "over", 1),
    QuotaSlot("BIG_ASSIST_OVER", "over", 1),
    QuotaSlot("THREE_POINT_SHOOTER", "over", 1),
    QuotaSlot("LOW_SCORER_UNDER", "under", 1),
    QuotaSlot("ROLE_PLAYER_REB", "over", 1),
    QuotaSlot("BIG_REBOUNDER", "over", 1),
)

DEFAULT_RULE_TABLE = RuleTable(
    version="v6.0",
    archetype_blocks=MappingProxyType(_DEFAULT_ARCHETYPE_BLOCKS),
    category_overrides=MappingProxyType({"BIG_ASSIST_OVER": ("assists",)}),
    category_rules=MappingProxyType(_DEFAULT_CATEGORY_RULES),
    edge_thresholds=MappingProxyType(_DEFAULT_EDGE_THRESHOLDS),
    quotas=_DEFAULT_QUOTAS,
    description="Proven six-slot formula with strict directional edge floors.",
)


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return ()
    return tuple(str(item).strip().upper() for item in value if str(item).strip())


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return as_float(value, default=0.0)


def _parse_category_rule(name: str, payload: Any) -> CategoryRule:
    if not isinstance(payload, dict):
        raise RuntimeError(f"rule table category [{name}] must be a table")
    rank = payload.get("defense_rank_threshold")
    stat_type = payload.get("stat_type")
    return CategoryRule(
        min_line=_optional_float(payload.get("min_line")),
        max_line=_optional_float(payload.get("max_line")),
        preferred_pace=_as_str_tuple(payload.get("preferred_pace")),
        preferred_script=_as_str_tuple(payload.get("preferred_script")),
        excluded_script=_as_str_tuple(payload.get("excluded_script")),
        max_total=_optional_float(payload.get("max_total")),
        min_total=_optional_float(payload.get("min_total")),
        defense_rank_threshold=as_int(rank, default=0) if rank is not None else None,
        stat_type=normalize_stat(str(stat_type)) if stat_type else None,
    )


def _parse_quotas(values: Any) -> tuple[QuotaSlot, ...]:
    if not isinstance(values, list):
        raise RuntimeError("rule table [[quotas]] must be an array of tables")
    slots: list[QuotaSlot] = []
    for item in values:
        if not isinstance(item, dict):
            raise RuntimeError("rule table [[quotas]] entries must be tables")
        category = as_str(item.get("category"), default="")
        side = normalize_side(as_str(item.get("side"), default=""))
        if not category or not side:
            raise RuntimeError(f"invalid quota slot: {item}")
        quota = as_int(item.get("quota"), default=1)
        slots.append(QuotaSlot(category=category, side=side, quota=quota))
    return tuple(slots)


def rule_table_from_dict(payload: dict[str, Any]) -> RuleTable:
    """Build a rule table from a parsed TOML/JSON document."""
    meta = as_table(payload, "meta")
    version = as_str(meta.get("version"), default="")
    if not version:
        raise RuntimeError("rule table requires [meta] version")

    blocks = {
        archetype.strip().upper(): tuple(normalize_stat(stat) for stat in stats)
        for archetype, stats in as_table(payload, "archetype_blocks").items()
        if isinstance(stats, list)
    }
    overrides = {
        category: tuple(normalize_stat(stat) for stat in stats)
        for category, stats in as_table(payload, "category_overrides").items()
        if isinstance(stats, list)
    }
    categories = {
        name: _parse_category_rule(name, rule)
        for name, rule in as_table(payload, "categories").items()
    }
    edges_table = as_table(payload, "edge_thresholds")
    default_edge = as_float(edges_table.get("default"), default=DEFAULT_EDGE_THRESHOLD)
    edges = {
        family: as_float(value, default=default_edge)
        for family, value in edges_table.items()
        if family != "default"
    }
    selection = as_table(payload, "selection")
    synergy = as_table(payload, "synergy")
    return RuleTable(
        version=version,
        archetype_blocks=MappingProxyType(blocks),
        category_overrides=MappingProxyType(overrides),
        category_rules=MappingProxyType(categories),
        edge_thresholds=MappingProxyType(edges),
        quotas=_parse_quotas(payload.get("quotas", [])),
        target_legs=as_int(selection.get("target_legs"), default=6),
        default_edge_threshold=default_edge,
        high_line_points=as_float(synergy.get("high_line_points"), default=15.5),
        low_total=as_float(synergy.get("low_total"), default=215.0),
        high_total=as_float(synergy.get("high_total"), default=228.0),
        description=as_str(meta.get("description"), default=""),
    )


def load_rule_table(path: Path | None = None) -> RuleTable:
    """Load a rule table from TOML, or return the built-in default."""
    if path is None:
        return DEFAULT_RULE_TABLE
    source = path.expanduser().resolve()
    if not source.exists():
        raise FileNotFoundError(f"rule table not found: {source}")
    return rule_table_from_dict(read_toml(source, label="rule table"))
