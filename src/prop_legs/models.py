"""Data model for one leg-selection run."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

Side = Literal["over", "under"]
VerdictStatus = Literal["approved", "conditional", "rejected"]

FALLBACK_SLOT = "fallback"
UNKNOWN_TEAM = "UNK"


@dataclass(frozen=True)
class Candidate:
    """One proposed wager, normalized to the pool schema."""

    subject: str
    stat: str
    line: float
    side: Side
    confidence: float
    edge: float
    team: str = UNKNOWN_TEAM
    event_id: str = ""
    game_date: str = ""
    archetype: str | None = None
    category: str | None = None
    injury_status: str | None = None
    hit_rate: float | None = None
    reliability_tier: str | None = None
    projected_value: float | None = None
    actual_line: float | None = None
    source: str = ""
    pool_index: int = 0

    @property
    def label(self) -> str:
        return f"{self.subject} {self.side.upper()} {self.line:g} {self.stat}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Candidate:
        known = set(cls.__dataclass_fields__)
        return cls(**{key: value for key, value in payload.items() if key in known})


@dataclass(frozen=True)
class EnvironmentContext:
    """Game environment for one team on the target date."""

    expected_total: float = 220.0
    pace: str = "MEDIUM"
    game_script: str = "COMPETITIVE"
    grind_factor: float = 0.5
    opponent: str = ""
    event_id: str = ""


@dataclass(frozen=True)
class HeadToHeadRecord:
    games_played: int
    avg_stat: float
    hit_rate_over: float
    hit_rate_under: float
    max_stat: float = 0.0
    min_stat: float = 0.0
    opponent: str = ""

    def side_hit_rate(self, side: str) -> float:
        return self.hit_rate_over if side == "over" else self.hit_rate_under


@dataclass(frozen=True)
class ValidationVerdict:
    status: VerdictStatus
    reason: str = ""
    confidence_adjustment: float = 0.0


@dataclass(frozen=True)
class ReliabilityRecord:
    tier: str = "unknown"
    hit_rate: float | None = None
    should_block: bool = False


@dataclass(frozen=True)
class ScoreBreakdown:
    """Decomposition of the unified score."""

    pattern: float
    hit_rate: float
    confidence: float
    missing_hit_rate_penalty: float
    small_sample_penalty: float

    @property
    def total(self) -> float:
        return (
            self.pattern
            + self.hit_rate
            + self.confidence
            + self.missing_hit_rate_penalty
            + self.small_sample_penalty
        )

    def to_dict(self) -> dict[str, float]:
        payload = asdict(self)
        payload["total"] = self.total
        return payload


@dataclass(frozen=True)
class SelectedLeg:
    candidate: Candidate
    score: float
    individual_score: float
    synergy: float
    slot: str
    pattern_score: float
    breakdown: ScoreBreakdown
    opponent_defense_rank: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate": self.candidate.to_dict(),
            "score": self.score,
            "individual_score": self.individual_score,
            "synergy": self.synergy,
            "slot": self.slot,
            "pattern_score": self.pattern_score,
            "breakdown": self.breakdown.to_dict(),
            "opponent_defense_rank": self.opponent_defense_rank,
        }


@dataclass(frozen=True)
class SelectionResult:
    legs: tuple[SelectedLeg, ...]
    preset: str
    target_date: str
    rule_version: str
    diagnostics: Any = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_date": self.target_date,
            "preset": self.preset,
            "rule_version": self.rule_version,
            "legs": [leg.to_dict() for leg in self.legs],
            "diagnostics": self.diagnostics.to_dict() if self.diagnostics is not None else {},
        }
