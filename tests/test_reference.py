from prop_legs.models import Candidate
from prop_legs.reference import ReferenceData, defense_stat_type
from prop_legs.rules import DEFAULT_RULE_TABLE


def _candidate(subject: str = "Devin Booker", **extra: object) -> Candidate:
    fields: dict[str, object] = {
        "subject": subject,
        "stat": "points",
        "line": 24.5,
        "side": "over",
        "confidence": 0.7,
        "edge": 0.0,
        "team": "PHX",
    }
    fields.update(extra)
    return Candidate(**fields)  # type: ignore[arg-type]


def test_environment_is_keyed_by_canonical_team() -> None:
    reference = ReferenceData.from_mappings(
        environment={
            "Phoenix Suns": {
                "vegasTotal": 231.5,
                "paceRating": "HIGH",
                "gameScript": "shootout",
                "grindFactor": 0.2,
                "opponent": "Denver Nuggets",
            }
        }
    )
    context = reference.environment_for(_candidate())
    assert context is not None
    assert context.expected_total == 231.5
    assert context.pace == "FAST"
    assert context.game_script == "SHOOTOUT"
    assert context.opponent == "DEN"
    assert reference.opponent_for(_candidate()) == "DEN"


def test_defense_rank_uses_opponent_and_category_stat() -> None:
    reference = ReferenceData.from_mappings(
        environment={"PHX": {"opponent": "DEN"}},
        defense={"Denver Nuggets|Points": 4, "DEN|rebounds": 0, "bad key": 3},
    )
    rule = DEFAULT_RULE_TABLE.rule_for("STAR_FLOOR_OVER")
    assert reference.defense_rank_for(_candidate(), rule) == 4
    rebounds = _candidate(stat="rebounds")
    assert reference.defense_rank_for(rebounds, None) is None
    assert reference.defense_rank_for(_candidate(team="UNK"), rule) is None


def test_h2h_lookup_uses_known_opponent() -> None:
    reference = ReferenceData.from_mappings(
        environment={"PHX": {"opponent": "DEN"}},
        h2h={
            "devin booker|DEN|points": {"gamesPlayed": 4, "avgStat": 27.0, "hitRateOver": 0.75},
            "devin booker|LAL|points": {"games_played": 3, "avg_stat": 18.0},
        },
    )
    record = reference.h2h_for(_candidate())
    assert record is not None
    assert record.games_played == 4
    assert record.opponent == "DEN"
    assert record.side_hit_rate("over") == 0.75


def test_h2h_without_opponent_needs_a_single_record() -> None:
    single = ReferenceData.from_mappings(
        h2h={"Devin Booker|LAL|points": {"games_played": 3, "avg_stat": 18.0}}
    )
    assert single.h2h_for(_candidate(team="UNK")) is not None

    ambiguous = ReferenceData.from_mappings(
        h2h={
            "Devin Booker|LAL|points": {"games_played": 3},
            "Devin Booker|DEN|points": {"games_played": 3},
        }
    )
    assert ambiguous.h2h_for(_candidate(team="UNK")) is None


def test_verdicts_reliability_and_samples() -> None:
    reference = ReferenceData.from_mappings(
        verdicts={
            "Devin Booker|points|over": {"status": "Conditional", "adjustment": 5},
            "Devin Booker|points|under": {"status": "maybe"},
        },
        reliability={"devin booker|points": {"tier": "avoid", "shouldBlock": True}},
        category_samples={"star_floor_over": {"total": 7}, "BIG_REBOUNDER": 40},
    )
    verdict = reference.verdict_for(_candidate())
    assert verdict is not None
    assert verdict.status == "conditional"
    assert verdict.confidence_adjustment == 5
    assert reference.verdict_for(_candidate(side="under")) is None

    reliability = reference.reliability_for(_candidate())
    assert reliability is not None
    assert reliability.should_block

    assert reference.sample_size_for(_candidate(category="STAR_FLOOR_OVER")) == 7
    assert reference.sample_size_for(_candidate(category="BIG_REBOUNDER")) == 40
    assert reference.sample_size_for(_candidate()) is None


def test_defense_stat_type_inference() -> None:
    assert defense_stat_type(_candidate(stat="player_rebounds"), None) == "rebounds"
    assert defense_stat_type(_candidate(stat="Assists"), None) == "assists"
    assert defense_stat_type(_candidate(stat="threes"), None) == "points"
    rule = DEFAULT_RULE_TABLE.rule_for("BIG_REBOUNDER")
    assert defense_stat_type(_candidate(stat="points"), rule) == "rebounds"
