from typing import Any

import pytest

from prop_legs.normalize import CandidateSource, candidate_from_row, merge_candidate_sources


def _row(subject: str, stat: str = "points", **extra: Any) -> dict[str, Any]:
    row: dict[str, Any] = {"player_name": subject, "prop_type": stat, "line": 10.5}
    row.update(extra)
    return row


def test_category_rows_use_recommended_fields_and_defaults() -> None:
    source = CandidateSource(
        name="sweet_spots",
        kind="category",
        rows=[
            _row(
                "Jalen Brunson",
                recommended_side="OVER",
                recommended_line=24.5,
                actual_line=25.5,
                category="STAR_FLOOR_OVER",
                archetype="scoring_guard",
                l10_hit_rate=80,
            )
        ],
    )

    candidate = candidate_from_row(source.rows[0], source=source, pool_index=0)

    assert candidate is not None
    assert candidate.side == "over"
    assert candidate.line == 25.5
    assert candidate.confidence == 0.8
    assert candidate.hit_rate == 0.8
    assert candidate.edge == pytest.approx(3.0)
    assert candidate.archetype == "SCORING_GUARD"
    assert candidate.source == "sweet_spots"
    assert candidate.team == "UNK"


def test_category_edge_defaults_without_hit_rate() -> None:
    source = CandidateSource(name="cat", kind="category", rows=[_row("A Player")])
    candidate = candidate_from_row(source.rows[0], source=source, pool_index=0)
    assert candidate is not None
    assert candidate.hit_rate is None
    assert candidate.edge == pytest.approx(2.0)


def test_risk_rows_default_confidence_and_zero_edge() -> None:
    source = CandidateSource(name="risk", rows=[_row("B Player", side="under", team="Heat")])
    candidate = candidate_from_row(source.rows[0], source=source, pool_index=4)
    assert candidate is not None
    assert candidate.side == "under"
    assert candidate.confidence == 0.7
    assert candidate.edge == 0.0
    assert candidate.team == "MIA"
    assert candidate.pool_index == 4


def test_malformed_rows_are_counted_not_raised() -> None:
    report = merge_candidate_sources(
        [
            CandidateSource(
                name="risk",
                rows=[
                    _row("", stat="points"),
                    _row("No Stat", stat=""),
                    _row("Bad Side", side="sideways"),
                    "not a row",  # type: ignore[list-item]
                    _row("Good Row"),
                ],
            )
        ]
    )
    assert report.malformed == 4
    assert [candidate.subject for candidate in report.candidates] == ["Good Row"]
    assert report.total_records == 5


def test_earlier_source_wins_and_conflicts_are_counted() -> None:
    report = merge_candidate_sources(
        [
            CandidateSource(
                name="category",
                kind="category",
                rows=[_row("P.J. Washington", recommended_side="over", category="ROLE_PLAYER_REB")],
            ),
            CandidateSource(
                name="risk",
                rows=[
                    _row("PJ Washington", side="under"),
                    _row("PJ Washington", stat="rebounds", side="over"),
                    _row("Other Guy", side="over"),
                ],
            ),
        ]
    )

    assert [candidate.subject for candidate in report.candidates] == [
        "P.J. Washington",
        "Other Guy",
    ]
    assert report.candidates[0].category == "ROLE_PLAYER_REB"
    assert report.side_conflicts == 1
    assert report.duplicates == 1
    assert report.per_source == {"category": 1, "risk": 1}
    assert [candidate.pool_index for candidate in report.candidates] == [0, 1]


def test_out_players_are_dropped_and_injuries_attached() -> None:
    report = merge_candidate_sources(
        [CandidateSource(name="risk", rows=[_row("Hurt Guy"), _row("Maybe Guy"), _row("Fine")])],
        injuries={"hurt guy": "Out", "Maybe Guy": "Questionable"},
    )
    assert report.out_players == 1
    assert [candidate.subject for candidate in report.candidates] == ["Maybe Guy", "Fine"]
    assert report.candidates[0].injury_status == "Questionable"


def test_team_map_overrides_row_team() -> None:
    report = merge_candidate_sources(
        [CandidateSource(name="risk", rows=[_row("Traded Guy", team="Lakers")])],
        team_map={"Traded Guy": "Dallas Mavericks"},
    )
    assert report.candidates[0].team == "DAL"


def test_row_source_field_is_preserved() -> None:
    report = merge_candidate_sources(
        [CandidateSource(name="pool", rows=[_row("Tagged", source="sweet_spots")])]
    )
    assert report.candidates[0].source == "sweet_spots"
    assert report.to_dict()["kept"] == 1
