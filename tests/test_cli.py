from __future__ import annotations

import json
from pathlib import Path

import pytest

from prop_legs.cli import main

TARGET_DATE = "2026-01-26"


def _write_runtime_config(path: Path, *, data_dir: Path, write_parquet: bool = False) -> None:
    parquet_value = "true" if write_parquet else "false"
    path.write_text(
        "\n".join(
            [
                "[paths]",
                f'data_dir = "{data_dir}"',
                "",
                "[selection]",
                'default_preset = "balanced"',
                f"write_parquet = {parquet_value}",
            ]
        )
        + "\n",
        encoding="utf-8",
    )


def _write_inputs(root: Path) -> dict[str, Path]:
    root.mkdir(parents=True, exist_ok=True)
    category = root / "category.json"
    category.write_text(
        json.dumps(
            [
                {
                    "player_name": "Star Guard",
                    "prop_type": "points",
                    "recommended_side": "over",
                    "actual_line": 20.5,
                    "projected_value": 26.0,
                    "category": "STAR_FLOOR_OVER",
                    "l10_hit_rate": 0.9,
                    "team": "Phoenix Suns",
                }
            ]
        ),
        encoding="utf-8",
    )
    risk = root / "risk.jsonl"
    risk.write_text(
        "\n".join(
            [
                json.dumps(
                    {
                        "player_name": "Star Guard",
                        "prop_type": "points",
                        "side": "under",
                        "line": 20.5,
                        "projected_value": 15.0,
                    }
                ),
                json.dumps(
                    {
                        "player_name": "Role Big",
                        "prop_type": "rebounds",
                        "side": "over",
                        "line": 5.5,
                        "projected_value": 9.0,
                        "team": "MIA",
                    }
                ),
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    environment = root / "environment.json"
    environment.write_text(
        json.dumps({"PHX": {"expected_total": 225, "game_script": "SHOOTOUT"}}),
        encoding="utf-8",
    )
    return {"category": category, "risk": risk, "environment": environment}


def _freeze(config_path: Path, inputs: dict[str, Path], *extra: str) -> int:
    return main(
        [
            "--config",
            str(config_path),
            "slate",
            "freeze",
            "--source",
            f"sweet_spots=category:{inputs['category']}",
            "--source",
            f"risk_engine=risk:{inputs['risk']}",
            "--environment",
            str(inputs["environment"]),
            "--date",
            TARGET_DATE,
            *extra,
        ]
    )


def _value(output: str, key: str) -> str:
    for line in output.splitlines():
        if line.startswith(f"{key}="):
            return line.split("=", 1)[1]
    raise AssertionError(f"{key}= not found in output")


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PROP_LEGS_DEFAULT_PRESET", raising=False)
    monkeypatch.delenv("PROP_LEGS_REPORTS_DIR", raising=False)
    monkeypatch.delenv("PROP_LEGS_RULES_PATH", raising=False)
    path = tmp_path / "runtime.toml"
    _write_runtime_config(path, data_dir=tmp_path / "data")
    return path


def test_presets_ls(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["--config", str(config_path), "presets", "ls"])
    lines = capsys.readouterr().out.splitlines()

    assert code == 0
    assert [line.split("\t", 1)[0] for line in lines] == ["balanced", "reliability_max", "sharp"]


def test_presets_ls_json(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["presets", "ls", "--json", "--config", str(config_path)])
    payload = json.loads(capsys.readouterr().out)

    assert code == 0
    assert payload[0]["key"] == "balanced"
    assert payload[0]["hit_rate"] == 6.0


def test_rules_show(config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["--config", str(config_path), "rules", "show"])
    out = capsys.readouterr().out

    assert code == 0
    assert _value(out, "version") == "v6.0"
    assert "quota=LOW_SCORER_UNDER:under:1" in out.splitlines()
    assert "edge_threshold=points:4.5" in out.splitlines()


def test_freeze_then_build(
    config_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    inputs = _write_inputs(tmp_path / "inputs")

    assert _freeze(config_path, inputs) == 0
    out = capsys.readouterr().out
    slate_path = Path(_value(out, "slate"))
    slates_dir = (tmp_path / "data" / "slates").resolve()
    assert slate_path == slates_dir / f"frozen_slate_{TARGET_DATE}_balanced.json"
    assert "candidates=2 malformed=0 duplicates=0 side_conflicts=1 out_players=0" in out

    code = main(["--config", str(config_path), "build", "--slate", str(slate_path)])
    out = capsys.readouterr().out

    assert code == 0
    assert "1. [STAR_FLOOR_OVER] Star Guard OVER 20.5 points (PHX)" in out
    assert "2. [fallback] Role Big OVER 5.5 rebounds (MIA)" in out
    report_path = Path(_value(out, "report"))
    reports_dir = (tmp_path / "data" / "reports").resolve()
    assert report_path == reports_dir / f"parlay_{TARGET_DATE}_balanced.json"
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["rule_version"] == "v6.0"
    assert len(report["legs"]) == 2
    assert report["diagnostics"]["normalization"]["kept"] == 2


def test_build_json_with_preset_override(
    config_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    inputs = _write_inputs(tmp_path / "inputs")
    slate_path = tmp_path / "slate.json"
    assert _freeze(config_path, inputs, "--out", str(slate_path)) == 0
    capsys.readouterr()

    out_path = tmp_path / "report.json"
    code = main(
        [
            "--config",
            str(config_path),
            "build",
            "--slate",
            str(slate_path),
            "--preset",
            "sharp",
            "--out",
            str(out_path),
            "--json",
        ]
    )
    payload = json.loads(capsys.readouterr().out)

    assert code == 0
    assert payload["preset"] == "sharp"
    assert json.loads(out_path.read_text(encoding="utf-8")) == payload


def test_slate_lake(config_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    inputs = _write_inputs(tmp_path / "inputs")
    slate_path = tmp_path / "slate.json"
    assert _freeze(config_path, inputs, "--out", str(slate_path)) == 0
    capsys.readouterr()

    code = main(["--config", str(config_path), "slate", "lake", "--slate", str(slate_path)])

    assert code == 0
    assert Path(_value(capsys.readouterr().out, "parquet")) == tmp_path / "slate.parquet"
    assert (tmp_path / "slate.parquet").exists()


def test_data_dir_flag_overrides_runtime_config(
    config_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    inputs = _write_inputs(tmp_path / "inputs")
    override = tmp_path / "override"

    assert _freeze(config_path, inputs, "--data-dir", str(override)) == 0

    slate_path = Path(_value(capsys.readouterr().out, "slate"))
    assert slate_path.parent == override.resolve() / "slates"


def test_unknown_preset_exits_with_error(
    config_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    inputs = _write_inputs(tmp_path / "inputs")

    code = _freeze(config_path, inputs, "--preset", "aggressive")

    assert code == 2
    assert "unknown weight preset: aggressive" in capsys.readouterr().err


def test_bad_source_spec_exits_with_error(
    config_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["--config", str(config_path), "slate", "freeze", "--source", "nokind.json"])

    assert code == 2
    assert "NAME=KIND:PATH" in capsys.readouterr().err


def test_missing_slate_exits_with_error(
    config_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["--config", str(config_path), "build", "--slate", str(tmp_path / "nope.json")])

    assert code == 2
    assert "file not found" in capsys.readouterr().err


def test_missing_runtime_config_exits_with_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["--config", str(tmp_path / "missing.toml"), "presets", "ls"])

    assert code == 2
    assert "runtime config file not found" in capsys.readouterr().err


def test_invalid_log_level_exits_with_error(
    config_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("PROP_LEGS_LOG_LEVEL", "chatty")

    code = main(["--config", str(config_path), "presets", "ls"])

    assert code == 2
    assert "invalid settings" in capsys.readouterr().err
