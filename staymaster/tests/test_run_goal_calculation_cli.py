"""Tests for the goal calculation command-line entry point."""

from __future__ import annotations

import json

import pytest

from staymaster.cli.run_goal_calculation import main


def write_json(path, payload) -> str:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_summary_lines_for_days_counter(tmp_path, capsys) -> None:
    config = write_json(
        tmp_path / "goal.json",
        {"type": "days_counter", "count_direction": "days_away", "reference_location": "UK"},
    )
    main(
        [
            "--goal-config",
            config,
            "--trip",
            "2024-01-05:2024-01-15",
            "--trip",
            "2024-02-10:2024-02-20",
            "--start-date",
            "2024-01-01",
            "--as-of-date",
            "2024-03-01",
        ]
    )
    out = capsys.readouterr().out.splitlines()
    assert "SUMMARY goal_type=days_counter" in out
    assert "SUMMARY status=in_progress" in out
    assert "METRIC key=primary_count value=18 status=ok" in out
    assert "METRIC key=percentage value=30 status=ok" in out


def test_json_output_from_trips_file(tmp_path, capsys) -> None:
    config = write_json(
        tmp_path / "goal.json", {"type": "uk_ilr", "trackYears": 5, "visaStartDate": "2020-01-01"}
    )
    trips = write_json(tmp_path / "trips.json", [{"id": "t1", "outDate": "2022-02-01", "inDate": "2022-08-11"}])
    main(
        [
            "--goal-config",
            config,
            "--trips",
            trips,
            "--start-date",
            "2020-01-01",
            "--as-of-date",
            "2024-01-01",
            "--goal-id",
            "g-1",
            "--json",
        ]
    )
    result = json.loads(capsys.readouterr().out)
    assert result["goalId"] == "g-1"
    assert result["status"] == "limit_exceeded"
    assert result["warnings"][0]["offendingWindows"][0]["days"] == 190


def test_debug_flag_prints_engine_diagnostics(tmp_path, capsys) -> None:
    config = write_json(tmp_path / "goal.json", {"type": "schengen_90_180"})
    main(
        [
            "--goal-config",
            config,
            "--start-date",
            "2024-01-01",
            "--as-of-date",
            "2024-03-01",
            "--debug",
        ]
    )
    out = capsys.readouterr().out
    assert "[debug] DISPATCH goal_type=schengen_90_180" in out
    assert "[debug] SCHENGEN used=0" in out


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "mars_visa"},
        {"type": "uk_ilr", "track_years": 4, "visa_start_date": "2020-01-01"},
    ],
)
def test_invalid_config_exits_with_error_summary(tmp_path, capsys, payload) -> None:
    config = write_json(tmp_path / "goal.json", payload)
    with pytest.raises(SystemExit) as exc:
        main(["--goal-config", config, "--start-date", "2024-01-01", "--as-of-date", "2024-03-01"])
    assert exc.value.code == 2
    assert capsys.readouterr().out.startswith("SUMMARY status=ERROR message=")


def test_malformed_trip_flag_is_reported(tmp_path, capsys) -> None:
    config = write_json(tmp_path / "goal.json", {"type": "schengen_90_180"})
    with pytest.raises(SystemExit) as exc:
        main(
            [
                "--goal-config",
                config,
                "--trip",
                "2024-01-05",
                "--start-date",
                "2024-01-01",
                "--as-of-date",
                "2024-03-01",
            ]
        )
    assert exc.value.code == 2
    assert "--trip must be OUT:IN" in capsys.readouterr().out
