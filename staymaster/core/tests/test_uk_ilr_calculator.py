"""Tests for continuous-residence (ILR) evaluation."""

from __future__ import annotations

import random
from datetime import date, timedelta

from staymaster.core.calculators.uk_ilr.calculator import UkIlrCalculator, calculate_travel_data
from staymaster.core.calculators.uk_ilr.qualifying import calculate_pre_entry_period
from staymaster.core.domain.configs import UkIlrConfig
from staymaster.core.domain.enums import (
    GoalStatus,
    IneligibilityReason,
    MetricStatus,
    RequirementStatus,
    RiskLevel,
    ValidationStatus,
)
from staymaster.core.domain.models import TripRecord
from staymaster.core.intervals.dates import shift_years


def make_config(track_years: int = 5, visa_start: str = "2020-01-01", **kwargs) -> UkIlrConfig:
    return UkIlrConfig(track_years=track_years, visa_start_date=visa_start, **kwargs)


def make_trips(*pairs) -> list[TripRecord]:
    return [TripRecord(id=f"t{i + 1}", out_date=o, in_date=r) for i, (o, r) in enumerate(pairs)]


def metric_map(calculation) -> dict:
    return {m.key: m for m in calculation.metrics}


def test_scenario_window_over_limit_is_limit_exceeded() -> None:
    trips = make_trips(("2022-02-01", "2022-08-11"))
    result = calculate_travel_data(trips, make_config(), date(2024, 1, 1))

    assert result.summary.max_absence_in_any_12_months == 190
    assert result.summary.has_exceeded_allowed_absense is True
    assert result.validation.reason == IneligibilityReason.EXCESSIVE_ABSENCE
    assert result.validation.offending_windows
    worst = result.validation.worst_window
    assert worst.days == 190
    # The window ending on 2022-08-10 clips the trip there and holds 189 full days.
    assert worst.end == date(2022, 8, 11)
    assert worst.start == date(2021, 8, 12)
    assert worst in result.validation.offending_windows

    calc = UkIlrCalculator().calculate(trips, make_config(), date(2020, 1, 1), date(2024, 1, 1))
    assert calc.status == GoalStatus.LIMIT_EXCEEDED
    assert metric_map(calc)["max_rolling_absence"].status == MetricStatus.EXCEEDED
    assert metric_map(calc)["max_rolling_absence"].limit == 180
    titles = [w.title for w in calc.warnings]
    assert "Absence Limit Exceeded" in titles
    assert calc.warnings[0].offending_windows


def test_eligibility_date_waits_for_offending_window_to_leave_period() -> None:
    trips = make_trips(("2022-02-01", "2022-08-11"))
    summary = calculate_travel_data(trips, make_config(), date(2024, 1, 1)).summary

    # A period starting on 2022-02-11 clips the trip there, leaving 180 full days inside.
    assert summary.ilr_eligibility_date - timedelta(days=1825) == date(2022, 2, 11)
    assert summary.days_until_eligible == (summary.ilr_eligibility_date - date(2024, 1, 1)).days


def test_scenario_near_limit_is_at_risk() -> None:
    trips = make_trips(("2022-02-01", "2022-07-12"))
    calc = UkIlrCalculator().calculate(trips, make_config(), date(2020, 1, 1), date(2024, 1, 1))

    metrics = metric_map(calc)
    assert metrics["max_rolling_absence"].value == 160
    assert metrics["max_rolling_absence"].status == MetricStatus.WARNING
    assert calc.status == GoalStatus.AT_RISK


def test_low_remaining_allowance_warning() -> None:
    trips = make_trips(("2022-02-01", "2022-07-12"))
    calc = UkIlrCalculator().calculate(trips, make_config(), date(2020, 1, 1), date(2022, 12, 31))

    metrics = metric_map(calc)
    assert metrics["current_rolling"].value == 160
    assert metrics["remaining_allowance"].value == 20
    assert metrics["remaining_allowance"].status == MetricStatus.WARNING
    assert "Low Remaining Allowance" in [w.title for w in calc.warnings]


def test_ten_year_track_uses_higher_limit() -> None:
    trips = make_trips(("2022-02-01", "2022-08-03"))
    result = calculate_travel_data(trips, make_config(track_years=10), date(2024, 1, 1))

    assert result.summary.absence_limit == 184
    assert result.summary.max_absence_in_any_12_months == 182
    assert result.summary.has_exceeded_allowed_absense is False

    five_year = calculate_travel_data(trips, make_config(track_years=5), date(2024, 1, 1))
    assert five_year.summary.has_exceeded_allowed_absense is True


def test_eligible_after_qualifying_period() -> None:
    trips = make_trips(("2021-03-01", "2021-03-11"))
    config = make_config(visa_start="2018-01-01")
    calc = UkIlrCalculator().calculate(trips, config, date(2018, 1, 1), date(2024, 6, 1))

    assert calc.status == GoalStatus.ELIGIBLE
    assert calc.eligibility_date == date(2022, 12, 31)
    assert calc.days_until_eligible == 0
    assert calc.progress_percent == 100
    assert metric_map(calc)["total_days_outside"].value == 9
    assert all(r.status == RequirementStatus.MET for r in calc.requirements)


def test_too_early_reports_required_and_current_days() -> None:
    config = make_config(visa_start="2023-01-01")
    result = calculate_travel_data([], config, date(2024, 1, 1))

    validation = result.validation
    assert validation.status == ValidationStatus.INELIGIBLE
    assert validation.reason == IneligibilityReason.TOO_EARLY
    assert validation.required_days == 1825
    assert validation.current_days == 365
    assert validation.earliest_allowed_date == date(2027, 12, 31)

    calc = UkIlrCalculator().calculate([], config, date(2023, 1, 1), date(2024, 1, 1))
    assert calc.status == GoalStatus.IN_PROGRESS
    assert calc.progress_percent == 20
    assert calc.days_until_eligible == 1460
    assert calc.warnings[0].title == "Not Yet Eligible"


def test_application_date_overrides_assessment_date() -> None:
    config = make_config(track_years=2, visa_start="2020-01-01", application_date="2022-06-01")
    result = calculate_travel_data([], config, date(2021, 6, 1))

    assert result.summary.assessment_date == date(2022, 6, 1)
    assert result.validation.status == ValidationStatus.ELIGIBLE
    assert result.validation.application_date == date(2022, 6, 1)


def test_pre_entry_period_counts_as_absence() -> None:
    pre_entry = calculate_pre_entry_period(date(2023, 1, 1), date(2023, 5, 31))
    assert pre_entry.delay_days == 150
    assert pre_entry.can_count is True
    assert pre_entry.qualifying_start_date == date(2023, 1, 1)

    config = make_config(track_years=2, visa_start="2023-01-01", vignette_entry_date="2023-05-31")
    summary = calculate_travel_data([], config, date(2023, 12, 31)).summary
    assert summary.qualifying_start_date == date(2023, 1, 1)
    assert summary.total_full_days == 150
    assert summary.continuous_leave_days == 214
    assert summary.current_rolling_absence_today == 150


def test_long_pre_entry_delay_moves_qualifying_start() -> None:
    pre_entry = calculate_pre_entry_period(date(2023, 1, 1), date(2023, 8, 1))
    assert pre_entry.delay_days == 212
    assert pre_entry.can_count is False
    assert pre_entry.qualifying_start_date == date(2023, 8, 1)

    config = make_config(track_years=2, visa_start="2023-01-01", vignette_entry_date="2023-08-01")
    summary = calculate_travel_data([], config, date(2024, 1, 1)).summary
    assert summary.qualifying_start_date == date(2023, 8, 1)
    assert summary.total_full_days == 0


def test_vignette_before_visa_start_is_incorrect_input() -> None:
    config = make_config(visa_start="2023-06-01", vignette_entry_date="2023-01-01")
    result = calculate_travel_data([], config, date(2024, 1, 1))
    assert result.validation.reason == IneligibilityReason.INCORRECT_INPUT
    assert result.timeline is None

    calc = UkIlrCalculator().calculate([], config, date(2023, 1, 1), date(2024, 1, 1))
    assert calc.status == GoalStatus.IN_PROGRESS
    assert calc.progress_percent == 0
    assert calc.warnings[0].title == "Input Error"
    assert calc.visualization is None
    assert all(r.status == RequirementStatus.UNKNOWN for r in calc.requirements)


def test_missing_visa_start_is_incorrect_input() -> None:
    result = calculate_travel_data([], make_config(visa_start=""), date(2024, 1, 1))
    assert result.validation.reason == IneligibilityReason.INCORRECT_INPUT


def test_incomplete_trip_reports_trip_ids() -> None:
    trips = make_trips(("2021-03-01", "2021-03-11"), ("2022-01-01", ""))
    result = calculate_travel_data(trips, make_config(visa_start="2015-01-01"), date(2024, 1, 1))

    assert result.validation.reason == IneligibilityReason.INCOMPLETED_TRIPS
    assert result.validation.incomplete_trip_ids == ["t2"]
    assert result.summary.incomplete_trips == 1
    assert result.summary.total_full_days == 9

    calc = UkIlrCalculator().calculate(trips, make_config(visa_start="2015-01-01"), date(2015, 1, 1), date(2024, 1, 1))
    warning = next(w for w in calc.warnings if w.title == "Incomplete Trips")
    assert warning.related_trip_ids == ["t2"]


def test_incomplete_trips_take_precedence_over_excessive_absence() -> None:
    trips = make_trips(("2022-02-01", "2022-08-11"), ("2023-01-01", None))
    result = calculate_travel_data(trips, make_config(), date(2024, 1, 1))

    assert result.validation.reason == IneligibilityReason.INCOMPLETED_TRIPS
    assert result.summary.has_exceeded_allowed_absense is True


def test_progress_is_capped_at_100() -> None:
    calc = UkIlrCalculator().calculate([], make_config(visa_start="2005-01-01"), date(2005, 1, 1), date(2024, 1, 1))
    assert calc.progress_percent == 100


def test_overlapping_trips_are_computed_with_warning() -> None:
    trips = make_trips(("2021-03-01", "2021-03-20"), ("2021-03-10", "2021-03-25"))
    calc = UkIlrCalculator().calculate(trips, make_config(), date(2020, 1, 1), date(2022, 1, 1))

    assert "Overlapping Trips" in [w.title for w in calc.warnings]
    assert metric_map(calc)["total_days_outside"].value == 18 + 14


def test_calculate_is_idempotent() -> None:
    trips = make_trips(("2021-03-01", "2021-06-11"), ("2022-02-01", "2022-04-01"))
    engine = UkIlrCalculator()
    first = engine.calculate(trips, make_config(), date(2020, 1, 1), date(2023, 5, 1))
    second = engine.calculate(trips, make_config(), date(2020, 1, 1), date(2023, 5, 1))
    assert first == second


def test_visualization_points_and_trip_bars() -> None:
    trips = make_trips(("2021-03-01", "2021-03-11"))
    calc = UkIlrCalculator().calculate(trips, make_config(), date(2020, 1, 1), date(2021, 6, 1))

    points = calc.visualization.rolling_absence_data
    assert points[0].day == date(2020, 1, 1)
    last = points[-1]
    assert last.day == date(2021, 6, 1)
    assert last.rolling_days == 9
    assert last.risk_level == RiskLevel.LOW
    assert last.next_expiration_date == date(2022, 3, 2)
    assert last.days_to_expire == 9
    assert [p.day for p in points] == sorted(p.day for p in points)

    (bar,) = calc.visualization.trip_bars
    assert bar.trip_id == "t1"
    assert bar.trip_start == (date(2021, 3, 1) - date(2020, 1, 1)).days
    assert bar.trip_duration == 9
    assert bar.trip_label == "Unknown -> Unknown"


def _clipped_days(trips: list[TripRecord], start: date, end: date) -> int:
    total = 0
    for trip in trips:
        out_day = date.fromisoformat(trip.out_date)
        in_day = date.fromisoformat(trip.in_date)
        if out_day > end or in_day < start:
            continue
        total += max(0, (min(in_day, end) - max(out_day, start)).days - 1)
    return total


def _random_trips(seed: int) -> list[TripRecord]:
    rng = random.Random(seed)
    cursor = date(2020, 1, 1) + timedelta(days=rng.randint(0, 40))
    pairs = []
    while cursor < date(2022, 5, 1):
        length = rng.randint(2, 70)
        pairs.append((cursor.isoformat(), (cursor + timedelta(days=length)).isoformat()))
        cursor += timedelta(days=length + rng.randint(5, 120))
    return make_trips(*pairs)


def test_daily_windows_match_naive_and_boundary_anchored_maximum() -> None:
    as_of = date(2022, 6, 30)
    config = make_config(track_years=2, visa_start="2020-01-01")
    for seed in range(4):
        trips = _random_trips(seed)
        summary = calculate_travel_data(trips, config, as_of).summary
        period_start = summary.period_start_date

        def window_start(end: date) -> date:
            return max(period_start, shift_years(end, -1) + timedelta(days=1))

        def window_total(end: date) -> int:
            return _clipped_days(trips, window_start(end), end)

        period_days = [period_start + timedelta(days=k) for k in range((as_of - period_start).days + 1)]
        naive = max(window_total(d) for d in period_days)

        # Windows ending on a return day, or starting on a departure day or the period start.
        in_days = {date.fromisoformat(t.in_date) for t in trips}
        out_days = {date.fromisoformat(t.out_date) for t in trips} | {period_start}
        anchored_ends = {d for d in period_days if d in in_days or window_start(d) in out_days}
        anchored_ends.add(as_of)
        anchored = max(window_total(d) for d in anchored_ends)

        assert summary.max_absence_in_any_12_months == naive
        assert anchored == naive
        assert summary.max_absence_in_any_12_months <= summary.total_full_days
        assert summary.total_full_days == _clipped_days(trips, period_start, as_of)


def test_trip_crossing_qualifying_start_is_clipped_there() -> None:
    trips = make_trips(("2019-12-20", "2020-01-10"))
    summary = calculate_travel_data(trips, make_config(track_years=2), date(2020, 12, 31)).summary

    assert summary.total_full_days == 8
    assert summary.max_absence_in_any_12_months == 8
    assert summary.current_rolling_absence_today == 8


def test_trip_still_abroad_on_as_of_date_is_clipped_there() -> None:
    trips = make_trips(("2020-06-01", "2020-09-01"))
    result = calculate_travel_data(trips, make_config(track_years=2), date(2020, 7, 1))

    assert result.summary.total_full_days == 29
    assert result.summary.max_absence_in_any_12_months == 29
    assert result.summary.current_rolling_absence_today == 29

    calc = UkIlrCalculator().calculate(trips, make_config(track_years=2), date(2020, 1, 1), date(2020, 7, 1))
    last = calc.visualization.rolling_absence_data[-1]
    assert last.rolling_days == 29
    assert last.days_to_expire == 29


def test_float_track_years_is_incorrect_input() -> None:
    config = make_config(track_years=5.0)
    assert UkIlrCalculator().validate_config(config) is False

    result = calculate_travel_data([], config, date(2024, 1, 1))
    assert result.validation.reason == IneligibilityReason.INCORRECT_INPUT
