"""Continuous-residence (UK ILR) calculator.

Responsibilities:
  - Orchestrate trip durations, qualifying start, rolling-window evaluation,
    eligibility search and validation into one TravelCalculationResult.
  - Expose the RuleEngine contract for the uk_ilr goal type.

Inputs/Outputs:
  - Inputs: TripRecord sequence, UkIlrConfig, reference dates.
  - Outputs: GoalCalculation.

Invariants:
  - Never raises for trip data; malformed configuration yields INCORRECT_INPUT.
  - Deterministic for fixed inputs.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from staymaster.core.domain.configs import ILR_TRACK_YEARS, UkIlrConfig, config_is_valid, is_whole_number
from staymaster.core.domain.enums import GoalCategory, GoalType, Jurisdiction
from staymaster.core.domain.models import DisplayInfo, GoalCalculation, TripRecord
from staymaster.core.engine.debug import debug_enabled, emit_debug
from staymaster.core.intervals.dates import add_days, parse_iso_date
from staymaster.core.intervals.trips import (
    calculate_trip_durations,
    complete_trips,
    days_away_in_window,
    has_overlapping_trips,
)
from .absence import (
    build_absence_timeline,
    find_eligibility_index,
    last_absence_day,
    period_absence,
    rolling_absence_on,
)
from .qualifying import (
    absence_limit,
    calculate_pre_entry_period,
    pre_entry_absence_spans,
    qualifying_start_date,
    required_qualifying_days,
)
from .results import (
    build_metrics,
    build_requirements,
    build_visualization,
    build_warnings,
    map_status,
    progress_percent,
)
from .types import IlrSummary, TravelCalculationResult
from .validation import incorrect_input, validate_summary


def _config_error(config: UkIlrConfig) -> Optional[str]:
    track = config.track_years
    if not is_whole_number(track) or track not in ILR_TRACK_YEARS:
        return f"Track length must be one of {', '.join(str(t) for t in ILR_TRACK_YEARS)} years."
    visa_start = parse_iso_date(config.visa_start_date)
    if visa_start is None:
        return "A valid visa start date is required."
    if config.vignette_entry_date:
        vignette = parse_iso_date(config.vignette_entry_date)
        if vignette is None:
            return "The vignette entry date is not a valid date."
        if vignette < visa_start:
            return "The visa start date must not be after the vignette entry date."
    if config.application_date and parse_iso_date(config.application_date) is None:
        return "The application date is not a valid date."
    return None


def _empty_summary(trip_count: int, complete: int, limit: int) -> IlrSummary:
    return IlrSummary(
        total_trips=trip_count,
        complete_trips=complete,
        incomplete_trips=trip_count - complete,
        total_full_days=0,
        continuous_leave_days=None,
        max_absence_in_any_12_months=None,
        has_exceeded_allowed_absense=False,
        absence_limit=limit,
        ilr_eligibility_date=None,
        days_until_eligible=None,
        current_rolling_absence_today=None,
        remaining_180_limit_today=None,
    )


def calculate_travel_data(
    trips: Sequence[TripRecord], config: UkIlrConfig, as_of_date: date
) -> TravelCalculationResult:
    trips_with_calculations = calculate_trip_durations(trips)
    complete = complete_trips(trips_with_calculations)
    incomplete_ids = [t.id for t in trips_with_calculations if t.is_incomplete]
    track_years = config.track_years
    limit = absence_limit(track_years)

    error = _config_error(config)
    if error is not None:
        emit_debug(f"ILR_INPUT_ERROR message={error}")
        return TravelCalculationResult(
            trips_with_calculations=trips_with_calculations,
            pre_entry_period=None,
            validation=incorrect_input(error),
            summary=_empty_summary(len(trips_with_calculations), len(complete), limit),
            timeline=None,
        )

    visa_start = parse_iso_date(config.visa_start_date)
    vignette = parse_iso_date(config.vignette_entry_date)
    pre_entry = calculate_pre_entry_period(visa_start, vignette)
    origin = qualifying_start_date(visa_start, pre_entry)
    extra_spans = pre_entry_absence_spans(pre_entry)
    qualifying_days = required_qualifying_days(track_years)
    assessment = parse_iso_date(config.application_date) or as_of_date

    # The search horizon must reach past the last absence by a full qualifying period.
    horizon = max(add_days(origin, qualifying_days), assessment, as_of_date)
    last_absence = last_absence_day(complete, extra_spans)
    if last_absence is not None:
        horizon = max(horizon, add_days(last_absence, qualifying_days + 1))
    timeline = build_absence_timeline(complete, origin, horizon, extra_spans)

    period_start = max(origin, add_days(assessment, -qualifying_days))
    period = period_absence(timeline, period_start, assessment, limit)
    if assessment >= origin:
        total_full_days = days_away_in_window(complete, period_start, assessment)
        pre_entry_days = sum(
            (min(last, assessment) - max(first, period_start)).days + 1
            for first, last in extra_spans
            if first <= assessment and last >= period_start
        )
        total_full_days += pre_entry_days
        continuous_leave = max(0, (assessment - period_start).days - total_full_days)
    else:
        total_full_days = 0
        continuous_leave = 0

    current = rolling_absence_on(timeline, as_of_date)
    eligibility_index = find_eligibility_index(timeline, qualifying_days, limit)
    eligibility_date = add_days(origin, eligibility_index) if eligibility_index is not None else None
    days_until = max(0, (eligibility_date - as_of_date).days) if eligibility_date is not None else None

    if debug_enabled():
        emit_debug(
            f"ILR_QUALIFYING start={origin.isoformat()} track_years={track_years} "
            f"limit={limit} assessment={assessment.isoformat()} horizon={horizon.isoformat()}"
        )
        emit_debug(
            f"ILR_ELIGIBILITY date={eligibility_date.isoformat() if eligibility_date else None} "
            f"max_absence={period.max_absence} offending={len(period.offending_windows)}"
        )

    summary = IlrSummary(
        total_trips=len(trips_with_calculations),
        complete_trips=len(complete),
        incomplete_trips=len(incomplete_ids),
        total_full_days=total_full_days,
        continuous_leave_days=continuous_leave,
        max_absence_in_any_12_months=period.max_absence,
        has_exceeded_allowed_absense=bool(period.offending_windows),
        absence_limit=limit,
        ilr_eligibility_date=eligibility_date,
        days_until_eligible=days_until,
        current_rolling_absence_today=current,
        remaining_180_limit_today=limit - current,
        assessment_date=assessment,
        qualifying_start_date=origin,
        period_start_date=period_start,
        elapsed_qualifying_days=max(0, (assessment - origin).days),
        required_qualifying_days=qualifying_days,
        offending_windows=period.offending_windows,
    )
    return TravelCalculationResult(
        trips_with_calculations=trips_with_calculations,
        pre_entry_period=pre_entry,
        validation=validate_summary(summary, incomplete_ids),
        summary=summary,
        timeline=timeline,
    )


class UkIlrCalculator:
    goal_type = GoalType.UK_ILR
    jurisdiction = Jurisdiction.UK

    def calculate(
        self,
        trips: Sequence[TripRecord],
        config: UkIlrConfig,
        start_date: date,
        as_of_date: date,
    ) -> GoalCalculation:
        # The qualifying start comes from the visa dates; start_date is not used here.
        result = calculate_travel_data(trips, config, as_of_date)
        summary = result.summary
        validation = result.validation
        return GoalCalculation(
            goal_type=self.goal_type,
            status=map_status(validation, summary),
            progress_percent=progress_percent(summary, as_of_date),
            eligibility_date=summary.ilr_eligibility_date,
            days_until_eligible=summary.days_until_eligible,
            metrics=build_metrics(summary),
            warnings=build_warnings(validation, summary, has_overlapping_trips(trips)),
            requirements=build_requirements(validation, summary),
            visualization=build_visualization(result, as_of_date),
        )

    def validate_config(self, config: Any) -> bool:
        return config_is_valid(config, UkIlrConfig)

    def get_display_info(self) -> DisplayInfo:
        return DisplayInfo(
            name="UK Indefinite Leave to Remain",
            icon="home",
            description="Track continuous residence for ILR eligibility",
            category=GoalCategory.IMMIGRATION,
        )
