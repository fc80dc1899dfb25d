"""Result assembly for continuous residence.

Responsibilities:
  - Map the validation outcome and summary to a GoalStatus.
  - Build metrics, warnings, requirements and visualization data.

Inputs/Outputs:
  - Inputs: TravelCalculationResult, as-of date, raw trips.
  - Outputs: domain models consumed by GoalCalculation.

Invariants:
  - Warnings carry stable titles from REASON_METADATA.
  - Status table: eligible, then limit_exceeded, then at_risk, then in_progress.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import numpy as np

from staymaster.core.calculators.assembly import capped_percent, days_metric, limit_status
from staymaster.core.domain.enums import (
    GoalStatus,
    IneligibilityReason,
    MetricStatus,
    RequirementStatus,
    RiskLevel,
    ValidationStatus,
    WarningSeverity,
    REASON_METADATA,
)
from staymaster.core.domain.models import (
    GoalMetric,
    GoalRequirement,
    GoalVisualization,
    GoalWarning,
    OffendingWindow,
    RollingDataPoint,
    TripBar,
    TripWithCalculations,
)
from staymaster.core.intervals.dates import add_days, format_long, shift_years
from .absence import rolling_absence_on, rolling_window_bounds
from .qualifying import AT_RISK_ABSENCE_DAYS, LOW_ALLOWANCE_DAYS
from .types import AbsenceTimeline, IlrSummary, IlrValidation, TravelCalculationResult

ROLLING_SAMPLE_POINTS = 200


def map_status(validation: IlrValidation, summary: IlrSummary) -> GoalStatus:
    if validation.status is ValidationStatus.ELIGIBLE:
        return GoalStatus.ELIGIBLE
    if summary.has_exceeded_allowed_absense:
        return GoalStatus.LIMIT_EXCEEDED
    if (summary.max_absence_in_any_12_months or 0) >= AT_RISK_ABSENCE_DAYS:
        return GoalStatus.AT_RISK
    return GoalStatus.IN_PROGRESS


def progress_percent(summary: IlrSummary, as_of_date: date) -> int:
    if summary.qualifying_start_date is None:
        return 0
    elapsed = max(0, (as_of_date - summary.qualifying_start_date).days)
    return capped_percent(elapsed, summary.required_qualifying_days)


def build_metrics(summary: IlrSummary) -> list[GoalMetric]:
    limit = summary.absence_limit
    metrics = [
        days_metric(
            "total_days_outside",
            "Total Days Outside UK",
            summary.total_full_days,
            tooltip="Full days abroad in the qualifying period; travel days are not counted",
        )
    ]
    if summary.continuous_leave_days is not None:
        metrics.append(
            days_metric(
                "continuous_leave",
                "Days in UK",
                summary.continuous_leave_days,
                tooltip="Days physically present in the qualifying period",
            )
        )
    if summary.max_absence_in_any_12_months is not None:
        metrics.append(
            days_metric(
                "max_rolling_absence",
                "Max Absence (12 months)",
                summary.max_absence_in_any_12_months,
                status=limit_status(summary.max_absence_in_any_12_months, limit, AT_RISK_ABSENCE_DAYS),
                limit=limit,
                tooltip=f"Highest total absence in any rolling 12-month period (limit {limit} days)",
            )
        )
    if summary.current_rolling_absence_today is not None:
        metrics.append(
            days_metric(
                "current_rolling",
                "Current 12-Month Absence",
                summary.current_rolling_absence_today,
                status=limit_status(summary.current_rolling_absence_today, limit, AT_RISK_ABSENCE_DAYS),
                limit=limit,
            )
        )
    if summary.remaining_180_limit_today is not None:
        remaining = summary.remaining_180_limit_today
        metrics.append(
            days_metric(
                "remaining_allowance",
                "Remaining Allowance",
                remaining,
                status=MetricStatus.WARNING if remaining < LOW_ALLOWANCE_DAYS else MetricStatus.OK,
                tooltip="Days you can still spend abroad in the current 12-month window",
            )
        )
    return metrics


def _window_line(window: OffendingWindow, limit: int) -> str:
    return f"{format_long(window.start)} - {format_long(window.end)}: {window.days} days (limit {limit})"


def _reason_warning(
    reason: IneligibilityReason,
    message: str,
    details: Optional[list[str]] = None,
    related_trip_ids: Optional[list[str]] = None,
    windows: Optional[list[OffendingWindow]] = None,
) -> GoalWarning:
    meta = REASON_METADATA[reason]
    return GoalWarning(
        severity=meta["severity"],
        title=meta["title"],
        message=message,
        action=meta["action"],
        details=details or [],
        related_trip_ids=related_trip_ids or [],
        offending_windows=windows or [],
    )


def build_warnings(
    validation: IlrValidation, summary: IlrSummary, has_overlaps: bool = False
) -> list[GoalWarning]:
    warnings: list[GoalWarning] = []
    reason = validation.reason if validation.status is ValidationStatus.INELIGIBLE else None

    if reason is IneligibilityReason.INCORRECT_INPUT:
        warnings.append(_reason_warning(reason, validation.message))
        return warnings

    if summary.has_exceeded_allowed_absense:
        if reason is IneligibilityReason.EXCESSIVE_ABSENCE:
            message = validation.message
        else:
            message = f"Absences exceed the {summary.absence_limit}-day limit in a 12-month period."
        warnings.append(
            _reason_warning(
                IneligibilityReason.EXCESSIVE_ABSENCE,
                message,
                details=[_window_line(w, summary.absence_limit) for w in summary.offending_windows],
                windows=list(summary.offending_windows),
            )
        )

    if reason is IneligibilityReason.INCOMPLETED_TRIPS:
        warnings.append(
            _reason_warning(
                reason,
                validation.message,
                details=[f"Trip {trip_id}" for trip_id in validation.incomplete_trip_ids],
                related_trip_ids=list(validation.incomplete_trip_ids),
            )
        )
    elif reason is IneligibilityReason.TOO_EARLY:
        details = [
            f"Required qualifying days: {validation.required_days}",
            f"Days completed: {validation.current_days}",
        ]
        if validation.earliest_allowed_date is not None:
            details.append(f"Earliest eligible date: {format_long(validation.earliest_allowed_date)}")
        warnings.append(_reason_warning(reason, validation.message, details=details))

    remaining = summary.remaining_180_limit_today
    if (
        not summary.has_exceeded_allowed_absense
        and remaining is not None
        and 0 <= remaining < LOW_ALLOWANCE_DAYS
    ):
        warnings.append(
            GoalWarning(
                severity=WarningSeverity.WARNING,
                title="Low Remaining Allowance",
                message=f"Only {remaining} days of absence remain in the current 12-month window.",
                action="Plan upcoming travel carefully",
            )
        )

    if has_overlaps:
        warnings.append(
            GoalWarning(
                severity=WarningSeverity.WARNING,
                title="Overlapping Trips",
                message="Some trips overlap; absence totals are computed from the trips as entered.",
                action="Correct the overlapping trip dates",
            )
        )
    return warnings


def build_requirements(validation: IlrValidation, summary: IlrSummary) -> list[GoalRequirement]:
    if validation.reason is IneligibilityReason.INCORRECT_INPUT:
        return [
            GoalRequirement("qualifying_period", "Qualifying period", RequirementStatus.UNKNOWN),
            GoalRequirement("absence_limit", "Absence limit", RequirementStatus.UNKNOWN),
            GoalRequirement("complete_trip_records", "Complete trip records", RequirementStatus.UNKNOWN),
        ]

    required = summary.required_qualifying_days
    elapsed = summary.elapsed_qualifying_days
    if elapsed >= required:
        period = GoalRequirement(
            "qualifying_period", "Qualifying period", RequirementStatus.MET, f"{required} days completed"
        )
    else:
        detail = f"{elapsed} of {required} days completed"
        if summary.ilr_eligibility_date is not None:
            detail += f"; eligible from {format_long(summary.ilr_eligibility_date)}"
        period = GoalRequirement("qualifying_period", "Qualifying period", RequirementStatus.PENDING, detail)

    if summary.has_exceeded_allowed_absense:
        absence = GoalRequirement(
            "absence_limit",
            "Absence limit",
            RequirementStatus.NOT_MET,
            f"Exceeded {summary.absence_limit} days in a 12-month period",
        )
    else:
        absence = GoalRequirement(
            "absence_limit",
            "Absence limit",
            RequirementStatus.MET,
            f"At most {summary.max_absence_in_any_12_months or 0} of {summary.absence_limit} days",
        )

    if summary.incomplete_trips:
        records = GoalRequirement(
            "complete_trip_records",
            "Complete trip records",
            RequirementStatus.NOT_MET,
            f"{summary.incomplete_trips} incomplete",
        )
    else:
        records = GoalRequirement("complete_trip_records", "Complete trip records", RequirementStatus.MET)
    return [period, absence, records]


def risk_level(rolling_days: int, limit: int) -> RiskLevel:
    if rolling_days >= limit:
        return RiskLevel.CRITICAL
    if rolling_days >= AT_RISK_ABSENCE_DAYS:
        return RiskLevel.CAUTION
    return RiskLevel.LOW


def _rolling_point(timeline: AbsenceTimeline, day: date, limit: int) -> RollingDataPoint:
    start, end = rolling_window_bounds(timeline, day)
    window = timeline.counts[start : end + 1].copy()
    # Trips abroad on an edge day are clipped there.
    window[0] -= timeline.trip_counts[start]
    if end > start:
        window[-1] -= timeline.trip_counts[end]
    rolling_days = rolling_absence_on(timeline, day)

    next_expiration: Optional[date] = None
    days_to_expire: Optional[int] = None
    absent = np.flatnonzero(window > 0)
    if absent.size:
        first = int(absent[0])
        gaps = np.flatnonzero(window[first:] == 0)
        run_end = first + int(gaps[0]) if gaps.size else window.size
        oldest = add_days(timeline.origin, start + first)
        next_expiration = shift_years(oldest, 1)
        days_to_expire = int(window[first:run_end].sum())

    return RollingDataPoint(
        day=day,
        rolling_days=rolling_days,
        risk_level=risk_level(rolling_days, limit),
        next_expiration_date=next_expiration,
        days_to_expire=days_to_expire,
    )


def rolling_absence_data(timeline: AbsenceTimeline, as_of_date: date, limit: int) -> list[RollingDataPoint]:
    last = min((as_of_date - timeline.origin).days, timeline.counts.size - 1)
    if last < 0:
        return []
    step = max(1, last // ROLLING_SAMPLE_POINTS)
    indices = list(range(0, last + 1, step))
    if indices[-1] != last:
        indices.append(last)
    return [_rolling_point(timeline, add_days(timeline.origin, i), limit) for i in indices]


def trip_bars(trips: Sequence[TripWithCalculations], origin: date) -> list[TripBar]:
    bars: list[TripBar] = []
    for trip in trips:
        if trip.is_incomplete or trip.out_day is None or trip.in_day is None:
            continue
        bars.append(
            TripBar(
                trip_id=trip.id,
                out_date=trip.out_day,
                in_date=trip.in_day,
                trip_start=(trip.out_day - origin).days,
                trip_end=(trip.in_day - origin).days,
                trip_duration=trip.full_days or 0,
                trip_label=f"{trip.out_route or 'Unknown'} -> {trip.in_route or 'Unknown'}",
            )
        )
    return bars


def build_visualization(result: TravelCalculationResult, as_of_date: date) -> Optional[GoalVisualization]:
    timeline = result.timeline
    if timeline is None:
        return None
    return GoalVisualization(
        rolling_absence_data=rolling_absence_data(timeline, as_of_date, result.summary.absence_limit),
        trip_bars=trip_bars(result.trips_with_calculations, timeline.origin),
    )
