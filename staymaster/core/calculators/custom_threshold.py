"""User-defined threshold over a sliding window.

Responsibilities:
  - days_away: treat threshold_days as the most days away allowed in any window.
  - days_present: treat threshold_days as the fewest days present required in the
    window ending on the as-of date.

Invariants:
  - Windows end on each day of [start_date, as_of_date] and are clipped at start_date.
  - Counting excludes travel days (full days only). A trip crossing a window edge is
    clipped there, so the window total matches days_away_in_window.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Optional, Sequence

import numpy as np

from staymaster.core.domain.configs import CustomThresholdConfig, config_is_valid
from staymaster.core.domain.enums import (
    CountDirection,
    GoalCategory,
    GoalStatus,
    GoalType,
    Jurisdiction,
    MetricStatus,
    WarningSeverity,
)
from staymaster.core.domain.models import DisplayInfo, GoalCalculation, GoalMetric, GoalWarning, TripRecord
from staymaster.core.engine.debug import emit_debug
from staymaster.core.intervals.dates import add_days, format_long
from staymaster.core.intervals.rolling import (
    absence_day_counts,
    clipped_window_sums,
    fixed_window_starts,
    offending_windows,
    prefix_sums,
    worst_window,
)
from staymaster.core.intervals.trips import calculate_trip_durations, complete_trips
from .assembly import capped_percent, days_metric, limit_status

AT_RISK_FRACTION = 5 / 6


def at_risk_threshold(threshold_days: int) -> int:
    return math.ceil(threshold_days * AT_RISK_FRACTION)


def _label(config: CustomThresholdConfig) -> str:
    return config.description or "Custom threshold"


class CustomThresholdCalculator:
    goal_type = GoalType.CUSTOM_THRESHOLD
    jurisdiction = Jurisdiction.GLOBAL

    def calculate(
        self,
        trips: Sequence[TripRecord],
        config: CustomThresholdConfig,
        start_date: date,
        as_of_date: date,
    ) -> GoalCalculation:
        complete = complete_trips(calculate_trip_durations(trips))
        if config.count_direction is CountDirection.DAYS_AWAY:
            return self._days_away(complete, config, start_date, as_of_date)
        return self._days_present(complete, config, start_date, as_of_date)

    def _days_away(self, trips, config: CustomThresholdConfig, start_date: date, as_of_date: date) -> GoalCalculation:
        threshold = config.threshold_days
        counts = absence_day_counts(trips, start_date, as_of_date)
        if counts.size == 0:
            return self._empty(GoalStatus.NOT_STARTED)

        starts = fixed_window_starts(counts.size, config.window_days)
        sums = clipped_window_sums(prefix_sums(counts), counts, starts)
        current = int(sums[-1])
        worst = int(sums.max())
        windows = offending_windows(sums, starts, threshold, origin=start_date)
        warn_at = at_risk_threshold(threshold)
        emit_debug(f"CUSTOM_THRESHOLD worst={worst} threshold={threshold} offending={len(windows)}")

        if windows:
            status = GoalStatus.LIMIT_EXCEEDED
        elif worst >= warn_at:
            status = GoalStatus.AT_RISK
        else:
            status = GoalStatus.ON_TRACK

        metrics = [
            days_metric(
                "current_window",
                f"Days Away (last {config.window_days} days)",
                current,
                status=limit_status(current, threshold, warn_at),
                limit=threshold,
            ),
            days_metric(
                "worst_window",
                "Worst Window",
                worst,
                status=limit_status(worst, threshold, warn_at),
                limit=threshold,
            ),
            days_metric(
                "remaining_allowance",
                "Remaining Allowance",
                max(0, threshold - current),
                status=MetricStatus.WARNING if current >= warn_at else MetricStatus.OK,
            ),
        ]

        warnings: list[GoalWarning] = []
        if windows:
            worst_w = worst_window(windows)
            warnings.append(
                GoalWarning(
                    severity=WarningSeverity.ERROR,
                    title="Threshold Exceeded",
                    message=(
                        f"{_label(config)}: {worst_w.days} days away between {format_long(worst_w.start)} "
                        f"and {format_long(worst_w.end)}, above the {threshold}-day threshold."
                    ),
                    details=[
                        f"{format_long(w.start)} - {format_long(w.end)}: {w.days} days (limit {threshold})"
                        for w in windows
                    ],
                    offending_windows=windows,
                )
            )
        elif worst >= warn_at:
            warnings.append(
                GoalWarning(
                    severity=WarningSeverity.WARNING,
                    title="Approaching Threshold",
                    message=f"{_label(config)}: {worst} of {threshold} days used in a {config.window_days}-day window.",
                )
            )

        return GoalCalculation(
            goal_type=self.goal_type,
            status=status,
            progress_percent=capped_percent(worst, threshold),
            eligibility_date=None,
            days_until_eligible=None,
            metrics=metrics,
            warnings=warnings,
        )

    def _days_present(
        self, trips, config: CustomThresholdConfig, start_date: date, as_of_date: date
    ) -> GoalCalculation:
        threshold = config.threshold_days
        if as_of_date < start_date:
            return self._empty(GoalStatus.NOT_STARTED)

        # Look far enough ahead to let every recorded trip leave the window.
        horizon = add_days(as_of_date, config.window_days)
        for trip in trips:
            if trip.in_day is not None and trip.in_day > as_of_date:
                horizon = max(horizon, add_days(trip.in_day, config.window_days))

        counts = absence_day_counts(trips, start_date, horizon)
        absent = (counts > 0).astype(np.int64)
        starts = fixed_window_starts(absent.size, config.window_days)
        away = clipped_window_sums(prefix_sums(absent), absent, starts)
        lengths = np.arange(absent.size, dtype=np.int64) - starts + 1
        present = lengths - away

        today = (as_of_date - start_date).days
        present_now = int(present[today])
        away_now = int(away[today])
        hits = np.flatnonzero(present[today:] >= threshold)
        eligibility_date: Optional[date] = None
        days_until: Optional[int] = None
        if hits.size:
            days_until = int(hits[0])
            eligibility_date = add_days(as_of_date, days_until)

        status = GoalStatus.ACHIEVED if present_now >= threshold else GoalStatus.IN_PROGRESS
        metrics: list[GoalMetric] = [
            days_metric(
                "days_present",
                f"Days Present (last {config.window_days} days)",
                present_now,
                status=MetricStatus.OK if present_now >= threshold else MetricStatus.WARNING,
                limit=threshold,
            ),
            days_metric("days_away", "Days Away", away_now),
            days_metric("days_needed", "Days Still Needed", max(0, threshold - present_now)),
        ]
        return GoalCalculation(
            goal_type=self.goal_type,
            status=status,
            progress_percent=capped_percent(present_now, threshold),
            eligibility_date=eligibility_date,
            days_until_eligible=days_until,
            metrics=metrics,
            warnings=[],
        )

    def _empty(self, status: GoalStatus) -> GoalCalculation:
        return GoalCalculation(
            goal_type=self.goal_type,
            status=status,
            progress_percent=0,
            eligibility_date=None,
            days_until_eligible=None,
            metrics=[],
            warnings=[],
        )

    def validate_config(self, config: Any) -> bool:
        return config_is_valid(config, CustomThresholdConfig)

    def get_display_info(self) -> DisplayInfo:
        return DisplayInfo(
            name="Custom Threshold",
            icon="target",
            description="Track days against your own limit within a rolling window",
            category=GoalCategory.PERSONAL,
        )
