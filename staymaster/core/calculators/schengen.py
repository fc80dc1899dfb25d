"""Schengen 90/180 short-stay calculator.

Responsibilities:
  - Count days of stay (entry and exit days included) in every 180-day window.
  - Report days used today, days remaining and the worst window in the tracked period.

Invariants:
  - Trips are stays inside the area: out_date is the entry day, in_date the exit day.
  - Stays before start_date still count towards windows ending inside the period.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

import numpy as np

from staymaster.core.domain.configs import SchengenConfig, config_is_valid
from staymaster.core.domain.enums import GoalCategory, GoalStatus, GoalType, Jurisdiction, MetricStatus, WarningSeverity
from staymaster.core.domain.models import DisplayInfo, GoalCalculation, GoalWarning, TripRecord
from staymaster.core.engine.debug import emit_debug
from staymaster.core.intervals.dates import add_days, format_long
from staymaster.core.intervals.rolling import (
    fixed_window_starts,
    offending_windows,
    prefix_sums,
    presence_day_counts,
    trailing_window_sums,
    worst_window,
)
from staymaster.core.intervals.trips import calculate_trip_durations, complete_trips
from .assembly import capped_percent, days_metric, limit_status

MAX_STAY_DAYS = 90
WINDOW_DAYS = 180
LOW_REMAINING_DAYS = 10
CAUTION_STAY_DAYS = 80


class SchengenCalculator:
    goal_type = GoalType.SCHENGEN_90_180
    jurisdiction = Jurisdiction.SCHENGEN

    def calculate(
        self,
        trips: Sequence[TripRecord],
        config: SchengenConfig,
        start_date: date,
        as_of_date: date,
    ) -> GoalCalculation:
        stays = complete_trips(calculate_trip_durations(trips))
        if as_of_date < start_date:
            return GoalCalculation(
                goal_type=self.goal_type,
                status=GoalStatus.NOT_STARTED,
                progress_percent=0,
                eligibility_date=None,
                days_until_eligible=None,
                metrics=[],
                warnings=[],
            )

        origin = add_days(start_date, -(WINDOW_DAYS - 1))
        horizon = add_days(as_of_date, WINDOW_DAYS)
        for stay in stays:
            if stay.in_day is not None and stay.in_day > as_of_date:
                horizon = max(horizon, add_days(stay.in_day, WINDOW_DAYS))

        # Overlapping stays must not count a day twice.
        counts = np.minimum(presence_day_counts(stays, origin, horizon), 1)
        starts = fixed_window_starts(counts.size, WINDOW_DAYS)
        sums = trailing_window_sums(prefix_sums(counts), starts)

        first = WINDOW_DAYS - 1
        today = (as_of_date - origin).days
        used = int(sums[today])
        remaining = max(0, MAX_STAY_DAYS - used)
        tracked = sums[first : today + 1]
        worst = int(tracked.max())
        windows = offending_windows(sums, starts, MAX_STAY_DAYS, origin, first_index=first, last_index=today)
        emit_debug(f"SCHENGEN used={used} remaining={remaining} worst={worst} offending={len(windows)}")

        eligibility_date: Optional[date] = None
        days_until: Optional[int] = None
        if used > 0:
            clear = np.flatnonzero(sums[today:] == 0)
            if clear.size:
                days_until = int(clear[0])
                eligibility_date = add_days(as_of_date, days_until)

        if windows:
            status = GoalStatus.LIMIT_EXCEEDED
        elif remaining < LOW_REMAINING_DAYS:
            status = GoalStatus.AT_RISK
        else:
            status = GoalStatus.ON_TRACK

        metrics = [
            days_metric(
                "days_used",
                "Days Used (last 180 days)",
                used,
                status=limit_status(used, MAX_STAY_DAYS, CAUTION_STAY_DAYS),
                limit=MAX_STAY_DAYS,
            ),
            days_metric(
                "days_remaining",
                "Days Remaining",
                remaining,
                status=MetricStatus.WARNING if remaining < LOW_REMAINING_DAYS else MetricStatus.OK,
            ),
            days_metric(
                "worst_window",
                "Most Days in Any 180-Day Window",
                worst,
                status=limit_status(worst, MAX_STAY_DAYS, CAUTION_STAY_DAYS),
                limit=MAX_STAY_DAYS,
            ),
        ]

        warnings: list[GoalWarning] = []
        if windows:
            worst_w = worst_window(windows)
            warnings.append(
                GoalWarning(
                    severity=WarningSeverity.ERROR,
                    title="Schengen Limit Exceeded",
                    message=(
                        f"{worst_w.days} days of stay in the 180 days ending {format_long(worst_w.end)}, "
                        f"above the {MAX_STAY_DAYS}-day limit."
                    ),
                    action="Review your stays in the Schengen area",
                    details=[f"{format_long(w.start)} - {format_long(w.end)}: {w.days} days" for w in windows],
                    offending_windows=windows,
                )
            )
        elif remaining < LOW_REMAINING_DAYS:
            warnings.append(
                GoalWarning(
                    severity=WarningSeverity.WARNING,
                    title="Low Remaining Days",
                    message=f"Only {remaining} days of stay remain in the current 180-day window.",
                )
            )

        return GoalCalculation(
            goal_type=self.goal_type,
            status=status,
            progress_percent=capped_percent(used, MAX_STAY_DAYS),
            eligibility_date=eligibility_date,
            days_until_eligible=days_until,
            metrics=metrics,
            warnings=warnings,
        )

    def validate_config(self, config: Any) -> bool:
        return config_is_valid(config, SchengenConfig)

    def get_display_info(self) -> DisplayInfo:
        return DisplayInfo(
            name="Schengen 90/180",
            icon="globe",
            description="Track short stays against the 90 days in 180 rule",
            category=GoalCategory.IMMIGRATION,
        )
