"""Simple days counter.

Counts days away from (or present in) a reference location over [start_date, as_of_date]
inclusive. No eligibility, no limits, no warnings: accounting only.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Sequence

from staymaster.core.domain.configs import DaysCounterConfig, config_is_valid
from staymaster.core.domain.enums import CountDirection, GoalCategory, GoalStatus, GoalType, Jurisdiction
from staymaster.core.domain.models import DisplayInfo, GoalCalculation, TripRecord
from staymaster.core.intervals.dates import format_long
from staymaster.core.intervals.trips import calculate_trip_durations, days_away_in_window
from .assembly import days_metric, percent, percent_metric


def count_days(trips: Sequence[TripRecord], start_date: date, as_of_date: date) -> tuple[int, int, int]:
    """Return (total_days, days_away, days_present) for the inclusive window."""
    total_days = max(0, (as_of_date - start_date).days + 1)
    if total_days == 0:
        return 0, 0, 0
    days_away = days_away_in_window(calculate_trip_durations(trips), start_date, as_of_date)
    days_away = min(days_away, total_days)
    return total_days, days_away, total_days - days_away


class DaysCounterCalculator:
    goal_type = GoalType.DAYS_COUNTER
    jurisdiction = Jurisdiction.GLOBAL

    def calculate(
        self,
        trips: Sequence[TripRecord],
        config: DaysCounterConfig,
        start_date: date,
        as_of_date: date,
    ) -> GoalCalculation:
        total_days, days_away, days_present = count_days(trips, start_date, as_of_date)
        location = config.reference_location or "location"

        if config.count_direction is CountDirection.DAYS_AWAY:
            primary, secondary = days_away, days_present
            primary_label = f"Days Away from {location}"
            secondary_key, secondary_label = "days_present", f"Days in {location}"
            percent_label = "% Time Away"
        else:
            primary, secondary = days_present, days_away
            primary_label = f"Days in {location}"
            secondary_key, secondary_label = "days_away", "Days Away"
            percent_label = "% Time Present"

        return GoalCalculation(
            goal_type=self.goal_type,
            status=GoalStatus.IN_PROGRESS,
            progress_percent=0,
            eligibility_date=None,
            days_until_eligible=None,
            metrics=[
                days_metric("primary_count", primary_label, primary, tooltip=f"Since {format_long(start_date)}"),
                days_metric("tracking_period", "Total Days Tracked", total_days),
                days_metric(secondary_key, secondary_label, secondary),
                percent_metric("percentage", percent_label, percent(primary, total_days)),
            ],
            warnings=[],
        )

    def validate_config(self, config: Any) -> bool:
        return config_is_valid(config, DaysCounterConfig)

    def get_display_info(self) -> DisplayInfo:
        return DisplayInfo(
            name="Days Counter",
            icon="calculator",
            description="Count days spent in or away from a location",
            category=GoalCategory.PERSONAL,
        )
