"""UK tax residency (statutory residence test day counts).

Responsibilities:
  - Count days in the UK for one tax year (6 April to 5 April).
  - Project the year-end count from recorded future trips.

Invariants:
  - A day with no recorded absence within the tracked part of the year is a UK day.
  - Days before start_date are not tracked and never counted as present.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

import numpy as np

from staymaster.core.domain.configs import UkTaxConfig, config_is_valid
from staymaster.core.domain.enums import (
    GoalCategory,
    GoalStatus,
    GoalType,
    Jurisdiction,
    MetricStatus,
    RequirementStatus,
    WarningSeverity,
)
from staymaster.core.domain.models import DisplayInfo, GoalCalculation, GoalRequirement, GoalWarning, TripRecord
from staymaster.core.engine.debug import emit_debug
from staymaster.core.intervals.dates import add_days, format_long
from staymaster.core.intervals.rolling import absence_day_counts
from staymaster.core.intervals.trips import calculate_trip_durations, complete_trips
from .assembly import capped_percent, days_metric

AUTOMATIC_UK_TEST_DAYS = 183
AUTOMATIC_OVERSEAS_TEST_DAYS = 16


def tax_year_bounds(first_year: int) -> tuple[date, date]:
    return date(first_year, 4, 6), date(first_year + 1, 4, 5)


class UkTaxCalculator:
    goal_type = GoalType.UK_TAX_RESIDENCY
    jurisdiction = Jurisdiction.UK

    def calculate(
        self,
        trips: Sequence[TripRecord],
        config: UkTaxConfig,
        start_date: date,
        as_of_date: date,
    ) -> GoalCalculation:
        year_start, year_end = tax_year_bounds(config.first_year)
        tracked_start = max(start_date, year_start)
        if as_of_date < tracked_start or tracked_start > year_end:
            return GoalCalculation(
                goal_type=self.goal_type,
                status=GoalStatus.NOT_STARTED,
                progress_percent=0,
                eligibility_date=None,
                days_until_eligible=None,
                metrics=[],
                warnings=[],
            )

        complete = complete_trips(calculate_trip_durations(trips))
        present = (absence_day_counts(complete, tracked_start, year_end) == 0).astype(np.int64)
        today = min((as_of_date - tracked_start).days, present.size - 1)
        days_present = int(present[: today + 1].sum())
        days_left = present.size - (today + 1)
        projected = days_present + int(present[today + 1 :].sum())
        best_case = days_present + days_left

        cumulative = np.cumsum(present)
        hits = np.flatnonzero(cumulative >= AUTOMATIC_UK_TEST_DAYS)
        eligibility_date: Optional[date] = add_days(tracked_start, int(hits[0])) if hits.size else None
        days_until: Optional[int] = None
        if eligibility_date is not None:
            days_until = max(0, (eligibility_date - as_of_date).days)
        emit_debug(
            f"UK_TAX tax_year={config.tax_year} present={days_present} projected={projected} best_case={best_case}"
        )

        if days_present >= AUTOMATIC_UK_TEST_DAYS:
            status = GoalStatus.ACHIEVED
        elif best_case < AUTOMATIC_UK_TEST_DAYS:
            status = GoalStatus.LIMIT_EXCEEDED
        elif projected >= AUTOMATIC_UK_TEST_DAYS:
            status = GoalStatus.ON_TRACK
        else:
            status = GoalStatus.IN_PROGRESS

        metrics = [
            days_metric(
                "days_in_uk",
                "Days in UK",
                days_present,
                status=MetricStatus.OK if days_present >= AUTOMATIC_UK_TEST_DAYS else MetricStatus.WARNING,
                limit=AUTOMATIC_UK_TEST_DAYS,
            ),
            days_metric("days_left_in_tax_year", "Days Left in Tax Year", days_left),
            days_metric("projected_days", "Projected Days in UK", projected, limit=AUTOMATIC_UK_TEST_DAYS),
            days_metric(
                "automatic_overseas_test",
                "Automatic Overseas Test",
                days_present,
                limit=AUTOMATIC_OVERSEAS_TEST_DAYS,
                tooltip="Fewer than 16 days in the UK makes you non-resident for the year",
            ),
        ]

        warnings: list[GoalWarning] = []
        if status is GoalStatus.LIMIT_EXCEEDED:
            warnings.append(
                GoalWarning(
                    severity=WarningSeverity.INFO,
                    title="183-Day Test Out of Reach",
                    message=(
                        f"At most {best_case} days in the UK are possible before {format_long(year_end)}; "
                        "other residence tests may still apply."
                    ),
                )
            )
        elif status is GoalStatus.IN_PROGRESS:
            warnings.append(
                GoalWarning(
                    severity=WarningSeverity.WARNING,
                    title="Planned Travel Affects Residence",
                    message=f"Recorded trips leave {projected} projected UK days, below {AUTOMATIC_UK_TEST_DAYS}.",
                )
            )

        requirements = [
            GoalRequirement(
                "automatic_uk_test",
                f"{AUTOMATIC_UK_TEST_DAYS} days in the UK",
                RequirementStatus.MET if days_present >= AUTOMATIC_UK_TEST_DAYS else RequirementStatus.PENDING,
                f"{days_present} days so far",
            ),
            GoalRequirement(
                "automatic_overseas_test",
                f"Fewer than {AUTOMATIC_OVERSEAS_TEST_DAYS} days in the UK",
                RequirementStatus.MET if projected < AUTOMATIC_OVERSEAS_TEST_DAYS else RequirementStatus.NOT_MET,
            ),
        ]

        return GoalCalculation(
            goal_type=self.goal_type,
            status=status,
            progress_percent=capped_percent(days_present, AUTOMATIC_UK_TEST_DAYS),
            eligibility_date=eligibility_date,
            days_until_eligible=days_until,
            metrics=metrics,
            warnings=warnings,
            requirements=requirements,
        )

    def validate_config(self, config: Any) -> bool:
        return config_is_valid(config, UkTaxConfig)

    def get_display_info(self) -> DisplayInfo:
        return DisplayInfo(
            name="UK Tax Residency",
            icon="pound",
            description="Count UK days for the statutory residence test",
            category=GoalCategory.TAX,
        )
