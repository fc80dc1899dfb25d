"""UK naturalisation residence requirements.

Responsibilities:
  - Absences in the qualifying period: at most 450 days (5 years) or 270 days (3 years).
  - Absences in the last 12 months: at most 90 days.
  - Settled status held for 12 months, unless married to a British citizen.

Inputs/Outputs:
  - Inputs: trips, UkCitizenshipConfig, start of UK residence (start_date), as-of date.
  - Outputs: GoalCalculation with a requirements checklist.

Invariants:
  - Period windows are calendar years back from the application date.
  - A trip crossing a window edge is clipped there, as in days_away_in_window.
  - The eligibility search assumes no travel beyond the recorded trips.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Optional, Sequence

import numpy as np

from staymaster.core.domain.configs import UkCitizenshipConfig, config_is_valid, is_whole_number
from staymaster.core.domain.enums import (
    GoalCategory,
    GoalStatus,
    GoalType,
    Jurisdiction,
    RequirementStatus,
    WarningSeverity,
)
from staymaster.core.domain.models import (
    DisplayInfo,
    GoalCalculation,
    GoalRequirement,
    GoalWarning,
    TripRecord,
)
from staymaster.core.engine.debug import emit_debug
from staymaster.core.intervals.dates import add_days, format_long, parse_iso_date, shift_years
from staymaster.core.intervals.rolling import (
    absence_day_counts,
    calendar_window_starts,
    clipped_window_sums,
    prefix_sums,
)
from staymaster.core.intervals.trips import calculate_trip_durations, complete_trips
from .assembly import capped_percent, days_metric, limit_status

PERIOD_ABSENCE_LIMITS = {5: 450, 3: 270}
RECENT_ABSENCE_LIMIT = 90
ILR_HELD_YEARS = 1
AT_RISK_FRACTION = 0.9


def period_absence_limit(qualifying_years: int) -> int:
    return PERIOD_ABSENCE_LIMITS[qualifying_years]


def earliest_time_date(config: UkCitizenshipConfig, residence_start: date, ilr_grant: date) -> date:
    """First date satisfying the residence-length and settled-status time requirements."""
    residence_done = shift_years(residence_start, config.qualifying_years)
    ilr_done = ilr_grant if config.married_to_british else shift_years(ilr_grant, ILR_HELD_YEARS)
    return max(residence_done, ilr_done)


def _warn_at(limit: int) -> int:
    return math.ceil(limit * AT_RISK_FRACTION)


class UkCitizenshipCalculator:
    goal_type = GoalType.UK_CITIZENSHIP
    jurisdiction = Jurisdiction.UK

    def calculate(
        self,
        trips: Sequence[TripRecord],
        config: UkCitizenshipConfig,
        start_date: date,
        as_of_date: date,
    ) -> GoalCalculation:
        ilr_grant = parse_iso_date(config.ilr_grant_date)
        if (
            ilr_grant is None
            or not is_whole_number(config.qualifying_years)
            or config.qualifying_years not in PERIOD_ABSENCE_LIMITS
        ):
            return GoalCalculation(
                goal_type=self.goal_type,
                status=GoalStatus.NOT_STARTED,
                progress_percent=0,
                eligibility_date=None,
                days_until_eligible=None,
                metrics=[],
                warnings=[
                    GoalWarning(
                        severity=WarningSeverity.ERROR,
                        title="Input Error",
                        message="A valid ILR grant date and qualifying period are required.",
                    )
                ],
            )

        complete = complete_trips(calculate_trip_durations(trips))
        period_limit = period_absence_limit(config.qualifying_years)
        earliest = earliest_time_date(config, start_date, ilr_grant)

        origin = min([start_date] + [t.out_day for t in complete if t.out_day is not None])
        horizon = max(earliest, as_of_date, start_date)
        for trip in complete:
            if trip.in_day is not None:
                horizon = max(horizon, add_days(shift_years(trip.in_day, config.qualifying_years), 1))

        counts = absence_day_counts(complete, origin, horizon)
        prefix = prefix_sums(counts)
        period_starts = calendar_window_starts(origin, counts.size, config.qualifying_years)
        period_sums = clipped_window_sums(prefix, counts, period_starts)
        recent_sums = clipped_window_sums(prefix, counts, calendar_window_starts(origin, counts.size, 1))

        today = (as_of_date - origin).days
        period_now = int(period_sums[today]) if today >= 0 else 0
        recent_now = int(recent_sums[today]) if today >= 0 else 0
        time_met = as_of_date >= earliest
        absence_ok = period_now <= period_limit and recent_now <= RECENT_ABSENCE_LIMIT

        # First date on or after the time requirements with both absence rules satisfied.
        first = (earliest - origin).days
        valid = (period_sums[first:] <= period_limit) & (recent_sums[first:] <= RECENT_ABSENCE_LIMIT)
        hits = np.flatnonzero(valid)
        eligibility_date: Optional[date] = add_days(earliest, int(hits[0])) if hits.size else None
        days_until: Optional[int] = None
        if eligibility_date is not None:
            days_until = max(0, (eligibility_date - as_of_date).days)
        emit_debug(
            f"CITIZENSHIP period={period_now}/{period_limit} recent={recent_now}/{RECENT_ABSENCE_LIMIT} "
            f"earliest={earliest.isoformat()} eligibility={eligibility_date}"
        )

        period_warn = _warn_at(period_limit)
        recent_warn = _warn_at(RECENT_ABSENCE_LIMIT)
        if time_met and absence_ok:
            status = GoalStatus.ELIGIBLE
        elif not absence_ok:
            status = GoalStatus.LIMIT_EXCEEDED
        elif period_now >= period_warn or recent_now >= recent_warn:
            status = GoalStatus.AT_RISK
        else:
            status = GoalStatus.IN_PROGRESS

        total_span = (earliest - start_date).days
        elapsed = max(0, (as_of_date - start_date).days)
        progress = 100 if total_span <= 0 else capped_percent(elapsed, total_span)

        metrics = [
            days_metric(
                "period_absence",
                f"Absences ({config.qualifying_years} years)",
                period_now,
                status=limit_status(period_now, period_limit, period_warn),
                limit=period_limit,
            ),
            days_metric(
                "recent_absence",
                "Absences (last 12 months)",
                recent_now,
                status=limit_status(recent_now, RECENT_ABSENCE_LIMIT, recent_warn),
                limit=RECENT_ABSENCE_LIMIT,
            ),
            days_metric("days_since_ilr", "Days Since ILR Granted", max(0, (as_of_date - ilr_grant).days)),
        ]

        warnings: list[GoalWarning] = []
        if period_now > period_limit:
            warnings.append(
                GoalWarning(
                    severity=WarningSeverity.ERROR,
                    title="Absence Limit Exceeded",
                    message=f"{period_now} days absent in the qualifying period, above the {period_limit}-day limit.",
                )
            )
        if recent_now > RECENT_ABSENCE_LIMIT:
            warnings.append(
                GoalWarning(
                    severity=WarningSeverity.ERROR,
                    title="Recent Absence Limit Exceeded",
                    message=(
                        f"{recent_now} days absent in the last 12 months, above the "
                        f"{RECENT_ABSENCE_LIMIT}-day limit."
                    ),
                )
            )
        if not time_met:
            warnings.append(
                GoalWarning(
                    severity=WarningSeverity.INFO,
                    title="Not Yet Eligible",
                    message=f"Time requirements are met on {format_long(earliest)}.",
                )
            )

        return GoalCalculation(
            goal_type=self.goal_type,
            status=status,
            progress_percent=progress,
            eligibility_date=eligibility_date,
            days_until_eligible=days_until,
            metrics=metrics,
            warnings=warnings,
            requirements=self._requirements(config, as_of_date, ilr_grant, start_date, period_now, recent_now),
        )

    def _requirements(
        self,
        config: UkCitizenshipConfig,
        as_of_date: date,
        ilr_grant: date,
        start_date: date,
        period_now: int,
        recent_now: int,
    ) -> list[GoalRequirement]:
        period_limit = period_absence_limit(config.qualifying_years)
        residence_done = shift_years(start_date, config.qualifying_years)
        if config.married_to_british:
            ilr = GoalRequirement(
                "ilr_held",
                "Settled status",
                RequirementStatus.MET if as_of_date >= ilr_grant else RequirementStatus.PENDING,
                "No waiting period when married to a British citizen",
            )
        else:
            ilr_done = shift_years(ilr_grant, ILR_HELD_YEARS)
            ilr = GoalRequirement(
                "ilr_held",
                "Settled status held for 12 months",
                RequirementStatus.MET if as_of_date >= ilr_done else RequirementStatus.PENDING,
                f"From {format_long(ilr_done)}",
            )
        return [
            GoalRequirement(
                "residence_period",
                f"{config.qualifying_years} years of residence",
                RequirementStatus.MET if as_of_date >= residence_done else RequirementStatus.PENDING,
                f"From {format_long(residence_done)}",
            ),
            GoalRequirement(
                "period_absence_limit",
                f"At most {period_limit} days absent",
                RequirementStatus.MET if period_now <= period_limit else RequirementStatus.NOT_MET,
                f"{period_now} days",
            ),
            GoalRequirement(
                "recent_absence_limit",
                f"At most {RECENT_ABSENCE_LIMIT} days absent in the last 12 months",
                RequirementStatus.MET if recent_now <= RECENT_ABSENCE_LIMIT else RequirementStatus.NOT_MET,
                f"{recent_now} days",
            ),
            ilr,
        ]

    def validate_config(self, config: Any) -> bool:
        return config_is_valid(config, UkCitizenshipConfig)

    def get_display_info(self) -> DisplayInfo:
        return DisplayInfo(
            name="UK Citizenship",
            icon="flag",
            description="Check residence and absence requirements for naturalisation",
            category=GoalCategory.IMMIGRATION,
        )
