"""Continuous-residence validation outcome.

Responsibilities:
  - Reduce a computed summary to ELIGIBLE or INELIGIBLE with one typed reason.

Invariants:
  - Precedence: INCORRECT_INPUT > INCOMPLETED_TRIPS > EXCESSIVE_ABSENCE > TOO_EARLY.
  - Must be deterministic and free of date lookups other than its inputs.
"""

from __future__ import annotations

from typing import Sequence

from staymaster.core.domain.enums import IneligibilityReason, ValidationStatus
from staymaster.core.intervals.dates import format_long
from staymaster.core.intervals.rolling import worst_window
from .types import IlrSummary, IlrValidation


def incorrect_input(message: str) -> IlrValidation:
    return IlrValidation(
        status=ValidationStatus.INELIGIBLE,
        reason=IneligibilityReason.INCORRECT_INPUT,
        message=message,
    )


def validate_summary(summary: IlrSummary, incomplete_trip_ids: Sequence[str]) -> IlrValidation:
    if incomplete_trip_ids:
        count = len(incomplete_trip_ids)
        noun = "trip is" if count == 1 else "trips are"
        return IlrValidation(
            status=ValidationStatus.INELIGIBLE,
            reason=IneligibilityReason.INCOMPLETED_TRIPS,
            message=f"{count} {noun} missing a departure or return date.",
            incomplete_trip_ids=list(incomplete_trip_ids),
        )

    if summary.has_exceeded_allowed_absense:
        worst = worst_window(summary.offending_windows)
        message = f"Absences exceed the {summary.absence_limit}-day limit in a 12-month period."
        if worst is not None:
            message = (
                f"Absences reached {worst.days} days in the 12 months from "
                f"{format_long(worst.start)} to {format_long(worst.end)}, above the "
                f"{summary.absence_limit}-day limit."
            )
        return IlrValidation(
            status=ValidationStatus.INELIGIBLE,
            reason=IneligibilityReason.EXCESSIVE_ABSENCE,
            message=message,
            offending_windows=list(summary.offending_windows),
            worst_window=worst,
        )

    if summary.elapsed_qualifying_days < summary.required_qualifying_days:
        earliest = summary.ilr_eligibility_date
        message = (
            f"The qualifying period requires {summary.required_qualifying_days} days; "
            f"{summary.elapsed_qualifying_days} days have been completed."
        )
        if earliest is not None:
            message += f" Earliest eligible date: {format_long(earliest)}."
        return IlrValidation(
            status=ValidationStatus.INELIGIBLE,
            reason=IneligibilityReason.TOO_EARLY,
            message=message,
            required_days=summary.required_qualifying_days,
            current_days=summary.elapsed_qualifying_days,
            earliest_allowed_date=earliest,
        )

    return IlrValidation(
        status=ValidationStatus.ELIGIBLE,
        application_date=summary.assessment_date,
    )

