"""Qualifying-period rules for continuous residence.

Responsibilities:
  - Hold the Home Office style constants for each track.
  - Resolve the pre-entry period and the qualifying start date.

Invariants:
  - A pre-entry delay of at most MAX_ALLOWABLE_PRE_ENTRY_DAYS keeps the visa start as
    qualifying start, and the delay itself counts as absence.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from staymaster.core.intervals.dates import add_days
from staymaster.core.intervals.rolling import DateSpan
from .types import PreEntryPeriod

MAX_ALLOWABLE_PRE_ENTRY_DAYS = 180
MAX_ABSENCE_IN_12_MONTHS = 180
MAX_ABSENCE_IN_12_MONTHS_LONG_TRACK = 184
LONG_TRACK_YEARS = 10
AT_RISK_ABSENCE_DAYS = 150
LOW_ALLOWANCE_DAYS = 30
DAYS_PER_QUALIFYING_YEAR = 365


def absence_limit(track_years: int) -> int:
    if track_years == LONG_TRACK_YEARS:
        return MAX_ABSENCE_IN_12_MONTHS_LONG_TRACK
    return MAX_ABSENCE_IN_12_MONTHS


def required_qualifying_days(track_years: int) -> int:
    return track_years * DAYS_PER_QUALIFYING_YEAR


def calculate_pre_entry_period(
    visa_start_date: date, vignette_entry_date: Optional[date]
) -> Optional[PreEntryPeriod]:
    if vignette_entry_date is None:
        return None
    delay_days = (vignette_entry_date - visa_start_date).days
    if delay_days < 0:
        return None

    can_count = delay_days <= MAX_ALLOWABLE_PRE_ENTRY_DAYS
    return PreEntryPeriod(
        visa_start_date=visa_start_date,
        vignette_entry_date=vignette_entry_date,
        delay_days=delay_days,
        can_count=can_count,
        qualifying_start_date=visa_start_date if can_count else vignette_entry_date,
    )


def qualifying_start_date(visa_start_date: date, pre_entry: Optional[PreEntryPeriod]) -> date:
    if pre_entry is not None:
        return pre_entry.qualifying_start_date
    return visa_start_date


def pre_entry_absence_spans(pre_entry: Optional[PreEntryPeriod]) -> list[DateSpan]:
    # Days between visa start and first entry are spent outside the country.
    if pre_entry is None or not pre_entry.can_count or pre_entry.delay_days == 0:
        return []
    return [(pre_entry.visa_start_date, add_days(pre_entry.vignette_entry_date, -1))]
