"""Shared type definitions for the continuous-residence calculator.

Responsibilities:
  - Define data-only carriers passed between qualifying, absence, validation and
    result-assembly steps.
Must not:
  - Implement logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

import numpy as np

from staymaster.core.domain.enums import IneligibilityReason, ValidationStatus
from staymaster.core.domain.models import OffendingWindow, TripWithCalculations


@dataclass(frozen=True)
class PreEntryPeriod:
    visa_start_date: date
    vignette_entry_date: date
    delay_days: int
    can_count: bool
    qualifying_start_date: date


@dataclass(frozen=True)
class AbsenceTimeline:
    """Day-indexed absence counts from the qualifying start (index 0) to the search horizon."""
    origin: date
    counts: np.ndarray
    trip_counts: np.ndarray
    prefix: np.ndarray
    window_starts: np.ndarray
    window_sums: np.ndarray


@dataclass(frozen=True)
class IlrSummary:
    total_trips: int
    complete_trips: int
    incomplete_trips: int
    total_full_days: int
    continuous_leave_days: Optional[int]
    max_absence_in_any_12_months: Optional[int]
    has_exceeded_allowed_absense: bool
    absence_limit: int
    ilr_eligibility_date: Optional[date]
    days_until_eligible: Optional[int]
    current_rolling_absence_today: Optional[int]
    remaining_180_limit_today: Optional[int]
    assessment_date: Optional[date] = None
    qualifying_start_date: Optional[date] = None
    period_start_date: Optional[date] = None
    elapsed_qualifying_days: int = 0
    required_qualifying_days: int = 0
    offending_windows: list[OffendingWindow] = field(default_factory=list)


@dataclass(frozen=True)
class IlrValidation:
    status: ValidationStatus
    reason: Optional[IneligibilityReason] = None
    message: str = ""
    application_date: Optional[date] = None
    offending_windows: list[OffendingWindow] = field(default_factory=list)
    worst_window: Optional[OffendingWindow] = None
    required_days: Optional[int] = None
    current_days: Optional[int] = None
    earliest_allowed_date: Optional[date] = None
    incomplete_trip_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TravelCalculationResult:
    trips_with_calculations: list[TripWithCalculations]
    pre_entry_period: Optional[PreEntryPeriod]
    validation: IlrValidation
    summary: IlrSummary
    timeline: Optional[AbsenceTimeline]
