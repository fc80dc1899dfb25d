"""Domain models for trips and goal calculations.

Responsibilities:
  - Define immutable data carriers for trips, metrics, warnings and results.

Inputs/Outputs:
  - TripRecord is supplied by the import/manual-entry layer.
  - GoalCalculation is consumed by dashboards and export features.

Invariants:
  - Models must be deterministic containers with no behavior.
  - Dates inside TripRecord stay ISO strings; parsed dates live on TripWithCalculations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .enums import (
    GoalCategory,
    GoalStatus,
    GoalType,
    MetricStatus,
    MetricUnit,
    RequirementStatus,
    RiskLevel,
    WarningSeverity,
)


@dataclass(frozen=True)
class TripRecord:
    """One round trip away from the tracked jurisdiction."""
    id: str
    out_date: Optional[str]
    in_date: Optional[str]
    out_route: str = ""
    in_route: str = ""
    title: Optional[str] = None


@dataclass(frozen=True)
class TripWithCalculations(TripRecord):
    calendar_days: Optional[int] = None
    full_days: Optional[int] = None
    is_incomplete: bool = False
    out_day: Optional[date] = None
    in_day: Optional[date] = None


@dataclass(frozen=True)
class OffendingWindow:
    start: date
    end: date
    days: int


@dataclass(frozen=True)
class GoalMetric:
    key: str
    label: str
    value: int | float | str
    unit: MetricUnit
    status: MetricStatus = MetricStatus.OK
    limit: Optional[int] = None
    tooltip: Optional[str] = None


@dataclass(frozen=True)
class GoalWarning:
    severity: WarningSeverity
    title: str
    message: str
    action: Optional[str] = None
    details: list[str] = field(default_factory=list)
    related_trip_ids: list[str] = field(default_factory=list)
    offending_windows: list[OffendingWindow] = field(default_factory=list)


@dataclass(frozen=True)
class GoalRequirement:
    key: str
    label: str
    status: RequirementStatus
    detail: Optional[str] = None


@dataclass(frozen=True)
class RollingDataPoint:
    day: date
    rolling_days: int
    risk_level: RiskLevel
    next_expiration_date: Optional[date]
    days_to_expire: Optional[int]


@dataclass(frozen=True)
class TripBar:
    trip_id: str
    out_date: date
    in_date: date
    trip_start: int
    trip_end: int
    trip_duration: int
    trip_label: str


@dataclass(frozen=True)
class GoalVisualization:
    rolling_absence_data: list[RollingDataPoint] = field(default_factory=list)
    trip_bars: list[TripBar] = field(default_factory=list)


@dataclass(frozen=True)
class DisplayInfo:
    name: str
    icon: str
    description: str
    category: GoalCategory


@dataclass(frozen=True)
class GoalCalculation:
    goal_type: GoalType
    status: GoalStatus
    progress_percent: int
    eligibility_date: Optional[date]
    days_until_eligible: Optional[int]
    metrics: list[GoalMetric]
    warnings: list[GoalWarning]
    requirements: Optional[list[GoalRequirement]] = None
    visualization: Optional[GoalVisualization] = None
    goal_id: str = ""
