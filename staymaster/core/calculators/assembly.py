"""Shared result-assembly helpers for calculators.

Responsibilities:
  - Percent rounding and capping used by every progress figure.
  - Small constructors for the metrics most calculators emit.
Must not:
  - Implement goal-specific policy; thresholds are passed in by callers.
"""

from __future__ import annotations

import math
from typing import Optional

from staymaster.core.domain.enums import MetricStatus, MetricUnit
from staymaster.core.domain.models import GoalMetric


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def capped_percent(part: int, whole: int) -> int:
    return max(0, min(100, percent(part, whole)))


def limit_status(value: int, limit: int, warn_at: int) -> MetricStatus:
    if value > limit:
        return MetricStatus.EXCEEDED
    if value >= warn_at:
        return MetricStatus.WARNING
    return MetricStatus.OK


def days_metric(
    key: str,
    label: str,
    value: int,
    status: MetricStatus = MetricStatus.OK,
    limit: Optional[int] = None,
    tooltip: Optional[str] = None,
) -> GoalMetric:
    return GoalMetric(
        key=key,
        label=label,
        value=value,
        unit=MetricUnit.DAYS,
        status=status,
        limit=limit,
        tooltip=tooltip,
    )


def percent_metric(key: str, label: str, value: int) -> GoalMetric:
    return GoalMetric(key=key, label=label, value=value, unit=MetricUnit.PERCENT)
