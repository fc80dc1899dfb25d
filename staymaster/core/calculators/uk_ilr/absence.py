"""Rolling 12-month absence evaluation.

Responsibilities:
  - Build the day-indexed absence timeline from the qualifying start.
  - Measure the worst and current rolling windows for an assessment period.
  - Search the first date on which the qualifying period is complete and clean.

Inputs/Outputs:
  - Inputs: complete trips, qualifying start, extra absence spans, horizon.
  - Outputs: AbsenceTimeline and plain integers/dates for the summary.

Invariants:
  - A window ending on day d covers [d - 1 year + 1 day, d], clipped at the start of the
    period under assessment.
  - A trip abroad on a window edge is clipped there, so the edge day does not count.
  - Every day of the period is a window end; prefix sums keep this O(n).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

import numpy as np

from staymaster.core.domain.models import OffendingWindow, TripWithCalculations
from staymaster.core.intervals.dates import add_days, shift_years
from staymaster.core.intervals.rolling import (
    DateSpan,
    absence_spans,
    clipped_window_sum,
    clipped_window_sums,
    offending_windows,
    prefix_sums,
    span_day_counts,
    twelve_month_window_starts,
)
from .types import AbsenceTimeline


@dataclass(frozen=True)
class PeriodAbsence:
    max_absence: int
    offending_windows: list[OffendingWindow]


def build_absence_timeline(
    trips: Sequence[TripWithCalculations],
    origin: date,
    horizon: date,
    extra_spans: Sequence[DateSpan] = (),
) -> AbsenceTimeline:
    trip_counts = span_day_counts(absence_spans(trips), origin, horizon)
    counts = trip_counts + span_day_counts(extra_spans, origin, horizon)
    prefix = prefix_sums(counts)
    starts = twelve_month_window_starts(origin, counts.size, floor_index=0)
    sums = clipped_window_sums(prefix, trip_counts, starts)
    return AbsenceTimeline(
        origin=origin,
        counts=counts,
        trip_counts=trip_counts,
        prefix=prefix,
        window_starts=starts,
        window_sums=sums,
    )


def last_absence_day(trips: Sequence[TripWithCalculations], extra_spans: Sequence[DateSpan] = ()) -> Optional[date]:
    ends = [last for _, last in absence_spans(trips)] + [last for _, last in extra_spans]
    return max(ends) if ends else None


def period_absence(
    timeline: AbsenceTimeline, period_start: date, period_end: date, limit: int
) -> PeriodAbsence:
    """Worst rolling window among windows ending inside [period_start, period_end]."""
    first = max(0, (period_start - timeline.origin).days)
    last = min(timeline.counts.size - 1, (period_end - timeline.origin).days)
    if last < first:
        return PeriodAbsence(max_absence=0, offending_windows=[])

    ends = np.arange(first, last + 1, dtype=np.int64)
    starts = np.maximum(timeline.window_starts[first : last + 1], first)
    sums = clipped_window_sums(timeline.prefix, timeline.trip_counts, starts, ends)

    windows = offending_windows(
        sums,
        starts - first,
        limit,
        origin=add_days(timeline.origin, first),
    )
    return PeriodAbsence(max_absence=int(sums.max()), offending_windows=windows)


def rolling_window_bounds(timeline: AbsenceTimeline, day: date) -> tuple[int, int]:
    """Start and end index of the 12-month window ending on day, clipped to the timeline."""
    start = (add_days(shift_years(day, -1), 1) - timeline.origin).days
    end = min((day - timeline.origin).days, timeline.counts.size - 1)
    return max(0, start), end


def rolling_absence_on(timeline: AbsenceTimeline, day: date) -> int:
    if day < timeline.origin:
        return 0
    start, end = rolling_window_bounds(timeline, day)
    return clipped_window_sum(timeline.prefix, timeline.trip_counts, start, end)


def find_eligibility_index(
    timeline: AbsenceTimeline, qualifying_days: int, limit: int
) -> Optional[int]:
    """First day index e >= qualifying_days whose qualifying period has no window over limit.

    For a candidate e the period starts at p = e - qualifying_days. Windows that start on
    or after p are the precomputed window_sums. A window clipped at p only grows as its
    end moves later, so the one ending just before the first unclipped window covers them.
    """
    n_days = timeline.counts.size
    if qualifying_days >= n_days:
        return None

    exceeded = (timeline.window_sums > limit).astype(np.int64)
    exceeded_prefix = prefix_sums(exceeded)

    candidates = np.arange(qualifying_days, n_days, dtype=np.int64)
    period_starts = candidates - qualifying_days
    first_full = np.searchsorted(timeline.window_starts, period_starts, side="left")
    first_full = np.minimum(first_full, candidates)

    last_clipped = first_full - 1
    lead = clipped_window_sums(
        timeline.prefix,
        timeline.trip_counts,
        period_starts,
        np.maximum(last_clipped, period_starts),
    )
    lead = np.where(last_clipped >= period_starts, lead, 0)
    exceeded_in_period = exceeded_prefix[candidates + 1] - exceeded_prefix[first_full]
    valid = (lead <= limit) & (exceeded_in_period == 0)

    hits = np.flatnonzero(valid)
    if hits.size == 0:
        return None
    return int(candidates[hits[0]])
