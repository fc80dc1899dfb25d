"""Day-indexed absence arrays and rolling-window sums.

Responsibilities:
  - Turn trips into per-day count arrays anchored at an origin date.
  - Compute trailing window sums with prefix sums (O(n) over the period).
  - Apply the trip clipping rule at window edges: a trip still abroad on the first or
    last day of a window is clipped there, so that edge day is not a full day.
  - Collapse offending window ends into reportable windows.

Invariants:
  - Index i always means origin + i days.
  - Window start indices are non-decreasing and never exceed their end index.
  - Clipped window sums equal days_away_in_window over the same dates.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

import numpy as np

from staymaster.core.domain.models import OffendingWindow, TripWithCalculations
from .dates import add_days

DateSpan = tuple[date, date]


def span_day_counts(spans: Iterable[DateSpan], start: date, end: date) -> np.ndarray:
    """Count, per day of [start, end], how many inclusive spans cover it."""
    n_days = (end - start).days + 1
    if n_days <= 0:
        return np.zeros(0, dtype=np.int64)

    delta = np.zeros(n_days + 1, dtype=np.int64)
    for span_start, span_end in spans:
        s = max(span_start, start)
        e = min(span_end, end)
        if e < s:
            continue
        delta[(s - start).days] += 1
        delta[(e - start).days + 1] -= 1
    return np.cumsum(delta[:-1])


def absence_spans(trips: Sequence[TripWithCalculations]) -> list[DateSpan]:
    # Full days only: the day after departure through the day before return.
    spans: list[DateSpan] = []
    for trip in trips:
        if trip.is_incomplete or trip.out_day is None or trip.in_day is None:
            continue
        first = add_days(trip.out_day, 1)
        last = add_days(trip.in_day, -1)
        if first <= last:
            spans.append((first, last))
    return spans


def presence_spans(trips: Sequence[TripWithCalculations]) -> list[DateSpan]:
    # Schengen counting: entry and exit days are both days of stay.
    return [
        (trip.out_day, trip.in_day)
        for trip in trips
        if not trip.is_incomplete and trip.out_day is not None and trip.in_day is not None
    ]


def absence_day_counts(trips: Sequence[TripWithCalculations], start: date, end: date) -> np.ndarray:
    return span_day_counts(absence_spans(trips), start, end)


def presence_day_counts(trips: Sequence[TripWithCalculations], start: date, end: date) -> np.ndarray:
    return span_day_counts(presence_spans(trips), start, end)


def prefix_sums(counts: np.ndarray) -> np.ndarray:
    prefix = np.zeros(counts.size + 1, dtype=np.int64)
    np.cumsum(counts, out=prefix[1:])
    return prefix


def calendar_window_starts(origin: date, n_days: int, years: int, floor_index: int = 0) -> np.ndarray:
    """Start index of the window ending on each day: d - years + 1 day.

    Same calendar shift as shift_years: Feb 29 lands on Feb 28 in a year without one.
    """
    base = np.datetime64(origin, "D")
    days = base + np.arange(n_days, dtype=np.int64).astype("timedelta64[D]")
    months = days.astype("datetime64[M]")
    day_of_month = (days - months.astype("datetime64[D]")).astype(np.int64)

    target_months = months - np.timedelta64(12 * years, "M")
    target_first = target_months.astype("datetime64[D]")
    month_length = ((target_months + np.timedelta64(1, "M")).astype("datetime64[D]") - target_first).astype(np.int64)
    shifted = target_first + np.minimum(day_of_month, month_length - 1).astype("timedelta64[D]")

    starts = (shifted - base).astype(np.int64) + 1
    return np.maximum(starts, floor_index)


def twelve_month_window_starts(origin: date, n_days: int, floor_index: int = 0) -> np.ndarray:
    return calendar_window_starts(origin, n_days, 1, floor_index)


def fixed_window_starts(n_days: int, window_days: int, floor_index: int = 0) -> np.ndarray:
    return np.maximum(np.arange(n_days, dtype=np.int64) - window_days + 1, floor_index)


def trailing_window_sums(prefix: np.ndarray, window_starts: np.ndarray) -> np.ndarray:
    """Sum of counts[window_starts[i] .. i] for every day index i."""
    ends = np.arange(1, window_starts.size + 1, dtype=np.int64)
    return prefix[ends] - prefix[window_starts]


def clipped_window_sums(
    prefix: np.ndarray,
    edge_counts: np.ndarray,
    window_starts: np.ndarray,
    window_ends: np.ndarray | None = None,
) -> np.ndarray:
    """Full days inside each [start, end] window, trips clipped at both edges.

    edge_counts holds the trip full days per day. A trip with a full day on an edge
    departed before the window starts or returns after it ends, so it is clipped there
    and the edge day becomes its travel day. Absence that is not a trip stays out of
    edge_counts and always counts. Windows end on every day index unless window_ends
    is given, and need start <= end.
    """
    if window_ends is None:
        window_ends = np.arange(window_starts.size, dtype=np.int64)
    totals = prefix[window_ends + 1] - prefix[window_starts]
    edges = edge_counts[window_starts] + np.where(window_ends > window_starts, edge_counts[window_ends], 0)
    return totals - edges


def clipped_window_sum(prefix: np.ndarray, edge_counts: np.ndarray, start_index: int, end_index: int) -> int:
    if end_index < start_index:
        return 0
    total = int(prefix[end_index + 1] - prefix[start_index]) - int(edge_counts[start_index])
    if end_index > start_index:
        total -= int(edge_counts[end_index])
    return total


def offending_windows(
    sums: np.ndarray,
    window_starts: np.ndarray,
    limit: int,
    origin: date,
    first_index: int = 0,
    last_index: int | None = None,
) -> list[OffendingWindow]:
    """One window per contiguous run of offending end days: the worst window of that run."""
    if last_index is None:
        last_index = sums.size - 1
    if sums.size == 0 or last_index < first_index:
        return []

    segment = sums[first_index : last_index + 1]
    offending = np.flatnonzero(segment > limit)
    if offending.size == 0:
        return []

    # Split wherever consecutive offending indices are not adjacent.
    breaks = np.flatnonzero(np.diff(offending) > 1) + 1
    windows: list[OffendingWindow] = []
    for run in np.split(offending, breaks):
        worst = int(run[np.argmax(segment[run])]) + first_index
        windows.append(
            OffendingWindow(
                start=add_days(origin, int(window_starts[worst])),
                end=add_days(origin, worst),
                days=int(sums[worst]),
            )
        )
    return windows


def worst_window(windows: Sequence[OffendingWindow]) -> OffendingWindow | None:
    if not windows:
        return None
    return max(windows, key=lambda w: w.days)
