"""Trip interval utilities.

Responsibilities:
  - Derive calendar/full day counts per trip and flag incomplete records.
  - Detect overlapping trips and clip trips to analysis windows.

Invariants:
  - Departure and return days never count as days absent.
  - Incomplete trips are excluded from every day-count sum, never raised on.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from staymaster.core.domain.models import TripRecord, TripWithCalculations
from .dates import parse_iso_date


def calculate_trip_durations(trips: Iterable[TripRecord]) -> list[TripWithCalculations]:
    calculated: list[TripWithCalculations] = []
    for trip in trips:
        out_day = parse_iso_date(trip.out_date)
        in_day = parse_iso_date(trip.in_date)
        # A return before departure is as unusable as a missing date.
        is_incomplete = out_day is None or in_day is None or in_day < out_day

        calendar_days: Optional[int] = None
        full_days: Optional[int] = None
        if not is_incomplete:
            calendar_days = (in_day - out_day).days
            # Guidance: exclude departure and return dates.
            full_days = max(0, calendar_days - 1)

        calculated.append(
            TripWithCalculations(
                id=trip.id,
                out_date=trip.out_date,
                in_date=trip.in_date,
                out_route=trip.out_route,
                in_route=trip.in_route,
                title=trip.title,
                calendar_days=calendar_days,
                full_days=full_days,
                is_incomplete=is_incomplete,
                out_day=out_day,
                in_day=in_day,
            )
        )
    return calculated


def complete_trips(trips: Sequence[TripWithCalculations]) -> list[TripWithCalculations]:
    return [t for t in trips if not t.is_incomplete]


def has_overlapping_trips(trips: Iterable[TripRecord]) -> bool:
    """Return True if any two trips overlap (inclusive: touching counts as overlap)."""
    ranges: list[tuple[date, date]] = []
    for trip in trips:
        out_day = parse_iso_date(trip.out_date)
        in_day = parse_iso_date(trip.in_date)
        if out_day is None or in_day is None or in_day < out_day:
            continue
        ranges.append((out_day, in_day))
    ranges.sort()

    for i in range(1, len(ranges)):
        if ranges[i][0] <= ranges[i - 1][1]:
            return True
    return False


def full_days_in_window(trip: TripWithCalculations, start: date, end: date) -> Optional[int]:
    """Clipped full-day contribution of a trip to [start, end]; None when it does not touch it."""
    if trip.is_incomplete or trip.out_day is None or trip.in_day is None:
        return None
    if trip.out_day > end or trip.in_day < start:
        return None
    effective_out = max(trip.out_day, start)
    effective_in = min(trip.in_day, end)
    return max(0, (effective_in - effective_out).days - 1)


def days_away_in_window(trips: Sequence[TripWithCalculations], start: date, end: date) -> int:
    total = 0
    for trip in trips:
        contribution = full_days_in_window(trip, start, end)
        if contribution:
            total += contribution
    return total


def _field(payload: Mapping[str, Any], snake: str, camel: str) -> Any:
    if snake in payload:
        return payload[snake]
    return payload.get(camel)


def trip_from_mapping(payload: Mapping[str, Any], index: int = 0) -> TripRecord:
    """Build a TripRecord from a JSON-style mapping (snake_case or camelCase keys)."""
    trip_id = payload.get("id")
    return TripRecord(
        id=str(trip_id) if trip_id is not None else f"trip-{index + 1}",
        out_date=_field(payload, "out_date", "outDate"),
        in_date=_field(payload, "in_date", "inDate"),
        out_route=_field(payload, "out_route", "outRoute") or "",
        in_route=_field(payload, "in_route", "inRoute") or "",
        title=payload.get("title"),
    )


def trips_from_payload(items: Iterable[Mapping[str, Any] | TripRecord]) -> list[TripRecord]:
    trips: list[TripRecord] = []
    for i, item in enumerate(items):
        if isinstance(item, TripRecord):
            trips.append(item)
        elif isinstance(item, Mapping):
            trips.append(trip_from_mapping(item, i))
        else:
            raise ValueError(f"Trip #{i + 1} must be an object")
    return trips
