"""Single entry point for goal calculations.

Responsibilities:
  - Accept untyped configs and trips, resolve the engine by goal type, run it.
  - Raise ValueError for configuration problems before any calculation runs.

Invariants:
  - Trip data problems never raise; they surface as statuses and warnings.
"""

from __future__ import annotations

import dataclasses
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from staymaster.core.domain.configs import GoalConfig, parse_goal_config
from staymaster.core.domain.models import GoalCalculation, TripRecord
from staymaster.core.intervals.trips import trips_from_payload
from .debug import emit_debug
from .registry import RuleEngineRegistry, default_registry


def resolve_config(config: Mapping[str, Any] | GoalConfig) -> GoalConfig:
    if isinstance(config, Mapping):
        return parse_goal_config(config)
    goal_type = getattr(config, "goal_type", None)
    if goal_type is None:
        raise ValueError(f"Unsupported goal config: {type(config).__name__}")
    try:
        config.validate()
    except TypeError as exc:
        raise ValueError(f"Invalid {goal_type.value} goal config: {exc}") from exc
    return config


def calculate_goal(
    trips: Iterable[Mapping[str, Any] | TripRecord],
    config: Mapping[str, Any] | GoalConfig,
    start_date: date,
    as_of_date: date,
    registry: Optional[RuleEngineRegistry] = None,
    goal_id: str = "",
) -> GoalCalculation:
    registry = registry or default_registry
    resolved = resolve_config(config)
    engine = registry.get(resolved.goal_type)
    trip_records = trips_from_payload(trips)

    emit_debug(
        f"DISPATCH goal_type={resolved.goal_type.value} trips={len(trip_records)} "
        f"start={start_date.isoformat()} as_of={as_of_date.isoformat()}"
    )
    result = engine.calculate(trip_records, resolved, start_date, as_of_date)
    if goal_id:
        result = dataclasses.replace(result, goal_id=goal_id)
    emit_debug(f"RESULT goal_type={result.goal_type.value} status={result.status.value} progress={result.progress_percent}")
    return result
