from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Protocol, Sequence

from staymaster.core.calculators.custom_threshold import CustomThresholdCalculator
from staymaster.core.calculators.days_counter import DaysCounterCalculator
from staymaster.core.calculators.schengen import SchengenCalculator
from staymaster.core.calculators.uk_citizenship import UkCitizenshipCalculator
from staymaster.core.calculators.uk_ilr.calculator import UkIlrCalculator
from staymaster.core.calculators.uk_tax import UkTaxCalculator
from staymaster.core.domain.enums import GoalType, Jurisdiction
from staymaster.core.domain.models import DisplayInfo, GoalCalculation, TripRecord


class RuleEngine(Protocol):
    goal_type: GoalType
    jurisdiction: Jurisdiction

    def calculate(
        self, trips: Sequence[TripRecord], config: Any, start_date: date, as_of_date: date
    ) -> GoalCalculation:
        ...

    def validate_config(self, config: Any) -> bool:
        ...

    def get_display_info(self) -> DisplayInfo:
        ...


class RuleEngineRegistry:
    def __init__(self) -> None:
        self._engines: Dict[GoalType, RuleEngine] = {}

    def register(self, engine: RuleEngine) -> None:
        self._engines[engine.goal_type] = engine

    def get(self, goal_type: GoalType | str) -> RuleEngine:
        key = goal_type
        if isinstance(goal_type, str):
            try:
                key = GoalType(goal_type)
            except ValueError:
                raise ValueError(f"Unknown goal type: {goal_type}") from None
        if key not in self._engines:
            raise ValueError(f"Unknown goal type: {key.value}")
        return self._engines[key]

    def get_all(self) -> List[RuleEngine]:
        return list(self._engines.values())

    def get_by_jurisdiction(self, jurisdiction: Jurisdiction) -> List[RuleEngine]:
        return [e for e in self._engines.values() if e.jurisdiction is jurisdiction]

    def is_supported(self, goal_type: GoalType | str) -> bool:
        try:
            self.get(goal_type)
        except ValueError:
            return False
        return True


default_registry = RuleEngineRegistry()
default_registry.register(UkIlrCalculator())
default_registry.register(UkCitizenshipCalculator())
default_registry.register(UkTaxCalculator())
default_registry.register(SchengenCalculator())
default_registry.register(DaysCounterCalculator())
default_registry.register(CustomThresholdCalculator())

__all__ = ["RuleEngine", "RuleEngineRegistry", "default_registry"]
