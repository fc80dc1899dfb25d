from __future__ import annotations

import dataclasses
import re
from datetime import date
from enum import Enum
from typing import Any

from staymaster.core.domain.models import GoalCalculation


def _camel(name: str) -> str:
    return re.sub(r"_([a-z])", lambda m: m.group(1).upper(), name)


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {_camel(f.name): _to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _to_json(v) for k, v in value.items()}
    return value


def calculation_to_dict(calculation: GoalCalculation) -> dict[str, Any]:
    """JSON-ready mapping with camelCase keys and ISO dates."""
    return _to_json(calculation)
