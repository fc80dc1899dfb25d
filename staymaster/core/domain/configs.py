"""Goal configuration variants.

Responsibilities:
  - Define one frozen configuration dataclass per goal type.
  - Parse untyped payloads (JSON, storage rows) into the matching variant.

Invariants:
  - Exactly one variant is active per goal instance, keyed by its goal type.
  - Parsing raises ValueError naming the offending field; it never guesses.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional, Union

from .enums import CountDirection, GoalType

ILR_TRACK_YEARS = (2, 3, 5, 10)
CITIZENSHIP_QUALIFYING_YEARS = (3, 5)

_TAX_YEAR_RE = re.compile(r"^(\d{4})-(\d{2})$")


def is_whole_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_iso(value: str, key: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Field '{key}' must be an ISO date (YYYY-MM-DD)") from None


@dataclass(frozen=True)
class UkIlrConfig:
    track_years: int
    visa_start_date: str
    vignette_entry_date: Optional[str] = None
    application_date: Optional[str] = None
    visa_type: Optional[str] = None

    goal_type = GoalType.UK_ILR

    def validate(self) -> None:
        if not is_whole_number(self.track_years) or self.track_years not in ILR_TRACK_YEARS:
            raise ValueError(f"track_years must be one of {ILR_TRACK_YEARS}")
        if not isinstance(self.visa_start_date, str):
            raise ValueError("visa_start_date must be provided")
        _parse_iso(self.visa_start_date, "visa_start_date")
        if self.vignette_entry_date is not None:
            if not isinstance(self.vignette_entry_date, str):
                raise ValueError("vignette_entry_date must be a string")
            _parse_iso(self.vignette_entry_date, "vignette_entry_date")
        if self.application_date is not None:
            if not isinstance(self.application_date, str):
                raise ValueError("application_date must be a string")
            _parse_iso(self.application_date, "application_date")


@dataclass(frozen=True)
class UkCitizenshipConfig:
    ilr_grant_date: str
    qualifying_years: int
    married_to_british: bool

    goal_type = GoalType.UK_CITIZENSHIP

    def validate(self) -> None:
        if not isinstance(self.ilr_grant_date, str):
            raise ValueError("ilr_grant_date must be provided")
        _parse_iso(self.ilr_grant_date, "ilr_grant_date")
        if (
            not is_whole_number(self.qualifying_years)
            or self.qualifying_years not in CITIZENSHIP_QUALIFYING_YEARS
        ):
            raise ValueError(f"qualifying_years must be one of {CITIZENSHIP_QUALIFYING_YEARS}")
        if not isinstance(self.married_to_british, bool):
            raise ValueError("married_to_british must be a bool")


@dataclass(frozen=True)
class UkTaxConfig:
    tax_year: str

    goal_type = GoalType.UK_TAX_RESIDENCY

    def validate(self) -> None:
        if not isinstance(self.tax_year, str):
            raise ValueError("tax_year must be a string like '2024-25'")
        match = _TAX_YEAR_RE.match(self.tax_year)
        if match is None:
            raise ValueError("tax_year must be a string like '2024-25'")
        first, second = int(match.group(1)), int(match.group(2))
        if (first + 1) % 100 != second:
            raise ValueError("tax_year must span two consecutive years")

    @property
    def first_year(self) -> int:
        return int(self.tax_year[:4])


@dataclass(frozen=True)
class SchengenConfig:
    home_country: Optional[str] = None

    goal_type = GoalType.SCHENGEN_90_180

    def validate(self) -> None:
        if self.home_country is not None and not isinstance(self.home_country, str):
            raise ValueError("home_country must be a string")


@dataclass(frozen=True)
class DaysCounterConfig:
    count_direction: CountDirection
    reference_location: str

    goal_type = GoalType.DAYS_COUNTER

    def validate(self) -> None:
        if not isinstance(self.count_direction, CountDirection):
            raise ValueError("count_direction must be 'days_away' or 'days_present'")
        if not isinstance(self.reference_location, str):
            raise ValueError("reference_location must be a string")


@dataclass(frozen=True)
class CustomThresholdConfig:
    threshold_days: int
    window_days: int
    count_direction: CountDirection
    description: Optional[str] = None

    goal_type = GoalType.CUSTOM_THRESHOLD

    def validate(self) -> None:
        for key in ("threshold_days", "window_days"):
            value = getattr(self, key)
            if not is_whole_number(value):
                raise ValueError(f"{key} must be int")
            if value < 1:
                raise ValueError(f"{key} must be >= 1")
        if self.threshold_days > self.window_days:
            raise ValueError("threshold_days must not exceed window_days")
        if not isinstance(self.count_direction, CountDirection):
            raise ValueError("count_direction must be 'days_away' or 'days_present'")


GoalConfig = Union[
    UkIlrConfig,
    UkCitizenshipConfig,
    UkTaxConfig,
    SchengenConfig,
    DaysCounterConfig,
    CustomThresholdConfig,
]


def _lookup(payload: Mapping[str, Any], key: str) -> tuple[bool, Any]:
    # External payloads use camelCase keys.
    camel = re.sub(r"_([a-z])", lambda m: m.group(1).upper(), key)
    for candidate in (key, camel):
        if candidate in payload:
            return True, payload[candidate]
    return False, None


def _require(payload: Mapping[str, Any], key: str, expected_type: type) -> Any:
    found, value = _lookup(payload, key)
    if not found:
        raise ValueError(f"Missing required field '{key}' in goal config")
    if expected_type is int:
        if not is_whole_number(value):
            raise ValueError(f"Field '{key}' must be int")
        return value
    if not isinstance(value, expected_type):
        raise ValueError(f"Field '{key}' must be {expected_type.__name__}")
    return value


def _optional(payload: Mapping[str, Any], key: str, expected_type: type) -> Any:
    found, value = _lookup(payload, key)
    if not found or value is None:
        return None
    if not isinstance(value, expected_type):
        raise ValueError(f"Field '{key}' must be {expected_type.__name__}")
    return value


def _count_direction(payload: Mapping[str, Any]) -> CountDirection:
    raw = _require(payload, "count_direction", str)
    try:
        return CountDirection(raw)
    except ValueError:
        raise ValueError("Field 'count_direction' must be 'days_away' or 'days_present'") from None


def goal_type_of(payload: Mapping[str, Any]) -> GoalType:
    raw = payload.get("type")
    if not isinstance(raw, str):
        raise ValueError("Missing required field 'type' in goal config")
    try:
        return GoalType(raw)
    except ValueError:
        raise ValueError(f"Unknown goal type: {raw}") from None


def parse_goal_config(payload: Mapping[str, Any]) -> GoalConfig:
    if not isinstance(payload, Mapping):
        raise ValueError("Goal config must be a JSON object")

    goal_type = goal_type_of(payload)
    config: GoalConfig
    if goal_type is GoalType.UK_ILR:
        config = UkIlrConfig(
            track_years=_require(payload, "track_years", int),
            visa_start_date=_require(payload, "visa_start_date", str),
            vignette_entry_date=_optional(payload, "vignette_entry_date", str),
            application_date=_optional(payload, "application_date", str),
            visa_type=_optional(payload, "visa_type", str),
        )
    elif goal_type is GoalType.UK_CITIZENSHIP:
        config = UkCitizenshipConfig(
            ilr_grant_date=_require(payload, "ilr_grant_date", str),
            qualifying_years=_require(payload, "qualifying_years", int),
            married_to_british=_require(payload, "married_to_british", bool),
        )
    elif goal_type is GoalType.UK_TAX_RESIDENCY:
        config = UkTaxConfig(tax_year=_require(payload, "tax_year", str))
    elif goal_type is GoalType.SCHENGEN_90_180:
        config = SchengenConfig(home_country=_optional(payload, "home_country", str))
    elif goal_type is GoalType.DAYS_COUNTER:
        config = DaysCounterConfig(
            count_direction=_count_direction(payload),
            reference_location=_require(payload, "reference_location", str),
        )
    elif goal_type is GoalType.CUSTOM_THRESHOLD:
        config = CustomThresholdConfig(
            threshold_days=_require(payload, "threshold_days", int),
            window_days=_require(payload, "window_days", int),
            count_direction=_count_direction(payload),
            description=_optional(payload, "description", str),
        )
    else:
        raise ValueError(f"Unknown goal type: {goal_type.value}")

    config.validate()
    return config


def config_is_valid(config: Any, config_type: type) -> bool:
    """Type guard used by every engine: True only for a valid config of config_type."""
    try:
        if isinstance(config, Mapping):
            config = parse_goal_config(config)
        if not isinstance(config, config_type):
            return False
        config.validate()
    except (ValueError, TypeError):
        return False
    return True
