"""Tests for goal config parsing, engine type guards and registry dispatch."""

from __future__ import annotations

from datetime import date

import pytest

from staymaster.core.domain.configs import (
    CustomThresholdConfig,
    UkIlrConfig,
    UkTaxConfig,
    goal_type_of,
    parse_goal_config,
)
from staymaster.core.domain.enums import (
    REASON_METADATA,
    CountDirection,
    GoalCategory,
    GoalStatus,
    GoalType,
    IneligibilityReason,
    Jurisdiction,
)
from staymaster.core.engine.debug import set_engine_debug
from staymaster.core.engine.facade import calculate_goal
from staymaster.core.engine.registry import RuleEngineRegistry, default_registry
from staymaster.core.engine.serialization import calculation_to_dict


def test_parse_ilr_config_accepts_camel_case() -> None:
    config = parse_goal_config(
        {"type": "uk_ilr", "trackYears": 5, "visaStartDate": "2020-01-01", "vignetteEntryDate": "2020-02-01"}
    )
    assert config == UkIlrConfig(track_years=5, visa_start_date="2020-01-01", vignette_entry_date="2020-02-01")


@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "Missing required field 'type'"),
        ({"type": "mars_visa"}, "Unknown goal type: mars_visa"),
        ({"type": "uk_ilr", "visa_start_date": "2020-01-01"}, "track_years"),
        ({"type": "uk_ilr", "track_years": 4, "visa_start_date": "2020-01-01"}, "track_years"),
        ({"type": "uk_ilr", "track_years": True, "visa_start_date": "2020-01-01"}, "track_years"),
        ({"type": "uk_ilr", "track_years": 5.0, "visa_start_date": "2020-01-01"}, "track_years"),
        (
            {"type": "uk_citizenship", "ilr_grant_date": "2023-01-01", "qualifying_years": 3.0, "married_to_british": False},
            "qualifying_years",
        ),
        ({"type": "uk_ilr", "track_years": 5, "visa_start_date": "01/01/2020"}, "visa_start_date"),
        ({"type": "uk_tax_residency", "tax_year": "2024-26"}, "consecutive"),
        ({"type": "days_counter", "count_direction": "sideways", "reference_location": "UK"}, "count_direction"),
        (
            {"type": "custom_threshold", "threshold_days": 40, "window_days": 30, "count_direction": "days_away"},
            "threshold_days",
        ),
    ],
)
def test_parse_goal_config_rejects_invalid(payload, message) -> None:
    with pytest.raises(ValueError) as exc:
        parse_goal_config(payload)
    assert message in str(exc.value)


def test_tax_year_first_year() -> None:
    config = parse_goal_config({"type": "uk_tax_residency", "tax_year": "2099-00"})
    assert isinstance(config, UkTaxConfig)
    assert config.first_year == 2099


def test_goal_type_of_reads_discriminant() -> None:
    assert goal_type_of({"type": "schengen_90_180"}) == GoalType.SCHENGEN_90_180


@pytest.mark.parametrize(
    "config",
    [
        None,
        42,
        "uk_ilr",
        {},
        {"type": "uk_ilr"},
        {"type": "uk_ilr", "track_years": "5", "visa_start_date": "2020-01-01"},
        {"type": "days_counter", "count_direction": "days_away", "reference_location": "UK"},
        UkIlrConfig(track_years=7, visa_start_date="2020-01-01"),
        UkIlrConfig(track_years=5.0, visa_start_date="2020-01-01"),
        {"type": "uk_ilr", "track_years": 5.0, "visa_start_date": "2020-01-01"},
        UkIlrConfig(track_years=5, visa_start_date=None),
    ],
)
def test_ilr_validate_config_never_raises(config) -> None:
    engine = default_registry.get(GoalType.UK_ILR)
    assert engine.validate_config(config) is False


def test_validate_config_accepts_own_variant() -> None:
    assert default_registry.get("uk_ilr").validate_config(
        {"type": "uk_ilr", "track_years": 10, "visa_start_date": "2015-03-01"}
    )
    custom = CustomThresholdConfig(threshold_days=10, window_days=30, count_direction=CountDirection.DAYS_AWAY)
    assert default_registry.get(GoalType.CUSTOM_THRESHOLD).validate_config(custom)
    assert not default_registry.get(GoalType.SCHENGEN_90_180).validate_config(custom)


def test_registry_registers_all_goal_types() -> None:
    assert {e.goal_type for e in default_registry.get_all()} == set(GoalType)
    uk = {e.goal_type for e in default_registry.get_by_jurisdiction(Jurisdiction.UK)}
    assert uk == {GoalType.UK_ILR, GoalType.UK_CITIZENSHIP, GoalType.UK_TAX_RESIDENCY}
    assert default_registry.is_supported("days_counter")
    assert not default_registry.is_supported("mars_visa")


def test_registry_errors_on_unknown_goal_type() -> None:
    registry = RuleEngineRegistry()
    with pytest.raises(ValueError):
        registry.get(GoalType.UK_ILR)
    with pytest.raises(ValueError):
        default_registry.get("mars_visa")


def test_display_info_is_static() -> None:
    info = default_registry.get(GoalType.UK_ILR).get_display_info()
    assert info.name == "UK Indefinite Leave to Remain"
    assert info.icon == "home"
    assert info.category == GoalCategory.IMMIGRATION
    assert default_registry.get(GoalType.DAYS_COUNTER).get_display_info().category == GoalCategory.PERSONAL


def test_reason_metadata_is_complete() -> None:
    assert set(REASON_METADATA) == set(IneligibilityReason)
    assert REASON_METADATA[IneligibilityReason.EXCESSIVE_ABSENCE]["title"] == "Absence Limit Exceeded"


def test_calculate_goal_dispatches_untyped_payloads() -> None:
    calc = calculate_goal(
        [{"id": "a", "outDate": "2024-01-05", "inDate": "2024-01-15"}],
        {"type": "days_counter", "countDirection": "days_away", "referenceLocation": "UK"},
        date(2024, 1, 1),
        date(2024, 3, 1),
        goal_id="goal-1",
    )
    assert calc.goal_type == GoalType.DAYS_COUNTER
    assert calc.goal_id == "goal-1"
    assert calc.status == GoalStatus.IN_PROGRESS


def test_calculate_goal_raises_for_invalid_config() -> None:
    with pytest.raises(ValueError):
        calculate_goal([], {"type": "uk_ilr", "track_years": 4}, date(2024, 1, 1), date(2024, 1, 1))
    with pytest.raises(ValueError):
        calculate_goal([], UkIlrConfig(track_years=4, visa_start_date="2020-01-01"), date(2024, 1, 1), date(2024, 1, 1))


def test_calculate_goal_emits_debug_lines() -> None:
    lines: list[str] = []
    set_engine_debug(lines.append)
    try:
        calculate_goal([], {"type": "uk_ilr", "track_years": 2, "visa_start_date": "2020-01-01"}, date(2020, 1, 1), date(2021, 1, 1))
    finally:
        set_engine_debug(None)
    assert lines[0].startswith("DISPATCH goal_type=uk_ilr")
    assert any(line.startswith("ILR_QUALIFYING") for line in lines)


def test_calculation_to_dict_uses_camel_case_and_iso_dates() -> None:
    calc = calculate_goal(
        [], {"type": "uk_ilr", "track_years": 2, "visa_start_date": "2020-01-01"}, date(2020, 1, 1), date(2021, 1, 1)
    )
    payload = calculation_to_dict(calc)
    assert payload["goalType"] == "uk_ilr"
    assert payload["status"] == "in_progress"
    assert payload["eligibilityDate"] == "2021-12-31"
    assert payload["progressPercent"] == 50
    assert payload["metrics"][0]["key"] == "total_days_outside"
    assert payload["visualization"]["rollingAbsenceData"][0]["day"] == "2020-01-01"
    assert payload["requirements"][0]["status"] == "pending"
