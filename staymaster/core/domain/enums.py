"""Domain enums for goal tracking and eligibility reasoning.

Responsibilities:
  - Define goal, status and metric identifiers shared by every calculator.
  - Provide stable ineligibility reasons with their warning metadata.

Invariants:
  - Enum values must remain stable; they are emitted in results and cached upstream.
  - IneligibilityReason metadata must be complete and deterministic.
"""

from __future__ import annotations

from enum import Enum


class GoalType(Enum):
    UK_ILR = "uk_ilr"
    UK_CITIZENSHIP = "uk_citizenship"
    UK_TAX_RESIDENCY = "uk_tax_residency"
    SCHENGEN_90_180 = "schengen_90_180"
    DAYS_COUNTER = "days_counter"
    CUSTOM_THRESHOLD = "custom_threshold"


class Jurisdiction(Enum):
    UK = "uk"
    SCHENGEN = "schengen"
    GLOBAL = "global"


class GoalCategory(Enum):
    IMMIGRATION = "immigration"
    TAX = "tax"
    PERSONAL = "personal"


class GoalStatus(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    LIMIT_EXCEEDED = "limit_exceeded"
    ELIGIBLE = "eligible"
    ACHIEVED = "achieved"


class CountDirection(Enum):
    DAYS_AWAY = "days_away"
    DAYS_PRESENT = "days_present"


class MetricStatus(Enum):
    OK = "ok"
    WARNING = "warning"
    EXCEEDED = "exceeded"


class MetricUnit(Enum):
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"
    PERCENT = "percent"
    NONE = "none"


class WarningSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class RequirementStatus(Enum):
    MET = "met"
    PENDING = "pending"
    NOT_MET = "not_met"
    UNKNOWN = "unknown"


class RiskLevel(Enum):
    LOW = "low"
    CAUTION = "caution"
    CRITICAL = "critical"


class ValidationStatus(Enum):
    ELIGIBLE = "ELIGIBLE"
    INELIGIBLE = "INELIGIBLE"


# Stable identifiers for ineligibility; value is the emitted code.
class IneligibilityReason(Enum):
    INCORRECT_INPUT = "INCORRECT_INPUT"
    INCOMPLETED_TRIPS = "INCOMPLETED_TRIPS"
    EXCESSIVE_ABSENCE = "EXCESSIVE_ABSENCE"
    TOO_EARLY = "TOO_EARLY"


# Warning metadata keyed by ineligibility reason.
REASON_METADATA: dict[IneligibilityReason, dict[str, object]] = {
    IneligibilityReason.INCORRECT_INPUT: {
        "severity": WarningSeverity.ERROR,
        "title": "Input Error",
        "action": "Check the visa start and entry dates of this goal",
    },
    IneligibilityReason.INCOMPLETED_TRIPS: {
        "severity": WarningSeverity.WARNING,
        "title": "Incomplete Trips",
        "action": "Add the missing departure or return dates",
    },
    IneligibilityReason.EXCESSIVE_ABSENCE: {
        "severity": WarningSeverity.ERROR,
        "title": "Absence Limit Exceeded",
        "action": "Review your travel history and eligibility date",
    },
    IneligibilityReason.TOO_EARLY: {
        "severity": WarningSeverity.INFO,
        "title": "Not Yet Eligible",
        "action": None,
    },
}


_missing = [r for r in IneligibilityReason if r not in REASON_METADATA]
if _missing:
    raise RuntimeError(f"Missing REASON_METADATA for: {[m.value for m in _missing]}")

_extra = [k for k in REASON_METADATA.keys() if k not in set(IneligibilityReason)]
if _extra:
    raise RuntimeError(f"Extra REASON_METADATA keys: {[e.value for e in _extra]}")
