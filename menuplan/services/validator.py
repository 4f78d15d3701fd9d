"""Parse a candidate payload and judge it against the weekly menu invariants.

``check`` reports every problem it finds as data; ``validate`` is the raising
form used at API boundaries. Neither ever edits the payload apart from the
derived ``calorieRange`` metadata attached to accepted days.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import ValidationError

from ..errors import ParseError, SchemaError
from ..schemas import MAIN_MEAL_SLOTS, WEEK_LENGTH, CalorieRange, DaySchedule, WeekMenu

logger = logging.getLogger(__name__)

CALORIE_RANGE_TOLERANCE = 0.10


@dataclass(frozen=True)
class ValidationIssue:
    check: str
    day_index: Optional[int]
    message: str


@dataclass
class ValidationReport:
    days: List[DaySchedule] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)
    parse_error: Optional[str] = None
    # Size of the day collection, when one was found.
    day_count: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.parse_error is None and not self.issues

    @property
    def menu(self) -> Optional[WeekMenu]:
        if not self.ok or len(self.days) != WEEK_LENGTH:
            return None
        return WeekMenu(weeklyMenu=self.days)

    def first_issue(self) -> Optional[ValidationIssue]:
        return self.issues[0] if self.issues else None


def parse_payload(candidate: str) -> Any:
    try:
        return json.loads(candidate, strict=False)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ParseError(f"Candidate is not well-formed JSON: {exc}") from exc


def _day_collection(payload: Any) -> Optional[list]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        days = payload.get("weeklyMenu")
        if isinstance(days, list):
            return days
    return None


def calorie_range(calories: float) -> CalorieRange:
    low = round(calories * (1 - CALORIE_RANGE_TOLERANCE))
    high = round(calories * (1 + CALORIE_RANGE_TOLERANCE))
    return CalorieRange(min=low, max=high, display=f"{low}-{high} kcal")


def with_calorie_range(day: DaySchedule) -> DaySchedule:
    return day.model_copy(update={"calorieRange": calorie_range(day.nutrition.calories)})


def _has_main_meal(raw_day: Any) -> bool:
    if not isinstance(raw_day, dict):
        return False
    meals = raw_day.get("meals")
    if not isinstance(meals, dict):
        return False
    return any(isinstance(meals.get(slot), dict) and meals.get(slot) for slot in MAIN_MEAL_SLOTS)


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "invalid value")


def check(candidate: str, *, require_full_week: bool = True) -> ValidationReport:
    """Parse ``candidate`` and run the day-count, meal-presence and per-day schema checks in order.

    With ``require_full_week=False`` any non-empty prefix of days is acceptable,
    which is what the repairer needs when it salvages a truncated week.
    """
    report = ValidationReport()
    try:
        payload = parse_payload(candidate)
    except ParseError as exc:
        report.parse_error = exc.detail
        return report

    raw_days = _day_collection(payload)
    if raw_days is None:
        report.issues.append(ValidationIssue("day_collection", None, "no weeklyMenu array found"))
        return report

    count = report.day_count = len(raw_days)
    if require_full_week and count != WEEK_LENGTH:
        report.issues.append(
            ValidationIssue("day_count", None, f"expected {WEEK_LENGTH} days, got {count}")
        )
        return report
    if not require_full_week and not 1 <= count <= WEEK_LENGTH:
        report.issues.append(
            ValidationIssue("day_count", None, f"expected 1 to {WEEK_LENGTH} days, got {count}")
        )
        return report

    for index, raw_day in enumerate(raw_days):
        if not _has_main_meal(raw_day):
            report.issues.append(
                ValidationIssue("meal_presence", index, "day has none of breakfast, lunch or dinner")
            )
            continue
        try:
            day = DaySchedule.model_validate(raw_day)
        except ValidationError as exc:
            report.issues.append(ValidationIssue("day_schema", index, _describe(exc)))
            continue
        report.days.append(with_calorie_range(day))

    if report.issues:
        logger.debug("Validation found %d issue(s); first: %s", len(report.issues), report.issues[0])
    return report


def validate(candidate: str) -> WeekMenu:
    """Return the validated week or raise ``ParseError`` / ``SchemaError`` for the first failed check."""
    report = check(candidate)
    if report.parse_error is not None:
        raise ParseError(report.parse_error)
    issue = report.first_issue()
    if issue is not None:
        raise SchemaError(issue.message, day_index=issue.day_index, check=issue.check)
    return WeekMenu(weeklyMenu=report.days)


__all__ = [
    "ValidationIssue",
    "ValidationReport",
    "calorie_range",
    "check",
    "parse_payload",
    "validate",
    "with_calorie_range",
]
