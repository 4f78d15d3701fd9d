"""Offline weekly menu built from the local template table.

Given a seed the output is fully deterministic: the seed only decides where each
slot's rotation through its template pool starts.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from ..schemas import DAY_NAMES, WEEK_LENGTH, DayNutrition, DaySchedule, Meal, MealNutrition, MealSet, MenuRequest, WeekMenu
from .diet import DietaryFilters, resolve_dietary_filters
from .food_table import MealTemplate, Slot, templates_for
from .seed import pick_index, new_generation_seed
from .validator import with_calorie_range

logger = logging.getLogger(__name__)

# Weekdays a little under the daily average, the weekend above it; sums to 7.
DAY_CALORIE_FACTORS = (0.95, 0.97, 0.94, 0.96, 0.95, 1.10, 1.13)

WEEKDAY_SPLIT: Dict[str, float] = {"breakfast": 0.25, "lunch": 0.35, "dinner": 0.30, "snack": 0.10}
WEEKEND_SPLIT: Dict[str, float] = {"breakfast": 0.28, "lunch": 0.32, "dinner": 0.32, "snack": 0.08}
SNACKS_PER_DAY = 2

SCALE_TOLERANCE = (0.8, 1.2)

WEEKDAY_NOTES = (
    "Start the week strong: prep tomorrow's lunch tonight.",
    "Keep a water bottle close and aim for steady hydration.",
    "Midweek check-in: eat slowly and stop when satisfied.",
    "Batch-cook grains tonight to save time tomorrow.",
    "Plan your weekend shopping list from what is left in the fridge.",
)
WEEKEND_NOTE = "More preparation time today: enjoy cooking and try something new."


def is_weekend(day_index: int) -> bool:
    return day_index >= 5


def next_monday(today: date) -> date:
    days_ahead = (7 - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)


def day_calorie_target(request: MenuRequest, day_index: int) -> float:
    return request.daily_calories * DAY_CALORIE_FACTORS[day_index]


def _scaled_meal(template: MealTemplate, target_calories: float) -> Meal:
    ratio = target_calories / template.calories
    low, high = SCALE_TOLERANCE
    factor = 1.0 if low <= ratio <= high else ratio
    nutrition = MealNutrition(
        calories=max(1, round(template.calories * factor)),
        protein=round(template.protein * factor, 1),
        carbs=round(template.carbs * factor, 1),
        fat=round(template.fat * factor, 1),
        fiber=round(template.fiber * factor, 1),
    )
    return Meal(
        name=template.name,
        description=template.description,
        instructions=template.instructions,
        ingredients=list(template.ingredients),
        prepTime=template.prep_time,
        cookingTime=template.cooking_time,
        nutrition=nutrition,
    )


class FallbackGenerator:
    """Assemble a seven-day menu without any network access."""

    def __init__(self, request: MenuRequest, *, seed: Optional[int] = None) -> None:
        self.request = request
        self.seed = new_generation_seed(request) if seed is None else seed
        self.filters: DietaryFilters = resolve_dietary_filters(request)
        self._pools: Dict[Slot, Tuple[MealTemplate, ...]] = {}
        self._offsets: Dict[Slot, int] = {}

    def _pool(self, slot: Slot) -> Tuple[MealTemplate, ...]:
        if slot not in self._pools:
            pool = templates_for(self.filters.mode, slot, self.filters)
            self._pools[slot] = pool
            self._offsets[slot] = pick_index(f"{self.seed}:{slot}", len(pool))
        return self._pools[slot]

    def pick(self, slot: Slot, day_index: int, shift: int = 0) -> MealTemplate:
        pool = self._pool(slot)
        return pool[(day_index + self._offsets[slot] + shift) % len(pool)]

    def build_day(self, day_index: int, start: date) -> DaySchedule:
        target = day_calorie_target(self.request, day_index)
        split = WEEKEND_SPLIT if is_weekend(day_index) else WEEKDAY_SPLIT
        snack_target = target * split["snack"] / SNACKS_PER_DAY

        meals = MealSet(
            breakfast=_scaled_meal(self.pick("breakfast", day_index), target * split["breakfast"]),
            lunch=_scaled_meal(self.pick("lunch", day_index), target * split["lunch"]),
            dinner=_scaled_meal(self.pick("dinner", day_index), target * split["dinner"]),
            snacks=[
                _scaled_meal(self.pick("snack", day_index, shift), snack_target)
                for shift in range(SNACKS_PER_DAY)
            ],
        )
        all_meals = meals.all_meals()
        nutrition = DayNutrition(
            calories=sum(meal.nutrition.calories for meal in all_meals),
            protein=round(sum(meal.nutrition.protein for meal in all_meals), 1),
            carbs=round(sum(meal.nutrition.carbs for meal in all_meals), 1),
            fat=round(sum(meal.nutrition.fat for meal in all_meals), 1),
        )
        note = WEEKEND_NOTE if is_weekend(day_index) else WEEKDAY_NOTES[day_index]
        day = DaySchedule(
            date=(start + timedelta(days=day_index)).isoformat(),
            dayName=DAY_NAMES[day_index],
            meals=meals,
            notes=note,
            nutrition=nutrition,
        )
        return with_calorie_range(day)

    def generate(self, *, today: Optional[date] = None) -> WeekMenu:
        start = next_monday(today or date.today())
        logger.info(
            "Building fallback menu (diet=%s, excluded=%s, seed=%s)",
            self.filters.mode.value,
            ",".join(sorted(self.filters.excluded)) or "none",
            self.seed,
        )
        days: List[DaySchedule] = [self.build_day(index, start) for index in range(WEEK_LENGTH)]
        return WeekMenu(weeklyMenu=days)


def generate_fallback(request: MenuRequest, *, seed: Optional[int] = None, today: Optional[date] = None) -> WeekMenu:
    return FallbackGenerator(request, seed=seed).generate(today=today)


__all__ = ["DAY_CALORIE_FACTORS", "FallbackGenerator", "day_calorie_target", "generate_fallback", "next_monday"]
