"""Builders for completion payloads and requests shared by the test modules."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from menuplan.schemas import DAY_NAMES, MenuRequest


def make_meal(name: str, calories: int, protein: int = 20) -> Dict[str, Any]:
    return {
        "name": name,
        "description": f"{name} description",
        "instructions": "Combine and serve.",
        "ingredients": ["ingredient a", "ingredient b"],
        "prepTime": 10,
        "cookingTime": 15,
        "nutrition": {"calories": calories, "protein": protein, "carbs": 40, "fat": 12},
    }


def make_day(index: int) -> Dict[str, Any]:
    # Day totals are unique per day so tests can find a given day's record in the text.
    return {
        "date": f"2026-10-{26 + index:02d}",
        "dayName": DAY_NAMES[index],
        "meals": {
            "breakfast": make_meal(f"Breakfast {index + 1}", 450),
            "lunch": make_meal(f"Lunch {index + 1}", 650),
            "dinner": make_meal(f"Dinner {index + 1}", 700),
            "snacks": [make_meal(f"Snack {index + 1}", 180, protein=5)],
        },
        "nutrition": {"calories": 2000 + index, "protein": 65, "carbs": 160, "fat": 48},
    }


def make_week(days: int = 7) -> Dict[str, Any]:
    return {"weeklyMenu": [make_day(index) for index in range(days)]}


def week_json(days: int = 7, **dumps_kwargs: Any) -> str:
    return json.dumps(make_week(days), **dumps_kwargs)


def make_request(**overrides: Any) -> MenuRequest:
    payload: Dict[str, Any] = {
        "nutritionGoals": {"protein": 120, "carbs": 220, "fat": 70, "fiber": 30},
        "totalCalories": 14000,
        "dietaryPreferences": [],
        "allergies": [],
        "cuisinePreferences": ["mediterranean"],
        "weeklyBudget": 80,
        "weight": 70,
        "height": 175,
        "age": 34,
        "gender": "female",
        "activityLevel": "moderate",
    }
    payload.update(overrides)
    return MenuRequest.model_validate(payload)


def day_names(days: List[Dict[str, Any]]) -> List[str]:
    return [day["dayName"] for day in days]
