from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Literal, Tuple

from .diet import DietaryFilters, DietMode

Slot = Literal["breakfast", "lunch", "dinner", "snack"]
SLOTS: Tuple[Slot, ...] = ("breakfast", "lunch", "dinner", "snack")

TEMPLATES_PATH = Path(__file__).resolve().parents[1] / "data" / "meal_templates.json"

_TABLE_CACHE: Dict[str, Dict[str, Tuple["MealTemplate", ...]]] | None = None
_LOCK = threading.Lock()


@dataclass(frozen=True)
class MealTemplate:
    name: str
    description: str
    instructions: str
    ingredients: Tuple[str, ...]
    prep_time: int
    cooking_time: int
    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float
    contains: frozenset[str]

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "MealTemplate":
        nutrition = raw["nutrition"]
        return cls(
            name=raw["name"],
            description=raw.get("description", ""),
            instructions=raw.get("instructions", ""),
            ingredients=tuple(raw["ingredients"]),
            prep_time=int(raw.get("prepTime", 0)),
            cooking_time=int(raw.get("cookingTime", 0)),
            calories=float(nutrition["calories"]),
            protein=float(nutrition.get("protein", 0)),
            carbs=float(nutrition.get("carbs", 0)),
            fat=float(nutrition.get("fat", 0)),
            fiber=float(nutrition.get("fiber", 0)),
            contains=frozenset(raw.get("contains", ())),
        )


def _load_table(path: Path) -> Dict[str, Dict[str, Tuple[MealTemplate, ...]]]:
    with path.open("r", encoding="utf-8") as handle:
        raw = json.load(handle)
    return {
        diet: {slot: tuple(MealTemplate.from_dict(item) for item in pools.get(slot, [])) for slot in SLOTS}
        for diet, pools in raw["diets"].items()
    }


def get_template_table() -> Dict[str, Dict[str, Tuple[MealTemplate, ...]]]:
    """Return the read-only template table, loading it once per process."""
    global _TABLE_CACHE
    with _LOCK:
        if _TABLE_CACHE is None:
            _TABLE_CACHE = _load_table(TEMPLATES_PATH)
        return _TABLE_CACHE


def templates_for(mode: DietMode, slot: Slot, filters: DietaryFilters) -> Tuple[MealTemplate, ...]:
    """Templates of one diet pool and slot that satisfy every exclusion, in table order."""
    pool: Iterable[MealTemplate] = get_template_table()[mode.value][slot]
    allowed = tuple(template for template in pool if filters.allows(template.contains))
    if not allowed:
        raise LookupError(f"No {slot} template satisfies the {mode.value} exclusions {sorted(filters.excluded)}")
    return allowed


__all__ = ["MealTemplate", "SLOTS", "Slot", "get_template_table", "templates_for"]
