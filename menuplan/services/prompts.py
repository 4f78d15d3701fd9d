"""Prompt text for the weekly menu generator.

Two variants exist. The full prompt carries every personalisation rule and the
seed-derived variety hints; the simplified prompt keeps only the hard
constraints so retries produce shorter, less error-prone payloads.
"""

from __future__ import annotations

import json
import textwrap
from enum import Enum
from typing import List

from ..schemas import DAY_NAMES, WEEK_LENGTH, MenuRequest
from .diet import DietMode, DietaryFilters, resolve_dietary_filters
from .seed import derive_variety_elements

SYSTEM_PROMPT = (
    "You are a nutrition planner that designs weekly menus. "
    "Respond ONLY with complete, valid JSON. The response must start with { and end with }. "
    "Do not add explanations, markdown or text outside the JSON object."
)

EXOTIC_FRUITS = ("mango", "papaya", "passion fruit", "dragon fruit", "lychee", "guava")
INTERNATIONAL_SPICES = ("garam masala", "za'atar", "sumac", "gochujang", "ras el hanout", "smoked paprika")

_DIET_RULES = {
    DietMode.VEGAN: (
        "VEGAN: no meat, poultry, fish, seafood, eggs, dairy or honey. "
        "Use legumes, tofu, tempeh, seitan, nuts and seeds for protein."
    ),
    DietMode.VEGETARIAN: (
        "VEGETARIAN: no meat, poultry, fish or seafood. Eggs and dairy are allowed."
    ),
    DietMode.OMNIVORE: "OMNIVORE: any food group is allowed; balance animal and plant proteins.",
}

_EXCLUSION_RULES = {
    "gluten": "GLUTEN-FREE: no wheat, barley, rye, regular pasta, bread or couscous.",
    "dairy": "DAIRY-FREE: no milk, cheese, yogurt, butter or cream.",
    "egg": "EGG-FREE: no eggs or ingredients containing egg.",
    "nuts": "NUT-FREE: no tree nuts, peanuts or nut butters.",
    "shellfish": "SHELLFISH-FREE: no shrimp, prawns, crab, lobster, mussels or clams.",
    "fish": "FISH-FREE: no fish of any kind.",
}

_ACTIVITY_NOTES = {
    "sedentary": "Sedentary lifestyle: favour satiating, fibre-rich meals with moderate portions.",
    "light": "Lightly active: keep carbohydrates moderate and spread protein across meals.",
    "moderate": "Moderately active: include complex carbohydrates around main meals.",
    "active": "Active: include recovery-friendly meals with ample protein and carbohydrates.",
    "very_active": "Very active: larger portions, energy-dense snacks and generous protein.",
}


class PromptVariant(str, Enum):
    FULL = "full"
    SIMPLIFIED = "simplified"


def _bmi_category(bmi: float) -> str:
    if bmi < 18.5:
        return "underweight"
    if bmi < 25:
        return "normal weight"
    if bmi < 30:
        return "overweight"
    return "obese"


def _schema_example() -> str:
    meal = {
        "name": "Meal name",
        "description": "Short description",
        "instructions": "Step by step preparation",
        "ingredients": ["ingredient with quantity"],
        "prepTime": 15,
        "cookingTime": 20,
        "nutrition": {"calories": 450, "protein": 25, "carbs": 50, "fat": 15, "fiber": 6},
    }
    day = {
        "date": "YYYY-MM-DD",
        "dayName": DAY_NAMES[0],
        "meals": {"breakfast": meal, "lunch": meal, "dinner": meal, "snacks": [meal]},
        "nutrition": {"calories": 2000, "protein": 100, "carbs": 220, "fat": 70},
    }
    return json.dumps({"weeklyMenu": [day]}, indent=2)


def _structure_rules() -> str:
    return textwrap.dedent(
        f"""\
        STRUCTURE REQUIREMENTS:
        - The JSON object has a single key "weeklyMenu" holding exactly {WEEK_LENGTH} days, {DAY_NAMES[0]} to {DAY_NAMES[-1]}.
        - Every day has breakfast, lunch and dinner and a "snacks" array (it may be empty).
        - Every meal has name, instructions, a non-empty ingredients array, prepTime and nutrition with calories greater than 0.
        - Every day has a "nutrition" object with the day's calories, protein, carbs and fat.
        - The response starts with {{ and ends with }}. No markdown fences, no comments, no trailing commas."""
    )


def _profile_lines(request: MenuRequest) -> List[str]:
    lines: List[str] = []
    if request.age is not None:
        lines.append(f"- Age: {request.age}")
    if request.gender:
        lines.append(f"- Sex: {request.gender}")
    if request.weight is not None:
        lines.append(f"- Weight: {request.weight:g} kg")
    if request.height is not None:
        lines.append(f"- Height: {request.height:g} cm")
    bmi = request.resolved_bmi()
    if bmi is not None:
        lines.append(f"- BMI: {bmi:.1f} ({_bmi_category(bmi)})")
    if request.bmr is not None:
        lines.append(f"- Basal metabolic rate: {request.bmr:.0f} kcal/day")
    if request.activityLevel:
        lines.append(f"- Activity level: {request.activityLevel}. {_ACTIVITY_NOTES[request.activityLevel]}")
    if request.medicalConditions:
        lines.append(f"- Medical conditions to respect: {', '.join(request.medicalConditions)}")
    return lines


def _constraint_lines(filters: DietaryFilters, request: MenuRequest) -> List[str]:
    lines = [f"- {_DIET_RULES[filters.mode]}"]
    for allergen in sorted(filters.excluded):
        lines.append(f"- {_EXCLUSION_RULES[allergen]}")
    if request.allergies:
        lines.append(f"- STRICTLY EXCLUDE these allergens: {', '.join(request.allergies)}")
    return lines


def _build_full(request: MenuRequest, seed: int, filters: DietaryFilters) -> str:
    goals = request.nutritionGoals
    variety = derive_variety_elements(seed)
    sections = [
        f"Create a {WEEK_LENGTH}-day meal plan (generation seed {seed}).",
        "",
        "NUTRITION TARGETS:",
        f"- Weekly calories: {request.totalCalories:.0f} kcal (about {request.daily_calories:.0f} kcal per day)",
        f"- Daily protein: {goals.protein:g} g, carbs: {goals.carbs:g} g, fat: {goals.fat:g} g, fiber: {goals.fiber:g} g",
        "- Day totals may vary slightly; weekends can be a little higher than weekdays.",
        "",
        "DIETARY RULES:",
        *_constraint_lines(filters, request),
    ]
    if request.weeklyBudget is not None:
        sections += ["", "BUDGET:", f"- Keep the total grocery cost for the week under {request.weeklyBudget:.2f}."]
    if request.cuisinePreferences:
        sections += ["", "CUISINE PREFERENCES:", f"- Favour: {', '.join(request.cuisinePreferences)}"]
    profile = _profile_lines(request)
    if profile:
        sections += ["", "USER PROFILE:", *profile]
    sections += [
        "",
        "VARIETY HINTS (use them to make this week different from previous ones):",
        f"- Inspiration cuisine: {variety.cuisine}",
        f"- Featured protein: {variety.protein} (only if compatible with the dietary rules)",
        f"- Featured grain: {variety.grain}",
        f"- Featured fruit: {variety.fruit}",
        f"- Featured vegetable: {variety.vegetable}",
        f"- Featured spice: {variety.spice}",
        f"- Preferred cooking method: {variety.cooking_method}",
        "- Do not repeat the same main dish on consecutive days.",
    ]
    if request.useExoticFruits:
        sections.append(f"- Exotic fruits welcome: {', '.join(EXOTIC_FRUITS)}")
    if request.useInternationalSpices:
        sections.append(f"- International spices welcome: {', '.join(INTERNATIONAL_SPICES)}")
    sections += ["", _structure_rules(), "", "JSON FORMAT:", _schema_example()]
    return "\n".join(sections)


def _build_simplified(request: MenuRequest, filters: DietaryFilters) -> str:
    allergies = ", ".join(request.allergies) if request.allergies else "none"
    return textwrap.dedent(
        f"""\
        Create a simple {WEEK_LENGTH}-day meal plan as JSON.
        - Diet type: {filters.mode.value}
        - Allergies to exclude: {allergies}
        - About {request.daily_calories:.0f} kcal per day
        - Exactly {WEEK_LENGTH} days, {DAY_NAMES[0]} to {DAY_NAMES[-1]}, each with breakfast, lunch, dinner and snacks.
        - Keep descriptions and instructions short.
        - Every meal must include nutrition.calories greater than 0 and every day a nutrition total.
        - The response starts with {{ and ends with }}. Return only the JSON object.

        JSON FORMAT:
        """
    ) + _schema_example()


def build_prompt(request: MenuRequest, seed: int, variant: PromptVariant) -> str:
    """Render the user prompt for one generation attempt. Pure function of its inputs."""
    filters = resolve_dietary_filters(request)
    if variant is PromptVariant.SIMPLIFIED:
        return _build_simplified(request, filters)
    return _build_full(request, seed, filters)


__all__ = ["PromptVariant", "SYSTEM_PROMPT", "build_prompt"]
