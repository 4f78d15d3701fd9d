from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple

from ..schemas import MenuRequest


class DietMode(str, Enum):
    VEGAN = "vegan"
    VEGETARIAN = "vegetarian"
    OMNIVORE = "omnivore"


# Dietary tags arrive in English or Spanish depending on the client locale.
_VEGAN_KEYWORDS = ("vegan", "vegana", "vegano")
_VEGETARIAN_KEYWORDS = ("vegetarian", "vegetariana", "vegetariano")

# allergen -> keywords matched against dietary tags and allergy tags
_EXCLUSION_KEYWORDS = {
    "gluten": ("gluten", "sin gluten", "gluten_free", "celiac", "celiaco", "celíaco"),
    "dairy": ("lactose", "lactosa", "sin lactosa", "dairy", "dairy_free", "lacteos", "lácteos", "milk"),
    "egg": ("egg", "eggs", "huevo", "huevos"),
    "nuts": ("nut", "nuts", "peanut", "peanuts", "frutos secos", "cacahuete", "almond", "almonds"),
    "shellfish": ("shellfish", "mariscos", "marisco", "crustacean", "shrimp"),
    "fish": ("fish", "pescado"),
}


@dataclass(frozen=True)
class DietaryFilters:
    """Resolved once per request and consulted wherever templates or rules are chosen."""

    mode: DietMode
    excluded: frozenset[str]

    def allows(self, contains: Iterable[str]) -> bool:
        return not (set(contains) & self.excluded)

    @property
    def gluten_free(self) -> bool:
        return "gluten" in self.excluded

    @property
    def dairy_free(self) -> bool:
        return "dairy" in self.excluded


def _normalized(tags: Iterable[str]) -> Tuple[str, ...]:
    return tuple(tag.strip().lower() for tag in tags if tag and tag.strip())


def resolve_diet_mode(request: MenuRequest) -> DietMode:
    tags = _normalized(request.dietaryPreferences)
    if any(keyword in tag for tag in tags for keyword in _VEGAN_KEYWORDS):
        return DietMode.VEGAN
    if any(keyword in tag for tag in tags for keyword in _VEGETARIAN_KEYWORDS):
        return DietMode.VEGETARIAN
    return DietMode.OMNIVORE


def _matches(tag: str, keyword: str) -> bool:
    if " " in keyword or "_" in keyword:
        return keyword in tag
    return keyword in tag.replace("_", " ").replace("-", " ").split()


def resolve_dietary_filters(request: MenuRequest) -> DietaryFilters:
    mode = resolve_diet_mode(request)
    tags = _normalized(request.allergies) + _normalized(request.dietaryPreferences)
    excluded = {
        allergen
        for allergen, keywords in _EXCLUSION_KEYWORDS.items()
        for tag in tags
        if any(_matches(tag, keyword) for keyword in keywords)
    }
    return DietaryFilters(mode=mode, excluded=frozenset(excluded))
