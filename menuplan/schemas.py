from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

WEEK_LENGTH = 7
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MAIN_MEAL_SLOTS = ("breakfast", "lunch", "dinner")

ActivityLevel = Literal["sedentary", "light", "moderate", "active", "very_active"]


class NutritionGoals(BaseModel):
    model_config = ConfigDict(frozen=True)

    protein: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0)
    fat: float = Field(default=0, ge=0)
    fiber: float = Field(default=0, ge=0)


class MenuRequest(BaseModel):
    """A user's nutrition profile; built once per request and never mutated."""

    model_config = ConfigDict(frozen=True)

    nutritionGoals: NutritionGoals = Field(default_factory=NutritionGoals)
    totalCalories: float = Field(gt=0, description="Calories for the whole week")
    dietaryPreferences: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    cuisinePreferences: List[str] = Field(default_factory=list)
    weeklyBudget: Optional[float] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[Literal["male", "female"]] = None
    activityLevel: Optional[ActivityLevel] = None
    bmr: Optional[float] = Field(default=None, gt=0)
    bmi: Optional[float] = Field(default=None, gt=0)
    medicalConditions: List[str] = Field(default_factory=list)
    useExoticFruits: bool = False
    useInternationalSpices: bool = False

    @property
    def daily_calories(self) -> float:
        return self.totalCalories / WEEK_LENGTH

    def resolved_bmi(self) -> float | None:
        if self.bmi is not None:
            return self.bmi
        if self.weight and self.height:
            return self.weight / ((self.height / 100) ** 2)
        return None


class MealNutrition(BaseModel):
    calories: float = Field(gt=0)
    protein: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0)
    fat: float = Field(default=0, ge=0)
    fiber: Optional[float] = Field(default=None, ge=0)


class DayNutrition(BaseModel):
    calories: float = Field(ge=0)
    protein: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0)
    fat: float = Field(default=0, ge=0)


class CalorieRange(BaseModel):
    min: int
    max: int
    display: str


class Meal(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    instructions: str = ""
    ingredients: List[str] = Field(min_length=1)
    prepTime: int = Field(default=0, ge=0)
    cookingTime: Optional[int] = Field(default=None, ge=0)
    nutrition: MealNutrition

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("instructions", mode="before")
    @classmethod
    def _join_steps(cls, v: Any) -> Any:
        if isinstance(v, list):
            return " ".join(str(step).strip() for step in v if str(step).strip())
        return "" if v is None else v

    @field_validator("ingredients", mode="before")
    @classmethod
    def _flatten_ingredients(cls, v: Any) -> Any:
        # Some responses describe ingredients as {"name": ..., "amount": ...} objects.
        if not isinstance(v, list):
            return v
        flattened = []
        for item in v:
            if isinstance(item, dict):
                label = item.get("name") or item.get("ingredient")
                if label:
                    flattened.append(str(label))
            elif isinstance(item, str) and item.strip():
                flattened.append(item.strip())
        return flattened


class MealSet(BaseModel):
    breakfast: Optional[Meal] = None
    lunch: Optional[Meal] = None
    dinner: Optional[Meal] = None
    snacks: List[Meal] = Field(default_factory=list)

    @field_validator("snacks", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @model_validator(mode="after")
    def _require_main_meal(self) -> "MealSet":
        if not any(getattr(self, slot) for slot in MAIN_MEAL_SLOTS):
            raise ValueError("meal set needs at least one of breakfast, lunch or dinner")
        return self

    def all_meals(self) -> List[Meal]:
        meals = [getattr(self, slot) for slot in MAIN_MEAL_SLOTS if getattr(self, slot)]
        return meals + list(self.snacks)


class DaySchedule(BaseModel):
    date: Optional[str] = None
    dayName: str = Field(min_length=1)
    meals: MealSet
    notes: Optional[str] = None
    nutrition: DayNutrition
    calorieRange: Optional[CalorieRange] = None


class WeekMenu(BaseModel):
    """Exactly seven day schedules, Monday first."""

    weeklyMenu: List[DaySchedule] = Field(min_length=WEEK_LENGTH, max_length=WEEK_LENGTH)

    @property
    def days(self) -> List[DaySchedule]:
        return self.weeklyMenu


class MenuResponse(BaseModel):
    success: bool
    source: Literal["ai", "fallback"]
    attempts: int = Field(default=0, ge=0)
    message: Optional[str] = None
    weeklyMenu: List[DaySchedule]
