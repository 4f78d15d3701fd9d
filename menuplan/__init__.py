"""Seven-day meal plan generation on top of an unreliable text-completion service."""

from .errors import ExhaustedRetriesError
from .schemas import MenuRequest, WeekMenu
from .services.menus import generate_fallback_week_menu, generate_week_menu

__all__ = [
    "ExhaustedRetriesError",
    "MenuRequest",
    "WeekMenu",
    "generate_fallback_week_menu",
    "generate_week_menu",
]
