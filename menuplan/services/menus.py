"""Entry points used by the HTTP routes and the CLI."""

from __future__ import annotations

import time
from datetime import date
from typing import Callable, Optional

from ..config import Settings, get_settings
from ..errors import ExhaustedRetriesError
from ..schemas import MenuRequest, WeekMenu
from .completion import CompletionClient, build_completion_client
from .fallback import generate_fallback
from .orchestrator import Exhausted, RetryOrchestrator, RetryPolicy, Succeeded


def generate_week_menu_result(
    request: MenuRequest,
    *,
    client: Optional[CompletionClient] = None,
    settings: Optional[Settings] = None,
    seed: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Succeeded:
    """Run the online pipeline and return the success value, raising on exhaustion.

    A client passed in stays open; one built here from ``settings`` is closed
    before returning.
    """
    settings = settings or get_settings()
    if client is None:
        with build_completion_client(settings) as owned:
            return generate_week_menu_result(request, client=owned, settings=settings, seed=seed, sleep=sleep)

    orchestrator = RetryOrchestrator(
        client,
        policy=RetryPolicy.from_settings(settings),
        model=settings.menu_model,
        sleep=sleep,
    )
    result = orchestrator.run(request, seed=seed)
    if isinstance(result, Exhausted):
        raise ExhaustedRetriesError(result.attempts, result.last_failure)
    return result


def generate_week_menu(
    request: MenuRequest,
    *,
    client: Optional[CompletionClient] = None,
    settings: Optional[Settings] = None,
) -> WeekMenu:
    """Online path. Every returned menu came from the completion service; raises ``ExhaustedRetriesError`` otherwise."""
    return generate_week_menu_result(request, client=client, settings=settings).menu


def generate_fallback_week_menu(
    request: MenuRequest,
    *,
    seed: Optional[int] = None,
    today: Optional[date] = None,
) -> WeekMenu:
    """Offline path. Never fails for a valid request."""
    return generate_fallback(request, seed=seed, today=today)


__all__ = ["generate_fallback_week_menu", "generate_week_menu", "generate_week_menu_result"]
