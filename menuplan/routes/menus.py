from __future__ import annotations

import logging
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..config import Settings, get_settings
from ..errors import ExhaustedRetriesError
from ..ratelimit import limiter
from ..schemas import MenuRequest, MenuResponse
from ..services.completion import CompletionClient, build_completion_client
from ..services.menus import generate_fallback_week_menu, generate_week_menu_result

logger = logging.getLogger(__name__)

router = APIRouter()

UNAVAILABLE_MESSAGE = "Could not generate a weekly menu at this time. Please try again later."
RETRY_AFTER_SECONDS = 30


def get_completion_client(settings: Settings = Depends(get_settings)) -> Iterator[CompletionClient]:
    """One client per request, closed once the response has been produced."""
    client = build_completion_client(settings)
    try:
        yield client
    finally:
        client.close()


def _menu_rate_limit() -> str:
    return get_settings().menu_rate_limit


@router.post("/menus/generate", response_model=MenuResponse)
@limiter.limit(_menu_rate_limit)
def generate_menu(
    request: Request,
    payload: MenuRequest,
    settings: Settings = Depends(get_settings),
    client: CompletionClient = Depends(get_completion_client),
):
    try:
        result = generate_week_menu_result(payload, client=client, settings=settings)
    except ExhaustedRetriesError as exc:
        logger.error("Weekly menu generation failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=UNAVAILABLE_MESSAGE,
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        ) from exc
    return MenuResponse(
        success=True,
        source="ai",
        attempts=len(result.attempts),
        message="Weekly menu generated",
        weeklyMenu=result.menu.weeklyMenu,
    )


@router.post("/menus/fallback", response_model=MenuResponse)
def fallback_menu(payload: MenuRequest):
    menu = generate_fallback_week_menu(payload)
    return MenuResponse(
        success=True,
        source="fallback",
        attempts=0,
        message="Weekly menu built from the offline template table",
        weeklyMenu=menu.weeklyMenu,
    )
