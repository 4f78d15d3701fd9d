from __future__ import annotations

import logging
from typing import Iterable, Tuple

from .config import Settings

logger = logging.getLogger(__name__)


def _collect_missing(settings: Settings, pairs: Iterable[Tuple[str, str]]) -> list[str]:
    missing: list[str] = []
    for attr, label in pairs:
        value = getattr(settings, attr, None)
        if value in (None, "", [], {}):
            missing.append(label)
    return missing


def _required_pairs(settings: Settings) -> list[Tuple[str, str]]:
    pairs: list[Tuple[str, str]] = [("menu_model", "MENU_MODEL")]
    if settings.completion_backend == "openai":
        pairs.append(("openai_api_key", "OPENAI_API_KEY"))
    else:
        pairs.append(("completion_url", "COMPLETION_URL"))
    return pairs


def validate_settings(settings: Settings) -> None:
    """Fail fast when the completion service is not configured outside dev."""
    environment = (settings.environment or "dev").lower()

    missing = _collect_missing(settings, _required_pairs(settings))
    if environment == "dev":
        if missing:
            logger.warning(
                "Running in dev without completion credentials; only the offline menu path will work (missing: %s)",
                ", ".join(missing),
            )
        return

    if missing:
        raise RuntimeError(
            f"Missing required configuration for environment '{environment}': {', '.join(sorted(missing))}"
        )
