"""Error taxonomy for the menu generation pipeline."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .services.orchestrator import AttemptFailure, AttemptResult


class ErrorKind(str, Enum):
    NETWORK = "network"
    SERVICE = "service"
    NO_STRUCTURE = "no_structure"
    PARSE = "parse"
    SCHEMA = "schema"


class MenuGenerationError(RuntimeError):
    """Base class for every failure a single generation attempt can hit."""

    kind: ErrorKind

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NetworkError(MenuGenerationError):
    """Transport failure or timeout talking to the completion service."""

    kind = ErrorKind.NETWORK


class ServiceError(MenuGenerationError):
    """The completion service answered with a non-success status."""

    kind = ErrorKind.SERVICE

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Completion service returned {status_code}: {body[:300]}")
        self.status_code = status_code
        self.body = body


class NoStructureFoundError(MenuGenerationError):
    kind = ErrorKind.NO_STRUCTURE


class ParseError(MenuGenerationError):
    kind = ErrorKind.PARSE


class SchemaError(MenuGenerationError):
    """Well-formed payload that breaks the weekly menu invariants."""

    kind = ErrorKind.SCHEMA

    def __init__(self, reason: str, *, day_index: int | None = None, check: str | None = None) -> None:
        where = f" (day {day_index}, {check})" if day_index is not None else (f" ({check})" if check else "")
        super().__init__(f"{reason}{where}")
        self.reason = reason
        self.day_index = day_index
        self.check = check


class ExhaustedRetriesError(RuntimeError):
    """Terminal failure of the online path after every attempt failed."""

    def __init__(self, attempts: Sequence["AttemptResult"], last_failure: "AttemptFailure | None") -> None:
        detail = last_failure.detail if last_failure else "no attempts were made"
        super().__init__(
            f"Could not generate a weekly menu at this time after {len(attempts)} attempts: {detail}"
        )
        self.attempts = list(attempts)
        self.last_failure = last_failure


__all__ = [
    "ErrorKind",
    "MenuGenerationError",
    "NetworkError",
    "ServiceError",
    "NoStructureFoundError",
    "ParseError",
    "SchemaError",
    "ExhaustedRetriesError",
]
