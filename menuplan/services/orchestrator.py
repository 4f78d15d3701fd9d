"""Sequential retry loop around one generation request.

Each attempt runs prompt -> completion -> sanitize -> extract -> check, with a
single repair pass when the candidate looks truncated. Each attempt yields an
``AttemptSuccess`` or ``AttemptFailure`` value; the loop only ends with
``Succeeded`` or, after the last attempt, ``Exhausted``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Union

from ..errors import ErrorKind, MenuGenerationError, ParseError, SchemaError
from ..observability import generation_context
from ..schemas import WEEK_LENGTH, MenuRequest, WeekMenu
from .completion import CompletionClient
from .extractor import extract
from .prompts import PromptVariant, build_prompt
from .repair import repair
from .sanitizer import sanitize
from .seed import new_generation_seed
from .validator import ValidationReport, check

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 5.0

    def delay_for(self, attempt: int) -> float:
        """Delay before ``attempt`` (1-based); the first attempt never waits."""
        if attempt <= 1:
            return 0.0
        return min(self.backoff_base_seconds * 2 ** (attempt - 2), self.backoff_max_seconds)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.menu_max_attempts,
            backoff_base_seconds=settings.menu_backoff_base_seconds,
            backoff_max_seconds=settings.menu_backoff_max_seconds,
        )


@dataclass(frozen=True)
class AttemptSuccess:
    menu: WeekMenu
    attempt: int
    variant: PromptVariant
    repaired: bool = False


@dataclass(frozen=True)
class AttemptFailure:
    kind: ErrorKind
    detail: str
    attempt: int
    variant: PromptVariant


AttemptResult = Union[AttemptSuccess, AttemptFailure]


@dataclass(frozen=True)
class Succeeded:
    menu: WeekMenu
    attempts: List[AttemptResult] = field(default_factory=list)


@dataclass(frozen=True)
class Exhausted:
    attempts: List[AttemptResult] = field(default_factory=list)
    last_failure: Optional[AttemptFailure] = None


RunResult = Union[Succeeded, Exhausted]


def variant_for(attempt: int) -> PromptVariant:
    return PromptVariant.FULL if attempt % 2 == 1 else PromptVariant.SIMPLIFIED


def _report_error(report: ValidationReport) -> MenuGenerationError:
    if report.parse_error is not None:
        return ParseError(report.parse_error)
    issue = report.first_issue()
    if issue is None:
        return SchemaError("payload did not contain a full week")
    return SchemaError(issue.message, day_index=issue.day_index, check=issue.check)


def is_repairable(report: ValidationReport) -> bool:
    """Repair only targets truncation: malformed text or a week that stops short.

    A well-formed payload with too many days, a missing day collection or a
    bad day is the generator's answer and is reported as is.
    """
    if report.parse_error is not None:
        return True
    issue = report.first_issue()
    return (
        issue is not None
        and issue.check == "day_count"
        and report.day_count is not None
        and report.day_count < WEEK_LENGTH
    )


class RetryOrchestrator:
    """Drive up to ``policy.max_attempts`` attempts against one completion client."""

    def __init__(
        self,
        client: CompletionClient,
        *,
        policy: Optional[RetryPolicy] = None,
        model: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.policy = policy or RetryPolicy()
        self.model = model
        self._sleep = sleep

    def run(self, request: MenuRequest, seed: Optional[int] = None) -> RunResult:
        seed = new_generation_seed(request) if seed is None else seed
        results: List[AttemptResult] = []
        last_failure: Optional[AttemptFailure] = None

        for attempt in range(1, self.policy.max_attempts + 1):
            delay = self.policy.delay_for(attempt)
            if delay > 0:
                logger.info("Waiting %.1fs before menu attempt %d", delay, attempt)
                self._sleep(delay)

            variant = variant_for(attempt)
            logger.info("Menu attempt %d/%d (variant=%s, seed=%s)", attempt, self.policy.max_attempts, variant.value, seed)
            with generation_context(seed=seed, attempt=attempt, variant=variant.value):
                result = self._attempt(request, seed, attempt, variant)
            results.append(result)

            if isinstance(result, AttemptSuccess):
                logger.info("Menu attempt %d succeeded (repaired=%s)", attempt, result.repaired)
                return Succeeded(menu=result.menu, attempts=results)

            last_failure = result
            logger.warning("Menu attempt %d failed (%s): %s", attempt, result.kind.value, result.detail)

        logger.error("Menu generation exhausted after %d attempts", len(results))
        return Exhausted(attempts=results, last_failure=last_failure)

    def _attempt(self, request: MenuRequest, seed: int, attempt: int, variant: PromptVariant) -> AttemptResult:
        # Only the collaborators raise: the client on transport or status errors,
        # the extractor when there is no structure at all.
        try:
            return self._generate(request, seed, attempt, variant)
        except MenuGenerationError as exc:
            return AttemptFailure(kind=exc.kind, detail=exc.detail, attempt=attempt, variant=variant)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error during menu attempt %d", attempt)
            return AttemptFailure(kind=ErrorKind.SERVICE, detail=f"{type(exc).__name__}: {exc}", attempt=attempt, variant=variant)

    def _generate(self, request: MenuRequest, seed: int, attempt: int, variant: PromptVariant) -> AttemptResult:
        prompt = build_prompt(request, seed, variant)
        raw = self.client.complete(prompt, self.model)
        logger.debug("Raw completion (%d chars): %s", len(raw or ""), (raw or "")[:500])

        extraction = extract(sanitize(raw))
        report = check(extraction.candidate)
        if report.menu is not None:
            return AttemptSuccess(menu=report.menu, attempt=attempt, variant=variant)

        error = _report_error(report)
        failure = AttemptFailure(kind=error.kind, detail=error.detail, attempt=attempt, variant=variant)
        if not is_repairable(report):
            return failure

        repaired = repair(extraction.candidate)
        if repaired is None:
            return failure
        repaired_report = check(repaired)
        if repaired_report.menu is None:
            # Keep the original diagnosis; the repair only salvaged part of the week.
            recovered = repaired_report.day_count or 0
            return replace(failure, detail=f"{failure.detail}; repair recovered {recovered} of {WEEK_LENGTH} days")
        return AttemptSuccess(menu=repaired_report.menu, attempt=attempt, variant=variant, repaired=True)


__all__ = [
    "AttemptFailure",
    "AttemptResult",
    "AttemptSuccess",
    "Exhausted",
    "RetryOrchestrator",
    "RetryPolicy",
    "RunResult",
    "Succeeded",
    "is_repairable",
    "variant_for",
]
