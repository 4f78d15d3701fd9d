"""Best-effort repair of malformed or truncated candidate payloads.

Strategies run in order and each result is only accepted once it parses and
passes the per-day checks (any non-empty prefix of the week is acceptable here;
the orchestrator still insists on seven days). A day is only kept when it is
fully formed, so a week cut off inside day N never comes back with a
half-written day N. Text that already started more than seven days is left
alone: trimming it would hand back a different week than the one generated.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterator, List, Optional, Tuple

from ..schemas import WEEK_LENGTH
from .extractor import NUTRITION_ANCHOR
from .validator import check

logger = logging.getLogger(__name__)

_CLOSERS = {"{": "}", "[": "]"}
_TRAILING_SEPARATOR = re.compile(r",(\s*[}\]])")
_DANGLING_TAIL = re.compile(r"[,:\s]+$")


def _delimiters(text: str) -> Iterator[Tuple[int, str]]:
    """``(index, char)`` for every brace or bracket outside string literals."""
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "{}[]":
            yield index, char


def _ends_in_string(text: str) -> bool:
    in_string = False
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif in_string and char == "\\":
            escaped = True
        elif char == '"':
            in_string = not in_string
    return in_string


def _open_stack(text: str) -> Tuple[List[str], bool]:
    """Unclosed ``{``/``[`` in document order, ignoring anything inside strings.

    The second value is True when the text ends inside a string literal.
    """
    stack: List[str] = []
    for _, char in _delimiters(text):
        if char in _CLOSERS:
            stack.append(char)
        elif stack and _CLOSERS[stack[-1]] == char:
            stack.pop()
    return stack, _ends_in_string(text)


def _counts(text: str) -> Tuple[int, int]:
    """Missing ``]`` and ``}`` counts, string-aware."""
    braces = brackets = 0
    for _, char in _delimiters(text):
        if char == "{":
            braces += 1
        elif char == "}":
            braces -= 1
        elif char == "[":
            brackets += 1
        else:
            brackets -= 1
    return max(brackets, 0), max(braces, 0)


def started_days(text: str) -> int:
    """Day objects opened directly inside the first array of the payload."""
    stack: List[str] = []
    day_depth: Optional[int] = None
    days = 0
    for _, char in _delimiters(text):
        if char in _CLOSERS:
            if char == "{" and len(stack) == day_depth and stack[-1] == "[":
                days += 1
            if char == "[" and day_depth is None:
                day_depth = len(stack) + 1
            stack.append(char)
        elif stack and _CLOSERS[stack[-1]] == char:
            stack.pop()
    return days


def balance_delimiters(text: str) -> str:
    """Add the missing closers: brackets first, then braces.

    When every brace is already closed and the text ends with the root ``}``,
    the array was left open inside it, so the brackets go just before that
    outermost brace instead of at the end.
    """
    missing_brackets, missing_braces = _counts(text)
    if not missing_brackets and not missing_braces:
        return text
    result = text.rstrip()
    if missing_brackets:
        last_brace = result.rfind("}")
        root_closed = not missing_braces and result.endswith("}")
        if root_closed and last_brace > result.rfind("["):
            result = result[:last_brace] + "]" * missing_brackets + result[last_brace:]
        else:
            result += "]" * missing_brackets
    return result + "}" * missing_braces


def strip_trailing_separators(text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = _TRAILING_SEPARATOR.sub(r"\1", text)
    return text


def _close_at(text: str, cut: int) -> Optional[str]:
    head = text[:cut]
    stack, in_string = _open_stack(head)
    if in_string or not stack:
        return None
    return head + "".join(_CLOSERS[opener] for opener in reversed(stack))


def anchor_truncate(text: str) -> Optional[str]:
    """Cut just after a complete nutrition record and close every open scope.

    Anchors are tried from the last one backwards so the longest valid prefix
    wins; closing the scopes innermost-first closes the meal, the day, the day
    array and finally the root object.
    """
    anchors = [match.end() for match in NUTRITION_ANCHOR.finditer(text)]
    for cut in reversed(anchors):
        closed = _close_at(text, cut)
        if closed is None:
            continue
        if check(closed, require_full_week=False).ok:
            return closed
        # Cutting after a meal can leave a day without its own nutrition total;
        # drop back to the end of the previous day object instead.
        trimmed = _trim_to_last_complete_day(text[:cut])
        if trimmed is not None and check(trimmed, require_full_week=False).ok:
            return trimmed
    return None


def _trim_to_last_complete_day(head: str) -> Optional[str]:
    stack, in_string = _open_stack(head)
    if in_string or "[" not in stack:
        return None
    # Depth of the day array; everything deeper belongs to the partial day.
    array_depth = stack.index("[") + 1
    depth_stack: List[str] = []
    last_day_end = None
    for index, char in _delimiters(head):
        if char in _CLOSERS:
            depth_stack.append(char)
        elif depth_stack:
            depth_stack.pop()
            if char == "}" and len(depth_stack) == array_depth and depth_stack[-1] == "[":
                last_day_end = index + 1
    if last_day_end is None:
        return None
    prefix = _DANGLING_TAIL.sub("", head[:last_day_end])
    closers = "".join(_CLOSERS[opener] for opener in reversed(stack[:array_depth]))
    return prefix + closers


_STRATEGIES: Tuple[Tuple[str, Callable[[str], Optional[str]]], ...] = (
    ("balance_delimiters", balance_delimiters),
    ("strip_trailing_separators", lambda text: strip_trailing_separators(balance_delimiters(text))),
    ("anchor_truncate", anchor_truncate),
)


def repair(candidate: str) -> Optional[str]:
    """Return a repaired payload, or None when no strategy produces a valid structure.

    Input that already passes the checks comes back unchanged, which keeps the
    operation idempotent on its own output.
    """
    if not candidate:
        return None
    if check(candidate, require_full_week=False).ok:
        return candidate
    days = started_days(candidate)
    if days > WEEK_LENGTH:
        logger.info("Not repairing a payload that starts %d days", days)
        return None
    for name, strategy in _STRATEGIES:
        repaired = strategy(candidate)
        if repaired is None or repaired == candidate:
            continue
        if check(repaired, require_full_week=False).ok:
            logger.info("Repaired candidate payload using %s", name)
            return repaired
    logger.info("No repair strategy produced a valid payload")
    return None


__all__ = ["anchor_truncate", "balance_delimiters", "repair", "started_days", "strip_trailing_separators"]
