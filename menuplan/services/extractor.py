"""Locate the structured payload inside sanitized completion text.

Two named heuristics:

* ``naive``: first ``{`` to last ``}`` (or ``[`` to ``]`` for a bare day array).
* ``anchor``: the last fully formed ``"nutrition": {... "calories": N ...}``
  record marks the end of trustworthy content. Large payloads truncate far more
  often than they corrupt in the middle, so when text keeps going past that
  record without closing cleanly the cut moves to just after it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Optional

from ..errors import NoStructureFoundError

NUTRITION_ANCHOR = re.compile(
    r'"nutrition"\s*:\s*\{[^{}]*"calories"\s*:\s*-?\d+(?:\.\d+)?[^{}]*\}'
)

Strategy = Literal["naive", "anchor"]


@dataclass(frozen=True)
class Extraction:
    candidate: str
    start: int
    end: int
    strategy: Strategy


def last_anchor_end(text: str, start: int = 0) -> Optional[int]:
    """Index just past the last complete nutrition record at or after ``start``."""
    end = None
    for match in NUTRITION_ANCHOR.finditer(text, start):
        end = match.end()
    return end


def naive_span(text: str) -> tuple[int, int]:
    """First opener to last matching closer.

    The payload is a bare day array when the first ``{`` is only preceded by a
    ``[`` and whitespace; the span then runs to the last ``]`` when that is the
    final closer in the text.
    """
    start = text.find("{")
    if start == -1:
        raise NoStructureFoundError("No opening brace found in completion text")
    bracket = text.rfind("[", 0, start)
    if bracket != -1 and not text[bracket + 1 : start].strip():
        start = bracket
        close = text.rfind("]")
        if close > start and close > text.rfind("}"):
            return start, close + 1
    end = text.rfind("}")
    if end < start:
        return start, len(text)
    return start, end + 1


def extract(text: str) -> Extraction:
    start, naive_end = naive_span(text)

    anchor_end = last_anchor_end(text, start)
    if anchor_end is None:
        return Extraction(text[start:naive_end], start, naive_end, "naive")

    # The record holding the anchor closes at the next brace; a clean payload
    # continues with closers only, anything else means it was cut off afterwards.
    next_close = text.find("}", anchor_end)
    if next_close == -1:
        return Extraction(text[start:anchor_end], start, anchor_end, "anchor")
    remainder = text[next_close + 1 :].lstrip()
    if not remainder or remainder[0] in "]}":
        return Extraction(text[start:naive_end], start, naive_end, "naive")
    cut = next_close + 1
    return Extraction(text[start:cut], start, cut, "anchor")


__all__ = ["Extraction", "NUTRITION_ANCHOR", "extract", "last_anchor_end", "naive_span"]
