"""Textual clean-up of raw completion output before any structural work.

Nothing here understands JSON semantics; every step is a plain text rewrite and
the whole pass never raises.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Any

logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?[ \t]*```\s*$")
_INVISIBLE = {"\ufeff", "\u200b", "\u200c", "\u200d", "\u2060"}
_KEPT_WHITESPACE = {"\t", "\n", "\r"}
_TRAILING_ELLIPSIS = re.compile(r"(?:\s*(?:\.{3,}|\u2026))+\s*$")
_PLACEHOLDER_ELLIPSIS = re.compile(r"([\[{,])\s*(?:\.{3,}|\u2026)(?=\s*[\]},]|\s*$)\s*")
_DANGLING_SEPARATOR = re.compile(r",\s*([}\]])")
_DOUBLE_SEPARATOR = re.compile(r",\s*,")


def _strip_fences(text: str) -> str:
    if not text.lstrip().startswith("```"):
        return text
    text = _LEADING_FENCE.sub("", text, count=1)
    return _TRAILING_FENCE.sub("", text, count=1)


def _is_control(char: str) -> bool:
    if char in _KEPT_WHITESPACE:
        return False
    if char in _INVISIBLE:
        return True
    return unicodedata.category(char) == "Cc"


def _strip_control_characters(text: str) -> str:
    return "".join(char for char in text if not _is_control(char))


def _normalize_spaces(text: str) -> str:
    return "".join(
        " " if char != " " and unicodedata.category(char) in ("Zs", "Zl", "Zp") else char
        for char in text
    )


def _strip_trailing_fragments(text: str) -> str:
    text = _PLACEHOLDER_ELLIPSIS.sub(r"\1", text)
    text = _TRAILING_ELLIPSIS.sub("", text)
    last_close = max(text.rfind("}"), text.rfind("]"))
    if last_close == -1:
        return text
    tail = text[last_close + 1 :]
    # Prose after the payload ("Enjoy your week!"); anything structural is left for the extractor.
    if tail.strip() and not any(ch in tail for ch in '"{}[]:'):
        text = text[: last_close + 1]
    return text


def _drop_dangling_separators(text: str) -> str:
    text = _DOUBLE_SEPARATOR.sub(",", text)
    return _DANGLING_SEPARATOR.sub(r"\1", text)


def sanitize(raw: Any) -> str:
    """Normalise raw completion text. Returns an empty string for empty or non-text input."""
    if not isinstance(raw, str) or not raw:
        return ""
    text = _strip_fences(raw)
    text = _strip_control_characters(text)
    text = _normalize_spaces(text)
    text = _strip_trailing_fragments(text)
    text = _drop_dangling_separators(text)
    cleaned = text.strip()
    if len(cleaned) != len(raw):
        logger.debug("Sanitized completion text from %d to %d chars", len(raw), len(cleaned))
    return cleaned


__all__ = ["sanitize"]
