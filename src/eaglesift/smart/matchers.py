"""Attribute matchers for smart-folder rules.

Every matcher is a pure function of its arguments and answers ``False`` for
anything it cannot interpret (missing attribute, unknown method, malformed
bound). Colour matching lives in :mod:`.color`.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Callable, Collection, Dict, Mapping, Optional, Sequence

from .constants import (
    MS_PER_DAY,
    PANORAMIC_RATIO,
    TYPE_CATEGORIES,
    UNRATED,
    URL_EXTENSION,
    URL_MEDIA,
)
from .model import RatingOperand

logger = logging.getLogger(__name__)

__all__ = [
    "match_string",
    "match_number",
    "convert_size",
    "convert_duration",
    "match_date",
    "match_set",
    "match_type",
    "match_rating",
    "classify_shape",
    "match_shape",
    "extract_number",
    "match_font_activated",
]

_NUMBER_LITERAL = re.compile(r"[+-]?\d+(?:\.\d+)?")


def _fold(value: Any) -> str:
    return value.casefold() if isinstance(value, str) else ""


def _regex_search(haystack: str, pattern: str) -> bool:
    try:
        return re.search(pattern, haystack) is not None
    except re.error:
        logger.debug("Invalid regex in rule: %r", pattern)
        return False


_STRING_MATCHERS: Dict[str, Callable[[str, str], bool]] = {
    "equal": lambda a, b: a == b,
    "startWith": lambda a, b: a.startswith(b),
    "endWith": lambda a, b: a.endswith(b),
    "contain": lambda a, b: b in a,
    "uncontain": lambda a, b: b not in a,
    "regex": _regex_search,
}


def match_string(haystack: Optional[str], needle: Optional[str], method: str) -> bool:
    """Case-insensitive string test.

    ``empty``/``not-empty`` look at the haystack only. Every other method
    refuses an empty needle so an unset rule cannot match everything.
    """
    value = _fold(haystack)
    if method == "empty":
        return value == ""
    if method == "not-empty":
        return value != ""
    target = _fold(needle)
    if not target:
        return False
    matcher = _STRING_MATCHERS.get(method)
    return matcher(value, target) if matcher else False


def match_number(value: Optional[float], bounds: Sequence[Optional[float]], method: str) -> bool:
    """Compare ``value`` against ``bounds`` (``[min]`` or ``[min, max]``).

    Single-sided methods compare against ``min``; ``between`` is inclusive.
    """
    if value is None or isinstance(value, bool) or not bounds:
        return False
    low = bounds[0]
    if low is None:
        return False
    if method == "=":
        return value == low
    if method == ">=":
        return value >= low
    if method == "<=":
        return value <= low
    if method == ">":
        return value > low
    if method == "<":
        return value < low
    if method == "between":
        high = bounds[1] if len(bounds) > 1 else None
        if high is None:
            return False
        return low <= value <= high
    return False


def convert_size(size: Optional[float], unit: Optional[str]) -> Optional[float]:
    """Bytes to ``kb`` or (default) ``mb``."""
    if size is None:
        return None
    if unit == "kb":
        return size / 1024
    return size / (1024 * 1024)


def convert_duration(duration: Optional[float], unit: Optional[str]) -> Optional[float]:
    """Seconds to ``m`` or ``h``; any other unit keeps seconds."""
    if duration is None:
        return None
    if unit == "m":
        return duration / 60
    if unit == "h":
        return duration / 3600
    return duration


def _local_day(timestamp_ms: float):
    return datetime.fromtimestamp(timestamp_ms / 1000).date()


def match_date(
    timestamp_ms: Optional[float],
    bounds: Sequence[Optional[float]],
    method: str,
    now_ms: float,
) -> bool:
    """Date-window test on epoch milliseconds.

    ``before`` and ``between`` include the whole end day (bound + 24h).
    ``within`` reads the first bound as a number of days back from ``now_ms``.
    """
    if not timestamp_ms or not bounds or bounds[0] is None:
        return False
    first = bounds[0]
    if method == "on":
        try:
            return _local_day(timestamp_ms) == _local_day(first)
        except (OverflowError, OSError, ValueError):
            return False
    if method == "before":
        return timestamp_ms <= first + MS_PER_DAY
    if method == "after":
        return timestamp_ms >= first
    if method == "between":
        second = bounds[1] if len(bounds) > 1 else None
        if second is None:
            return False
        return first <= timestamp_ms <= second + MS_PER_DAY
    if method == "within":
        return timestamp_ms + first * MS_PER_DAY >= now_ms
    return False


def match_set(item_values: Optional[Collection[Any]], rule_values: Sequence[Any], method: str) -> bool:
    """Tag/folder membership test."""
    present = set(item_values or ())
    if method == "empty":
        return not present
    if method == "not-empty":
        return bool(present)

    wanted = set(rule_values)
    overlap = wanted & present
    if method == "intersection":
        return bool(wanted) and overlap == wanted
    if method == "equal":
        return bool(wanted) and overlap == wanted and len(present) == len(wanted)
    if method == "union":
        return bool(overlap)
    if method == "identity":
        return not overlap
    return False


def _type_membership(ext: str, target: str, medium: Optional[str]) -> bool:
    if ext and ext == target:
        return True
    extensions = TYPE_CATEGORIES.get(target)
    if extensions is not None:
        return ext in extensions
    if target == URL_EXTENSION:
        return ext == URL_EXTENSION and not medium
    if target in URL_MEDIA:
        return ext == URL_EXTENSION and medium == target
    return False


def match_type(ext: Optional[str], value: str, method: str, medium: Optional[str] = None) -> bool:
    """Extension or category test, e.g. ``value="video"`` for any video file."""
    if ext is None or not isinstance(value, str):
        return False
    result = _type_membership(ext.casefold(), value.casefold(), medium)
    if method == "equal":
        return result
    if method == "unequal":
        return not result
    return False


def match_rating(star: Optional[int], operand: RatingOperand, method: str) -> bool:
    rated = bool(star)
    if method == "contain":
        if not rated:
            return UNRATED in operand.choices
        return str(star) in operand.choices
    if method not in ("equal", "unequal"):
        return False
    if operand.target is None:
        # rule targets unrated items
        return (not rated) if method == "equal" else rated
    current = star or 0
    if method == "equal":
        return current == operand.target
    return current != operand.target


def classify_shape(width: float, height: float) -> str:
    if width > height:
        return "panoramic-landscape" if width / height >= PANORAMIC_RATIO else "landscape"
    if width < height:
        return "panoramic-portrait" if height / width >= PANORAMIC_RATIO else "portrait"
    return "square"


def match_shape(
    width: Optional[float],
    height: Optional[float],
    value: str,
    method: str,
    target_width: Optional[float] = None,
    target_height: Optional[float] = None,
) -> bool:
    if not width or not height or width < 0 or height < 0:
        return False
    if value == "custom":
        if not target_width or not target_height:
            return False
        is_equal = target_width / target_height == width / height
    else:
        is_equal = classify_shape(width, height) == value
    if method == "equal":
        return is_equal
    if method == "unequal":
        return not is_equal
    return False


def extract_number(text: Any, position: int = 0) -> Optional[float]:
    """Return the ``position``-th numeric literal embedded in ``text``.

    >>> extract_number("f/2.8")
    2.8
    >>> extract_number("1/250 s", 1)
    250.0
    """
    if text is None or isinstance(text, bool):
        return None
    found = _NUMBER_LITERAL.findall(str(text))
    if len(found) <= position:
        return None
    return float(found[position])


def match_font_activated(
    font_names: Optional[Mapping[str, str]],
    ext: Optional[str],
    installed_fonts: Mapping[str, Any],
    method: str,
) -> bool:
    """Whether the font's primary PostScript name is installed."""
    if not font_names:
        return False
    postscript_name = next(iter(font_names.values()), None)
    if not postscript_name:
        return False
    installed = bool(installed_fonts.get(f"{postscript_name}_.{ext or ''}"))
    if method == "activate":
        return installed
    if method == "deactivate":
        return not installed
    return False
