"""Smart folder evaluation.

A folder matches an item when every one of its conditions matches. A
condition combines its rules with AND (``match == "AND"``) or OR (anything
else) and is negated when ``boolean == "FALSE"``. Each rule is routed to the
matcher for its property; rules that cannot be evaluated are ``False``.

The evaluator owns nothing but a hex->RGB cache, so one instance can be
shared by worker threads filtering disjoint slices of a library.
"""
from __future__ import annotations

import concurrent.futures
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from ..telemetry import BatchSample, sink_from_env
from .color import ColorCache, match_color
from .constants import RuleProperty
from .matchers import (
    convert_duration,
    convert_size,
    extract_number,
    match_date,
    match_font_activated,
    match_number,
    match_rating,
    match_set,
    match_shape,
    match_string,
    match_type,
)
from .model import (
    Condition,
    FilterContext,
    Item,
    LiteralOperand,
    RangeOperand,
    RatingOperand,
    Rule,
    SetOperand,
    SmartFolder,
    TextOperand,
    coerce_number,
    ensure_context,
    ensure_folder,
    ensure_item,
)

logger = logging.getLogger(__name__)

__all__ = ["SmartFilterEvaluator", "evaluate", "filter_items"]

T = TypeVar("T")
RuleMatcher = Callable[["SmartFilterEvaluator", Rule, Item, FilterContext], bool]


def _bounds(rule: Rule) -> Optional[tuple]:
    operand = rule.operand
    if isinstance(operand, RangeOperand):
        return (operand.low, operand.high)
    return None


def _needle(rule: Rule) -> Optional[str]:
    operand = rule.operand
    if isinstance(operand, TextOperand):
        return operand.text
    return None


# -- text ---------------------------------------------------------------

def _text_rule(getter: Callable[[Item], Optional[str]]) -> RuleMatcher:
    def matcher(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, _ctx: FilterContext) -> bool:
        needle = _needle(rule)
        if needle is None:
            return False
        return match_string(getter(item), needle, rule.method)

    return matcher


def _folder_name_rule(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, ctx: FilterContext) -> bool:
    needle = _needle(rule)
    if needle is None or not item.folders:
        return False
    for folder_id in item.folders:
        folder = ctx.folder_mappings.get(folder_id)
        if not isinstance(folder, Mapping):
            continue
        if match_string(folder.get("name"), needle, rule.method):
            return True
    return False


def _comments_rule(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, _ctx: FilterContext) -> bool:
    needle = _needle(rule)
    if needle is None:
        return False
    joined = " ".join(item.comments or ())
    return match_string(joined, needle, rule.method)


def _camera_rule(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, _ctx: FilterContext) -> bool:
    needle = _needle(rule)
    if needle is None or item.raw_metas is None or not item.raw_metas.camera:
        return False
    return match_string(item.raw_metas.camera, needle, rule.method)


# -- numbers ------------------------------------------------------------

def _number_rule(getter: Callable[[Rule, Item], Optional[float]]) -> RuleMatcher:
    def matcher(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, _ctx: FilterContext) -> bool:
        bounds = _bounds(rule)
        if bounds is None:
            return False
        return match_number(getter(rule, item), bounds, rule.method)

    return matcher


def _exif_number(field_name: str, position: int = 0) -> Callable[[Rule, Item], Optional[float]]:
    def getter(_rule: Rule, item: Item) -> Optional[float]:
        if item.raw_metas is None:
            return None
        raw = getattr(item.raw_metas, field_name)
        if raw is None or raw == "":
            return None
        return extract_number(raw, position)

    return getter


# -- dates --------------------------------------------------------------

def _date_rule(getter: Callable[[Item], Optional[float]]) -> RuleMatcher:
    def matcher(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, ctx: FilterContext) -> bool:
        bounds = _bounds(rule)
        if bounds is None:
            return False
        return match_date(getter(item), bounds, rule.method, ctx.now_ms)

    return matcher


def _exif_timestamp(item: Item) -> Optional[float]:
    if item.raw_metas is None:
        return None
    return coerce_number(item.raw_metas.timestamp)


# -- sets and categories -----------------------------------------------

def _set_rule(getter: Callable[[Item], Optional[Sequence[Any]]]) -> RuleMatcher:
    def matcher(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, _ctx: FilterContext) -> bool:
        operand = rule.operand
        if not isinstance(operand, SetOperand):
            return False
        return match_set(getter(item), operand.members, rule.method)

    return matcher


def _type_rule(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, _ctx: FilterContext) -> bool:
    operand = rule.operand
    if not isinstance(operand, LiteralOperand):
        return False
    return match_type(item.ext, operand.value, rule.method, item.medium)


def _rating_rule(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, _ctx: FilterContext) -> bool:
    operand = rule.operand
    if not isinstance(operand, RatingOperand):
        return False
    return match_rating(item.star, operand, rule.method)


def _shape_rule(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, _ctx: FilterContext) -> bool:
    operand = rule.operand
    if not isinstance(operand, LiteralOperand):
        return False
    return match_shape(item.width, item.height, operand.value, rule.method, rule.width, rule.height)


def _color_rule(ev: "SmartFilterEvaluator", rule: Rule, item: Item, _ctx: FilterContext) -> bool:
    if rule.method == "grayscale":
        return match_color(item.palettes, None, rule.method)
    operand = rule.operand
    if not isinstance(operand, LiteralOperand):
        return False
    return match_color(item.palettes, ev.color_cache.get(operand.value), rule.method)


def _font_rule(_ev: "SmartFilterEvaluator", rule: Rule, item: Item, ctx: FilterContext) -> bool:
    return match_font_activated(item.font_names, item.ext, ctx.installed_fonts, rule.method)


_MATCHERS: Dict[RuleProperty, RuleMatcher] = {
    RuleProperty.NAME: _text_rule(lambda item: item.name),
    RuleProperty.FOLDER_NAME: _folder_name_rule,
    RuleProperty.URL: _text_rule(lambda item: item.url),
    RuleProperty.ANNOTATION: _text_rule(lambda item: item.annotation),
    RuleProperty.COMMENTS: _comments_rule,
    RuleProperty.WIDTH: _number_rule(lambda _r, item: item.width),
    RuleProperty.HEIGHT: _number_rule(lambda _r, item: item.height),
    RuleProperty.FILE_SIZE: _number_rule(lambda rule, item: convert_size(item.size, rule.unit)),
    RuleProperty.DURATION: _number_rule(lambda rule, item: convert_duration(item.duration, rule.unit)),
    RuleProperty.BPM: _number_rule(lambda _r, item: item.bpm),
    # createTime has always read the modification time
    RuleProperty.CREATE_TIME: _date_rule(lambda item: item.modification_time),
    RuleProperty.MTIME: _date_rule(lambda item: item.mtime or item.modification_time),
    RuleProperty.BTIME: _date_rule(lambda item: item.btime or item.modification_time),
    RuleProperty.TAGS: _set_rule(lambda item: item.tags),
    RuleProperty.FOLDERS: _set_rule(lambda item: item.folders),
    RuleProperty.TYPE: _type_rule,
    RuleProperty.RATING: _rating_rule,
    RuleProperty.SHAPE: _shape_rule,
    RuleProperty.COLOR: _color_rule,
    RuleProperty.CAMERA: _camera_rule,
    RuleProperty.ISO: _number_rule(_exif_number("iso_speed")),
    RuleProperty.APERTURE: _number_rule(_exif_number("aperture")),
    RuleProperty.FOCAL_LENGTH: _number_rule(_exif_number("focal_length")),
    RuleProperty.SHUTTER: _number_rule(_exif_number("shutter", 1)),
    RuleProperty.TIMESTAMP: _date_rule(_exif_timestamp),
    RuleProperty.FONT_ACTIVATED: _font_rule,
}


def _prepare(
    folder: Union[SmartFolder, Mapping[str, Any], None],
    context: Union[FilterContext, Mapping[str, Any], None],
) -> Tuple[Optional[SmartFolder], FilterContext]:
    """Load folder and context; an unloadable folder or context matches nothing."""
    try:
        ctx = ensure_context(context)
    except Exception as exc:
        logger.debug("Unusable filter context: %s", exc)
        return None, FilterContext()
    try:
        return ensure_folder(folder), ctx
    except Exception as exc:
        logger.debug("Unusable smart folder: %s", exc)
        return None, ctx


class SmartFilterEvaluator:
    """Evaluates smart folder definitions against library items."""

    def __init__(self, color_cache_size: int = 256) -> None:
        self.color_cache = ColorCache(color_cache_size)

    def evaluate_rule(self, rule: Rule, item: Item, context: FilterContext) -> bool:
        if rule.kind is None:
            logger.debug("Unknown rule property %r", rule.property)
            return False
        matcher = _MATCHERS.get(rule.kind)
        if matcher is None:
            # every RuleProperty has a matcher; kept for newer schema keys
            return False
        try:
            return bool(matcher(self, rule, item, context))
        except Exception as exc:
            logger.debug("Rule %s/%s failed on item %s: %s", rule.property, rule.method, item.id, exc)
            return False

    def evaluate_condition(self, condition: Condition, item: Item, context: FilterContext) -> bool:
        if not condition.rules:
            return True
        results = (self.evaluate_rule(rule, item, context) for rule in condition.rules)
        if condition.match == "AND":
            matched = all(results)
        else:
            matched = any(results)
        return not matched if condition.negated else matched

    def evaluate(
        self,
        folder: Union[SmartFolder, Mapping[str, Any], None],
        item: Union[Item, Mapping[str, Any]],
        context: Union[FilterContext, Mapping[str, Any], None] = None,
    ) -> bool:
        """Return whether ``item`` belongs to ``folder``.

        Mappings are accepted for all three arguments and converted with the
        model loaders. Never raises; anything unusable yields ``False``.
        """
        smart_folder, ctx = _prepare(folder, context)
        if smart_folder is None or not smart_folder.conditions:
            return False
        try:
            record = ensure_item(item)
        except Exception as exc:
            logger.debug("Skipping item: %s", exc)
            return False
        return all(self.evaluate_condition(c, record, ctx) for c in smart_folder.conditions)

    def filter_items(
        self,
        folder: Union[SmartFolder, Mapping[str, Any]],
        items: Iterable[T],
        context: Union[FilterContext, Mapping[str, Any], None] = None,
        *,
        max_workers: int = 1,
    ) -> List[T]:
        """Return the items matching ``folder``, in input order.

        With ``max_workers > 1`` items are evaluated on a thread pool; the
        folder and context are converted once and shared read-only.
        """
        started = time.perf_counter()
        smart_folder, ctx = _prepare(folder, context)
        records = list(items)
        if smart_folder is None or not smart_folder.conditions:
            flags = [False] * len(records)
        elif max_workers > 1 and len(records) > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
                flags = list(executor.map(lambda rec: self.evaluate(smart_folder, rec, ctx), records))
        else:
            flags = [self.evaluate(smart_folder, rec, ctx) for rec in records]
        matched = [rec for rec, flag in zip(records, flags) if flag]

        duration = time.perf_counter() - started
        folder_id = smart_folder.id if smart_folder is not None else "?"
        logger.info(
            "Smart folder %s matched %d of %d items in %.3fs", folder_id, len(matched), len(records), duration
        )
        sink = sink_from_env()
        if sink is not None:
            sink.write(BatchSample(folder_id, len(records), len(matched), max_workers, duration))
        return matched


def evaluate(
    folder: Union[SmartFolder, Mapping[str, Any], None],
    item: Union[Item, Mapping[str, Any]],
    context: Union[FilterContext, Mapping[str, Any], None] = None,
) -> bool:
    """Evaluate one item with a fresh evaluator."""
    return SmartFilterEvaluator().evaluate(folder, item, context)


def filter_items(
    folder: Union[SmartFolder, Mapping[str, Any]],
    items: Iterable[T],
    context: Union[FilterContext, Mapping[str, Any], None] = None,
    *,
    max_workers: int = 1,
    evaluator: Optional[SmartFilterEvaluator] = None,
) -> List[T]:
    return (evaluator or SmartFilterEvaluator()).filter_items(folder, items, context, max_workers=max_workers)
