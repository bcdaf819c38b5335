"""Smart-folder rule engine for Eagle media libraries."""
from __future__ import annotations

from .smart import (
    Condition,
    FilterContext,
    Item,
    Rule,
    SmartFilterEvaluator,
    SmartFolder,
    evaluate,
    filter_items,
)

__version__ = "0.4.0"

__all__ = [
    "Condition",
    "FilterContext",
    "Item",
    "Rule",
    "SmartFilterEvaluator",
    "SmartFolder",
    "evaluate",
    "filter_items",
]
