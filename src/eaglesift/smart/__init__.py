"""Smart folder rule engine.

Leaf matchers live in ``matchers`` and ``color``; ``evaluator`` routes each
rule to its matcher and combines the results per condition and per folder.
"""
from __future__ import annotations

from .evaluator import SmartFilterEvaluator, evaluate, filter_items  # noqa: F401
from .folders import (  # noqa: F401
    build_folder_mappings,
    find_smart_folder,
    load_smart_folders,
    parse_library_info,
    save_smart_folders,
)
from .model import Condition, FilterContext, Item, Rule, SmartFolder  # noqa: F401

__all__ = [
    "Condition",
    "FilterContext",
    "Item",
    "Rule",
    "SmartFilterEvaluator",
    "SmartFolder",
    "build_folder_mappings",
    "evaluate",
    "filter_items",
    "find_smart_folder",
    "load_smart_folders",
    "parse_library_info",
    "save_smart_folders",
]
