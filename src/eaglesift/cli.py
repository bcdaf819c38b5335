"""Command line front end for smart folder evaluation.

Works on JSON exports from the library manager, so it can be run offline:

    eaglesift folders --library library-info.json
    eaglesift filter --library library-info.json --items items.json --folder KBC1F3Y0P3Y7E
    eaglesift filter ... --workers 4 --playable --ordered --json
    eaglesift config set max_workers 4
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .core.config import SMART_FILTER_SECTION, ConfigStore, FilterSettings
from .core.console_logger import LOG_LEVELS, setup_logging
from .errors import EagleSiftError, LibraryDataError
from .playlist import filter_playable, order_by_folder_groups
from .smart.evaluator import SmartFilterEvaluator
from .smart.folders import find_smart_folder, iter_smart_folders, parse_library_info
from .smart.model import FilterContext

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".eaglesift" / "config.json"


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise LibraryDataError(f"Cannot read {path}: {exc}") from exc


def _read_library(path: Path):
    payload = _read_json(path)
    if not isinstance(payload, dict):
        raise LibraryDataError(f"{path} is not a library info object")
    return parse_library_info(payload)


def _load_items(path: Path) -> List[Dict[str, Any]]:
    raw = _read_json(path)
    # accept either a bare list or an API response envelope
    if isinstance(raw, dict):
        raw = raw.get("data")
    if not isinstance(raw, list):
        raise LibraryDataError(f"{path} does not contain a list of items")
    return [entry for entry in raw if isinstance(entry, dict)]


def _load_fonts(path: Optional[Path]) -> Dict[str, bool]:
    if path is None:
        return {}
    raw = _read_json(path)
    if isinstance(raw, list):
        return {str(key): True for key in raw}
    if isinstance(raw, dict):
        return {str(key): bool(value) for key, value in raw.items()}
    raise LibraryDataError(f"{path} does not contain installed fonts")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eaglesift", description="Evaluate smart folders against a library export")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Settings file")
    parser.add_argument("--log-level", choices=sorted(LOG_LEVELS), default=None, help="Override configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    folders = sub.add_parser("folders", help="List smart folders defined in a library")
    folders.add_argument("--library", type=Path, required=True, help="Library info JSON (smartFolders + folders)")

    flt = sub.add_parser("filter", help="Print items that belong to a smart folder")
    flt.add_argument("--library", type=Path, required=True, help="Library info JSON (smartFolders + folders)")
    flt.add_argument("--items", type=Path, required=True, help="Item list JSON")
    flt.add_argument("--folder", required=True, help="Smart folder id")
    flt.add_argument("--fonts", type=Path, default=None, help="Installed fonts JSON (list of keys or key -> bool)")
    flt.add_argument("--workers", type=int, default=None, help="Worker threads (defaults to config)")
    flt.add_argument("--playable", action="store_true", help="Keep only playable extensions")
    flt.add_argument("--ordered", action="store_true", help="Group by folder set and sort names naturally")
    flt.add_argument("--json", action="store_true", help="Emit matching items as a JSON array")

    cfg = sub.add_parser("config", help="Show or change smart filter settings")
    cfg_sub = cfg.add_subparsers(dest="action", required=True)
    cfg_sub.add_parser("show", help="Print the effective settings as JSON")
    cfg_set = cfg_sub.add_parser("set", help="Store a setting")
    cfg_set.add_argument("key", choices=FilterSettings.keys())
    cfg_set.add_argument("value", help="Extensions are comma separated")
    cfg_unset = cfg_sub.add_parser("unset", help="Revert a setting to its default")
    cfg_unset.add_argument("key", choices=FilterSettings.keys())
    return parser


def _run_folders(args: argparse.Namespace) -> int:
    smart_folders, _ = _read_library(args.library)
    for folder in iter_smart_folders(smart_folders):
        print(f"{folder.id}\t{folder.name}\t{len(folder.conditions)} condition(s)")
    return 0


def _run_config(args: argparse.Namespace, store: ConfigStore) -> int:
    if args.action == "set":
        store.set_value(SMART_FILTER_SECTION, args.key, FilterSettings.parse_value(args.key, args.value))
        logger.info("Set %s in %s", args.key, store.path)
    elif args.action == "unset":
        if store.unset(SMART_FILTER_SECTION, args.key):
            logger.info("Removed %s from %s", args.key, store.path)
    json.dump(FilterSettings.from_store(store).as_dict(), sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")
    return 0


def _run_filter(args: argparse.Namespace, settings: FilterSettings) -> int:
    smart_folders, mappings = _read_library(args.library)
    folder = find_smart_folder(smart_folders, args.folder)
    items = _load_items(args.items)
    context = FilterContext(folder_mappings=mappings, installed_fonts=_load_fonts(args.fonts))

    evaluator = SmartFilterEvaluator(color_cache_size=settings.color_cache_size)
    workers = args.workers if args.workers and args.workers > 0 else settings.max_workers
    matched = evaluator.filter_items(folder, items, context, max_workers=workers)
    if args.playable:
        matched = filter_playable(matched, settings.playable_extensions)
    if args.ordered:
        matched = order_by_folder_groups(matched)

    if args.json:
        json.dump(matched, sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    else:
        for item in matched:
            print(f"{item.get('id', '')}\t{item.get('name', '')}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    store = ConfigStore(args.config)
    settings = FilterSettings.from_store(store)
    setup_logging(args.log_level or settings.log_level)

    try:
        if args.command == "folders":
            return _run_folders(args)
        if args.command == "config":
            return _run_config(args, store)
        return _run_filter(args, settings)
    except (EagleSiftError, OSError) as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
