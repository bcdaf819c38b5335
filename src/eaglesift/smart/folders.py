"""Smart folder discovery and persistence.

The library manager reports its folder tree and smart folder definitions in a
single library-info payload. These helpers turn that payload into
``SmartFolder`` objects plus the id -> folder mapping used by ``folderName``
rules, and store definitions as JSON.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from ..errors import SmartFolderNotFound
from .model import SmartFolder

logger = logging.getLogger(__name__)

__all__ = [
    "SmartFolderNotFound",
    "build_folder_mappings",
    "iter_smart_folders",
    "find_smart_folder",
    "parse_library_info",
    "load_smart_folders",
    "save_smart_folders",
]


def build_folder_mappings(folders: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
    """Flatten a nested folder tree into ``{id: {"name": ..., "parent": ...}}``."""
    mappings: Dict[str, Dict[str, Any]] = {}
    stack: List[Tuple[Any, Optional[str]]] = [(node, None) for node in reversed(list(folders or []))]
    while stack:
        node, parent = stack.pop()
        if not isinstance(node, Mapping):
            continue
        folder_id = node.get("id")
        if folder_id is None:
            continue
        folder_id = str(folder_id)
        mappings[folder_id] = {"name": str(node.get("name") or ""), "parent": parent}
        children = node.get("children")
        if isinstance(children, list):
            stack.extend((child, folder_id) for child in reversed(children))
    return mappings


def iter_smart_folders(folders: Sequence[SmartFolder]) -> Iterator[SmartFolder]:
    """Depth-first walk over smart folders and their children."""
    for folder in folders:
        yield folder
        if folder.children:
            yield from iter_smart_folders(folder.children)


def find_smart_folder(folders: Sequence[SmartFolder], folder_id: str) -> SmartFolder:
    for folder in iter_smart_folders(folders):
        if folder.id == folder_id:
            return folder
    raise SmartFolderNotFound(folder_id)


def parse_library_info(payload: Mapping[str, Any]) -> Tuple[List[SmartFolder], Dict[str, Dict[str, Any]]]:
    """Return ``(smart_folders, folder_mappings)`` from a library-info payload.

    Accepts either the full response (``{"status": ..., "data": {...}}``) or
    the bare ``data`` object.
    """
    data = payload.get("data") if isinstance(payload.get("data"), Mapping) else payload
    raw_smart = data.get("smartFolders")
    smart_folders: List[SmartFolder] = []
    if isinstance(raw_smart, list):
        smart_folders = [SmartFolder.from_dict(sf) for sf in raw_smart if isinstance(sf, Mapping)]
    raw_folders = data.get("folders")
    mappings = build_folder_mappings(raw_folders) if isinstance(raw_folders, list) else {}
    logger.debug("Library info: %d smart folders, %d folders", len(smart_folders), len(mappings))
    return smart_folders, mappings


def load_smart_folders(path: Path) -> List[SmartFolder]:
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Failed to read smart folders from %s: %s", path, exc)
        return []
    if not isinstance(raw, list):
        return []
    return [SmartFolder.from_dict(obj) for obj in raw if isinstance(obj, dict)]


def save_smart_folders(path: Path, folders: Sequence[SmartFolder]) -> bool:
    """Persist folder definitions to JSON. Returns True on success."""
    try:
        payload = [sf.to_dict() for sf in folders]
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        tmp.replace(path)
        return True
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Failed to save smart folders to %s: %s", path, exc)
        return False
