"""Playlist assembly for smart folder results.

Helpers accept either ``Item`` objects or raw item mappings and return the
same objects they were given.
"""
from __future__ import annotations

import re
from typing import Any, Iterable, List, Sequence, Tuple, TypeVar

T = TypeVar("T")

__all__ = ["DEFAULT_PLAYABLE_EXTENSIONS", "filter_playable", "folder_key", "natural_key", "order_by_folder_groups"]

DEFAULT_PLAYABLE_EXTENSIONS: Tuple[str, ...] = (
    "mp4", "webm", "mov", "mkv", "m4v",
    "mp3", "wav", "ogg", "flac", "m4a", "aac",
    "jpg", "jpeg", "png", "gif", "webp", "bmp", "avif",
)

_DIGITS = re.compile(r"(\d+)")


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def filter_playable(items: Iterable[T], extensions: Sequence[str] = DEFAULT_PLAYABLE_EXTENSIONS) -> List[T]:
    allowed = {ext.lower().lstrip(".") for ext in extensions}
    result: List[T] = []
    for item in items:
        ext = _field(item, "ext")
        if isinstance(ext, str) and ext.lower() in allowed:
            result.append(item)
    return result


def folder_key(item: Any) -> str:
    """Stable key for the set of folders an item lives in."""
    folders = _field(item, "folders")
    if not isinstance(folders, (list, tuple, set, frozenset)):
        return ""
    return ",".join(sorted(str(f) for f in folders))


def natural_key(name: Any) -> Tuple[Tuple[int, Any], ...]:
    """Case-insensitive sort key that orders embedded numbers by value."""
    text = name if isinstance(name, str) else ""
    parts = _DIGITS.split(text.casefold())
    return tuple((0, int(part)) if part.isdecimal() else (1, part) for part in parts if part)


def order_by_folder_groups(items: Iterable[T]) -> List[T]:
    """Keep runs of items sharing a folder set together, name-sorted within each run.

    Runs are detected on consecutive items only; the relative order of the
    runs themselves is preserved.
    """
    ordered: List[T] = []
    group: List[T] = []
    previous = None
    for item in items:
        key = folder_key(item)
        if previous is not None and key != previous:
            group.sort(key=lambda entry: natural_key(_field(entry, "name")))
            ordered.extend(group)
            group = []
        group.append(item)
        previous = key
    if group:
        group.sort(key=lambda entry: natural_key(_field(entry, "name")))
        ordered.extend(group)
    return ordered
