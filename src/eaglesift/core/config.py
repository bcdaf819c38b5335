from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from ..errors import EagleSiftError
from ..playlist import DEFAULT_PLAYABLE_EXTENSIONS
from .console_logger import LOG_LEVELS

logger = logging.getLogger(__name__)

SMART_FILTER_SECTION = "smart_filter"


class ConfigStore:
    """JSON settings file split into named sections (names are case-insensitive)."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()
        self._data: Dict[str, Dict[str, Any]] = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, Dict[str, Any]]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self._path, exc)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(key).lower(): value for key, value in raw.items() if isinstance(value, dict)}

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(self._data, handle, indent=2, sort_keys=True)
        tmp.replace(self._path)

    def section(self, name: str) -> Dict[str, Any]:
        """Copy of one section; empty when absent."""
        with self._lock:
            return dict(self._data.get(name.lower(), {}))

    def set_value(self, name: str, key: str, value: Any) -> None:
        with self._lock:
            self._data.setdefault(name.lower(), {})[key] = value
            self._write()

    def unset(self, name: str, key: str) -> bool:
        """Remove ``key``; returns False when it was not set."""
        with self._lock:
            bucket = self._data.get(name.lower())
            if not bucket or key not in bucket:
                return False
            del bucket[key]
            if not bucket:
                del self._data[name.lower()]
            self._write()
            return True


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _extensions(value: Any) -> Optional[Tuple[str, ...]]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)) or not all(isinstance(e, str) for e in value):
        return None
    cleaned = tuple(e.strip().lower().lstrip(".") for e in value if e.strip())
    return cleaned or None


def _parse_positive(raw: str) -> int:
    number = _positive_int(raw, 0)
    if number <= 0:
        raise EagleSiftError(f"Expected a positive integer, got {raw!r}")
    return number


def _parse_extensions(raw: str) -> list:
    parsed = _extensions(raw)
    if parsed is None:
        raise EagleSiftError(f"Expected comma separated extensions, got {raw!r}")
    return list(parsed)


def _parse_level(raw: str) -> str:
    level = raw.strip().lower()
    if level not in LOG_LEVELS:
        raise EagleSiftError(f"Unknown log level {raw!r} (choose from {', '.join(sorted(LOG_LEVELS))})")
    return level


# command line text -> stored JSON value
_PARSERS: Dict[str, Callable[[str], Any]] = {
    "max_workers": _parse_positive,
    "color_cache_size": _parse_positive,
    "playable_extensions": _parse_extensions,
    "log_level": _parse_level,
}


@dataclass(frozen=True)
class FilterSettings:
    """Tunables for batch filtering, read from the ``smart_filter`` section."""

    max_workers: int = 1
    color_cache_size: int = 256
    playable_extensions: Tuple[str, ...] = field(default=DEFAULT_PLAYABLE_EXTENSIONS)
    log_level: str = "info"

    @classmethod
    def from_mapping(cls, values: Optional[Dict[str, Any]]) -> "FilterSettings":
        values = values or {}
        defaults = cls()
        level = values.get("log_level")
        if isinstance(level, str) and level.lower() in LOG_LEVELS:
            level = level.lower()
        else:
            level = defaults.log_level
        return cls(
            max_workers=_positive_int(values.get("max_workers"), defaults.max_workers),
            color_cache_size=_positive_int(values.get("color_cache_size"), defaults.color_cache_size),
            playable_extensions=_extensions(values.get("playable_extensions")) or defaults.playable_extensions,
            log_level=level,
        )

    @classmethod
    def from_store(cls, store: ConfigStore) -> "FilterSettings":
        return cls.from_mapping(store.section(SMART_FILTER_SECTION))

    @staticmethod
    def keys() -> Tuple[str, ...]:
        return tuple(_PARSERS)

    @staticmethod
    def parse_value(key: str, raw: str) -> Any:
        """Validate a command line value for ``key``; raises EagleSiftError."""
        parser = _PARSERS.get(key)
        if parser is None:
            raise EagleSiftError(f"Unknown setting {key!r}")
        return parser(raw)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "max_workers": self.max_workers,
            "color_cache_size": self.color_cache_size,
            "playable_extensions": list(self.playable_extensions),
            "log_level": self.log_level,
        }
