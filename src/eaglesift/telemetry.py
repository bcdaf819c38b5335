"""Opt-in log of batch filter runs.

When ``EAGLESIFT_TELEMETRY`` names a file, every ``filter_items`` call appends
one JSON line describing the batch (folder, sizes, worker count, duration).
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

__all__ = ["ENV_VAR", "BatchSample", "TelemetrySink", "sink_from_env"]

ENV_VAR = "EAGLESIFT_TELEMETRY"


@dataclass(frozen=True)
class BatchSample:
    folder_id: str
    items: int
    matched: int
    workers: int
    duration: float
    ts: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TelemetrySink:
    """Appends batch samples to a JSON lines file; writers share one lock per path."""

    _locks: Dict[Path, threading.Lock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, target: Path) -> None:
        self.target = target
        with self._locks_guard:
            self._lock = self._locks.setdefault(target, threading.Lock())

    def write(self, sample: BatchSample) -> bool:
        line = json.dumps(sample.to_dict(), ensure_ascii=False)
        try:
            with self._lock:
                self.target.parent.mkdir(parents=True, exist_ok=True)
                with self.target.open("a", encoding="utf-8", newline="\n") as handle:
                    handle.write(line + "\n")
        except OSError as exc:
            # filtering must not fail because the sample could not be stored
            logger.debug("Dropped telemetry sample for %s: %s", sample.folder_id, exc)
            return False
        return True


def sink_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[TelemetrySink]:
    env = os.environ if environ is None else environ
    path = env.get(ENV_VAR)
    if not path:
        return None
    return TelemetrySink(Path(path).expanduser())
