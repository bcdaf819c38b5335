from __future__ import annotations

import logging
import sys
import threading
from typing import List, Optional, TextIO

# Constants for formatting
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[32m",   # Green
    logging.WARNING: "\033[33m", # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m" # Magenta
}
RESET_COLOR = "\033[0m"

# Named log levels for configuration
LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL
}


class ConsoleLogHandler(logging.Handler):
    """Console log handler with coloured output and a bounded message buffer."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        use_colors: bool = True,
        buffer_size: int = 1000,
        formatter: Optional[logging.Formatter] = None
    ):
        """Initialize the console log handler.

        Args:
            stream: The stream to write logs to (stderr by default)
            use_colors: Whether to use colored output
            buffer_size: Maximum number of log messages to buffer
            formatter: Log formatter to use
        """
        super().__init__()
        self.stream = stream if stream is not None else sys.stderr
        self.use_colors = use_colors
        self.buffer_size = buffer_size

        if formatter:
            self.setFormatter(formatter)
        else:
            self.setFormatter(logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            ))

        self._buffer: List[str] = []
        self._buffer_lock = threading.RLock()

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record."""
        try:
            msg = self.format(record)

            if self.use_colors and record.levelno in LEVEL_COLORS:
                console_msg = f"{LEVEL_COLORS[record.levelno]}{msg}{RESET_COLOR}"
            else:
                console_msg = msg

            self.stream.write(console_msg + "\n")
            self.stream.flush()

            with self._buffer_lock:
                self._buffer.append(msg)
                if len(self._buffer) > self.buffer_size:
                    self._buffer = self._buffer[-self.buffer_size:]
        except Exception:
            self.handleError(record)

    def get_buffer(self) -> List[str]:
        """Get a copy of the current log buffer."""
        with self._buffer_lock:
            return list(self._buffer)


_handler_lock = threading.RLock()
_handler: Optional[ConsoleLogHandler] = None


def setup_logging(level: str = "info", stream: Optional[TextIO] = None) -> ConsoleLogHandler:
    """Install the console handler on the root logger.

    Calling it again only changes the level; the handler is installed once.

    Args:
        level: "debug", "info", "warning", "error" or "critical"
        stream: Where to write; colours are only used for terminals

    Returns:
        The installed handler
    """
    global _handler
    root = logging.getLogger()
    with _handler_lock:
        if _handler is None:
            target = stream if stream is not None else sys.stderr
            use_colors = bool(getattr(target, "isatty", lambda: False)())
            _handler = ConsoleLogHandler(stream=target, use_colors=use_colors)
            root.addHandler(_handler)
        root.setLevel(LOG_LEVELS.get(level.lower(), logging.INFO))
        return _handler


def teardown_logging() -> None:
    """Remove the console handler installed by :func:`setup_logging`."""
    global _handler
    with _handler_lock:
        if _handler is not None:
            logging.getLogger().removeHandler(_handler)
            _handler = None
