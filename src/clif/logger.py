"""Logger settings and stdlib logging setup for clif.

The toolkit logs through the standard ``logging`` package. ``setup_logging``
applies a ``LoggerConfiguration``: the level, optional ANSI colours, and a
bounded in-memory history of formatted lines that a console UI can replay.
"""

from __future__ import annotations

import collections
import logging
import threading
from dataclasses import dataclass
from typing import ClassVar

from .core.errors import LoggerUnmarshalError
from .core.fields import setting
from .core.section import SectionConfiguration

HISTORY_LIMIT = 1000

# ANSI colours per level, matching the console palette
LEVEL_COLORS = {
    logging.DEBUG: "\x1b[37m",  # white
    logging.INFO: "\x1b[97m",  # bright white
    logging.WARNING: "\x1b[93m",  # bright yellow
    logging.ERROR: "\x1b[91m",  # bright red
    logging.CRITICAL: "\x1b[91m",
}
RESET = "\x1b[0m"
CLEAR_TO_END = "\x1b[K"

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class LoggerConfiguration(SectionConfiguration):
    """Settings of the ``logger`` section.

    Attributes:
        level: Level name ("debug", "info", "warning", "error")
        colorized: Colour lines by level
    """

    section: ClassVar[str] = "logger"
    unmarshal_error: ClassVar[type] = LoggerUnmarshalError

    level: str = setting("info", env="${APPNAME}_LOGGER_LEVEL", monitored=True)
    colorized: bool = setting(False, env="${APPNAME}_LOGGER_COLORIZED")

    @property
    def numeric_level(self) -> int:
        value = logging.getLevelName(self.level.upper())
        return value if isinstance(value, int) else logging.INFO


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{text}{RESET}{CLEAR_TO_END}"


class HistoryHandler(logging.Handler):
    """Keeps the last ``limit`` formatted lines."""

    def __init__(self, limit: int = HISTORY_LIMIT):
        super().__init__()
        self._messages: collections.deque[str] = collections.deque(maxlen=limit)
        self._history_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._history_lock:
            self._messages.append(line)

    @property
    def messages(self) -> list[str]:
        with self._history_lock:
            return list(self._messages)


def setup_logging(
    config: LoggerConfiguration | None = None,
    name: str = "clif",
    stream=None,
) -> HistoryHandler:
    """Configure the ``name`` logger from ``config``.

    Replaces handlers previously installed by this function, so it can be
    called again when the level changes at runtime.

    Returns:
        The history handler attached to the logger
    """
    config = config or LoggerConfiguration()
    formatter: logging.Formatter = (
        ColorFormatter(_FORMAT) if config.colorized else logging.Formatter(_FORMAT)
    )

    log = logging.getLogger(name)
    log.setLevel(config.numeric_level)
    for handler in list(log.handlers):
        if getattr(handler, "_clif_handler", False):
            log.removeHandler(handler)

    console = logging.StreamHandler(stream)
    console.setFormatter(formatter)
    console._clif_handler = True
    log.addHandler(console)

    history = HistoryHandler()
    history.setFormatter(formatter)
    history._clif_handler = True
    log.addHandler(history)
    return history


def apply_level(config: LoggerConfiguration, name: str = "clif") -> None:
    """Apply ``config.level`` without touching handlers."""
    logging.getLogger(name).setLevel(config.numeric_level)
