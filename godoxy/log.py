"""Console logging with aligned multi-line messages."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

ROOT_LOGGER_NAME = "godoxy"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

TIME_FORMAT_DEFAULT = "%m-%d %H:%M"
TIME_FORMAT_TRACE = "%M:%S"

_LEVEL_ABBREVIATIONS = {
    TRACE: "TRC",
    logging.DEBUG: "DBG",
    logging.INFO: "INF",
    logging.WARNING: "WRN",
    logging.ERROR: "ERR",
    logging.CRITICAL: "FTL",
}


def _module_of(record: logging.LogRecord) -> str:
    prefix = ROOT_LOGGER_NAME + "."
    if record.name.startswith(prefix):
        return record.name[len(prefix):]
    return ""


class MultilineFormatter(logging.Formatter):
    """Formats ``time LVL message``, indenting continuation lines under the message."""

    def __init__(self, time_format: str = TIME_FORMAT_DEFAULT, show_module: bool = False) -> None:
        super().__init__()
        self.time_format = time_format
        self.show_module = show_module

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime(self.time_format)
        level = _LEVEL_ABBREVIATIONS.get(record.levelno, record.levelname[:3].upper())
        first, *rest = record.getMessage().split("\n")
        prefix = " " * (len(timestamp) + len(level) + 2)
        text = "\n".join([f"{timestamp} {level} {first}", *(prefix + line for line in rest)])
        if self.show_module:
            module = _module_of(record)
            if module:
                text += f" module={module}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def _replace_handlers(root: logging.Logger, handler: logging.Handler) -> None:
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.propagate = False


def configure(debug: bool = False, trace: bool = False) -> logging.Logger:
    """Set up the root application logger to write to standard error."""
    if trace:
        time_format, level = TIME_FORMAT_TRACE, TRACE
    elif debug:
        time_format, level = TIME_FORMAT_DEFAULT, logging.DEBUG
    else:
        time_format, level = TIME_FORMAT_DEFAULT, logging.INFO

    root = logging.getLogger(ROOT_LOGGER_NAME)
    handler = logging.StreamHandler()
    handler.setFormatter(MultilineFormatter(time_format, show_module=debug or trace))
    _replace_handlers(root, handler)
    root.setLevel(level)
    return root


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for a module; its name is shown as the module field."""
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def discard() -> logging.Logger:
    """Silence all application logging: drop handlers and disable every level."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    _replace_handlers(root, logging.NullHandler())
    root.setLevel(logging.CRITICAL + 1)
    return root