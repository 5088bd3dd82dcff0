"""Logger configuration: a coloured console layout and JSON output."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from typing import Any, TextIO

from termcolor import colored

ENV_LOCAL = "local"
ENV_DEV = "dev"
ENV_PROD = "prod"

LOGGER_NAME = "filmlib"

_LEVEL_STYLES = {
    logging.DEBUG: ("DEBUG", "magenta"),
    logging.INFO: ("INFO", "blue"),
    logging.WARNING: ("WARN", "yellow"),
    logging.ERROR: ("ERROR", "red"),
}

_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


def _level_name(record: logging.LogRecord) -> str:
    style = _LEVEL_STYLES.get(record.levelno)
    if style is not None:
        return style[0]
    if record.levelno > logging.ERROR:
        return "ERROR"
    return record.levelname


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _RESERVED}


class PrettyFormatter(logging.Formatter):
    """Human-readable layout: time, level, message and the extra fields as JSON."""

    def __init__(self, use_color: bool | None = None) -> None:
        super().__init__()
        self.use_color = use_color

    def _paint(self, text: str, color: str | None) -> str:
        if color is None or self.use_color is False:
            return text
        if self.use_color:
            return colored(text, color, force_color=True)
        return colored(text, color)

    def format(self, record: logging.LogRecord) -> str:
        moment = datetime.fromtimestamp(record.created)
        # The middle field repeats the seconds; the established layout is kept.
        time_str = (
            f"[{moment.hour:02d}:{moment.second:02d}:{moment.second:02d}"
            f".{int(record.msecs):03d}]"
        )
        style = _LEVEL_STYLES.get(record.levelno)
        level = self._paint(_level_name(record) + ":", style[1] if style else None)

        fields = _record_fields(record)
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)
        body = (
            json.dumps(fields, indent=2, sort_keys=True, ensure_ascii=False, default=str)
            if fields
            else ""
        )
        return " ".join(
            (time_str, level, self._paint(record.getMessage(), "cyan"), self._paint(body, "white"))
        )


class _JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        moment = datetime.fromtimestamp(record.created).astimezone()
        entry: dict[str, Any] = {
            "time": moment.isoformat(timespec="milliseconds"),
            "level": _level_name(record),
            "msg": record.getMessage(),
        }
        entry.update(_record_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logger(env: str, stream: TextIO | None = None) -> logging.Logger:
    """Configure the application logger for the given environment."""
    if env == ENV_LOCAL:
        formatter: logging.Formatter = PrettyFormatter()
        level = logging.DEBUG
    elif env == ENV_DEV:
        formatter, level = _JSONFormatter(), logging.DEBUG
    elif env == ENV_PROD:
        formatter, level = _JSONFormatter(), logging.INFO
    else:
        raise ValueError("not supported env")

    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def error_fields(err: BaseException) -> dict[str, str]:
    """Extra fields describing an error, for use as ``extra=`` in a log call."""
    return {"error": str(err)}