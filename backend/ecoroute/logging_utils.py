from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from tempfile import gettempdir
from typing import Any

from pythonjsonlogger import jsonlogger

from .settings import settings

LOGGER_NAME = "ecoroute"
LOG_FILE_NAME = "engine.log.jsonl"


def _parse_level(name: str | int) -> int:
    if isinstance(name, int):
        return name
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def _log_dir_candidates(out_dir: str) -> Iterator[Path]:
    yield Path(out_dir) / "logs"
    yield Path.cwd() / "out" / "logs"
    yield Path(gettempdir()) / "ecoroute" / "logs"


def _writable_log_dir(out_dir: str) -> Path | None:
    for log_dir in _log_dir_candidates(out_dir):
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            probe = log_dir / ".writetest"
            probe.touch(exist_ok=True)
            probe.unlink(missing_ok=True)
        except OSError:
            continue
        return log_dir
    return None


def _formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"asctime": "ts", "levelname": "level"},
    )


def configure_logging(
    *,
    level: str | int | None = None,
    out_dir: str | None = None,
    file_output: bool = True,
) -> logging.Logger:
    """(Re)build the engine logger: JSON to stderr plus ``<out_dir>/logs/engine.log.jsonl``.

    Safe to call repeatedly; each call replaces the handlers of the previous one.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(_parse_level(settings.log_level if level is None else level))
    logger.propagate = False
    formatter = _formatter()

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    log_dir = _writable_log_dir(settings.out_dir if out_dir is None else out_dir) if file_output else None
    if log_dir is not None:
        try:
            file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    logger._configured = True  # type: ignore[attr-defined]
    return logger


def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if getattr(logger, "_configured", False):
        return logger
    return configure_logging()


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    # The event name is both the message and a top-level key.
    get_logger().log(level, event, extra={"event": event, **fields})


def log_warning(event: str, **fields: Any) -> None:
    log_event(event, level=logging.WARNING, **fields)
