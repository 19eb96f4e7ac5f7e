# arexx_tap/app/logging_setup.py
from __future__ import annotations

import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import LogConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class _UtcFormatter(logging.Formatter):
    converter = time.gmtime

    def formatTime(self, record, datefmt=None):
        return time.strftime("%Y-%m-%dT%H:%M:%S+00:00", self.converter(record.created))


def log_file_path(cfg: LogConfig) -> Path:
    return Path(cfg.directory) / f"{cfg.prefix}.log"


def configure_logging(cfg: LogConfig, *, console_level: int = logging.WARNING) -> Optional[Path]:
    """
    Attach a console handler and, if enabled, a daily-rotating file handler
    to the root logger (idempotent). Returns the log file path, if any.
    """
    root = logging.getLogger()
    level = logging.getLevelName(cfg.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if not any(getattr(h, "_arexx_console", False) for h in root.handlers):
        ch = logging.StreamHandler()
        ch.setLevel(console_level)
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        ch._arexx_console = True  # type: ignore[attr-defined]
        root.addHandler(ch)

    root.setLevel(min(level, console_level))

    if not cfg.enabled:
        return None

    path = log_file_path(cfg)
    path.parent.mkdir(parents=True, exist_ok=True)
    target = os.path.abspath(path)

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return path

    fh = TimedRotatingFileHandler(path, when="midnight", utc=True, encoding="utf-8", delay=True)
    fh.setLevel(level)
    fh.setFormatter(_UtcFormatter(LOG_FORMAT))
    root.addHandler(fh)
    return path
