from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import data_dir

APP_NAME = "qnote"


def log_path() -> Path:
    return data_dir() / "logs" / "qnote.log"


def setup_logging(path: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Attach a rotating file handler to the `qnote` logger.

    There is no console handler: the TUI owns the terminal and CLI output
    goes through rich. Calling this twice keeps the first handler.
    """
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    path = path or log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(path, maxBytes=1024 * 1024, backupCount=3, encoding="utf-8")
    except OSError:
        # read-only home: run without a log file rather than refuse to start
        logger.addHandler(logging.NullHandler())
        return logger

    fh.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
    logger.addHandler(fh)
    logger.debug("logging initialised file=%s", path)
    return logger
