"""Logging setup shared by the ingestion CLI and library entry points.

Library modules only ever call ``logging.getLogger("coachbridge.<area>")``;
handlers are attached once by :func:`setup_logging` from the CLI. If the file
handler cannot be created the console handler is kept.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

LOGGER_NAME = "coachbridge"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(config: Optional[Dict] = None, output_dir: Optional[Path] = None) -> logging.Logger:
    """Configure the project logger with a console handler and a log file.

    ``config`` is the ``logging`` section as a plain dict (``level``,
    ``file_name``, ``logs_dir``). ``output_dir`` overrides ``logs_dir``.
    """

    config = config or {}
    base = Path(output_dir) if output_dir is not None else Path(config.get("logs_dir", "logs"))
    file_name = config.get("file_name", "ingestion_log.txt")
    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    # Reset handlers so repeated CLI runs in one process do not duplicate output
    logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    log_path = base.expanduser().resolve() / file_name
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)
    except OSError as exc:
        logger.warning("[WARNING] Failed to attach file handler %s (%s)", log_path, exc)
    else:
        logger.debug("Logging initialised. Logs will be written to %s", log_path)
    return logger


def get_logger(area: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{area}")


def log_system_event(logger: logging.Logger, message: str) -> None:
    logger.info("[SYSTEM] %s", message)


def log_warning(logger: logging.Logger, message: str) -> None:
    logger.warning("[WARNING] %s", message)
