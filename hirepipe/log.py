"""Logging setup: console plus daily files, and a separate audit trail.

``get_logger(__name__)`` is what every module uses. ``activity_logger()``
returns the ``hirepipe.activity`` logger that receives one line per audited
change to an application; its file handler writes ``activity_YYYY-MM-DD.log``
next to the general ``pipeline_YYYY-MM-DD.log``.

Environment:
    LOG_LEVEL          console level (default INFO)
    PIPELINE_LOG_DIR   directory for log files (default ``<repo>/logs``)
    PIPELINE_LOG_FILE  set to false/0/no to keep everything on the console
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

ACTIVITY_LOGGER = "hirepipe.activity"

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_ACTIVITY_FORMAT = "%(asctime)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_configured = False
_activity_configured = False


def _log_dir() -> Path:
    return Path(os.environ.get("PIPELINE_LOG_DIR") or Path(__file__).resolve().parent.parent / "logs")


def _files_enabled() -> bool:
    return os.environ.get("PIPELINE_LOG_FILE", "true").lower() not in ("0", "false", "no")


def _file_handler(prefix: str, fmt: str) -> logging.Handler | None:
    """Daily file handler under the log dir, or None when files are off or unwritable."""
    if not _files_enabled():
        return None
    log_dir = _log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / f"{prefix}_{datetime.now():%Y-%m-%d}.log", encoding="utf-8")
    except OSError as exc:
        print(f"hirepipe: file logging disabled ({exc})", file=sys.stderr)
        return None
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FMT))
    return fh


def get_logger(name: str) -> logging.Logger:
    """Return a named logger; configures root handlers on first call."""
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def activity_logger() -> logging.Logger:
    """The audit-trail logger. Lines still reach the console through the root logger."""
    global _activity_configured
    logger = get_logger(ACTIVITY_LOGGER)
    if not _activity_configured:
        handler = _file_handler("activity", _ACTIVITY_FORMAT)
        if handler is not None:
            logger.addHandler(handler)
        _activity_configured = True
    return logger


def _configure() -> None:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    # Streamlit reruns and test runners may have set handlers up already
    if root.handlers:
        return

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FMT))
    root.addHandler(console)

    handler = _file_handler("pipeline", _FORMAT)
    if handler is not None:
        root.addHandler(handler)
