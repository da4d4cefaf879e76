"""Logging for the matcher service.

One configuration for the whole process: stdout plus a dated file under
``logs/`` (``TALENTNEST_LOG_DIR`` to move it, ``LOG_TO_FILE=false`` to skip
it). Uvicorn's loggers are routed through the same handlers so request logs
and pipeline logs interleave in one format.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"

# HTTP client libraries log every request at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3", "pypdf")
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_configured = False


def _log_dir() -> Path:
    return Path(os.environ.get("TALENTNEST_LOG_DIR") or Path(__file__).resolve().parent.parent / "logs")


def _file_logging_enabled() -> bool:
    return os.environ.get("LOG_TO_FILE", "true").strip().lower() in ("1", "true", "yes")


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, configuring the process on first use."""
    global _configured
    if not _configured:
        _configure()
        _configured = True
    return logging.getLogger(name)


def _configure() -> None:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FMT)

    root = logging.getLogger()
    root.setLevel(level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    for name in _SERVER_LOGGERS:
        server_log = logging.getLogger(name)
        server_log.handlers.clear()
        server_log.propagate = True

    if root.handlers:
        return

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if not _file_logging_enabled():
        return
    try:
        log_dir = _log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / f"matcher_{datetime.now():%Y-%m-%d}.log", encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        root.addHandler(fh)
    except OSError:
        # read-only filesystem; stdout is enough
        pass
