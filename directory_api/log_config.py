"""Application logging setup.

Log files live in `LOG_DIR` (relative to CWD unless absolute) and rotate
daily through TimedRotatingFileHandler.

- Rotation: midnight, UTC.
- Retention: `retention_days` files (default 30).
- Level: `level` (default INFO), applied to file and console alike.
"""
from __future__ import annotations

import glob
import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler

_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LOG_NAME = "directory-api.log"

# Handlers we installed, removed again on reconfiguration.
_file_handler: logging.Handler | None = None
_console_handler: logging.Handler | None = None


def setup_logging(level: str = "INFO", log_dir: str = "data/logs", retention_days: int = 30) -> None:
    """Configure the root logger: rotating file handler plus console handler."""
    global _file_handler, _console_handler

    level_str = (level or "INFO").strip().upper()
    if level_str not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level_str = "INFO"
    log_level = getattr(logging, level_str, logging.INFO)
    retention_days = max(1, min(365, int(retention_days or 30)))

    root = logging.getLogger()
    for h in (_file_handler, _console_handler):
        if h is not None and h in root.handlers:
            root.removeHandler(h)
            h.close()

    log_dir = os.path.abspath(log_dir or "data/logs")
    os.makedirs(log_dir, exist_ok=True)
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)

    fh = TimedRotatingFileHandler(
        os.path.join(log_dir, _LOG_NAME),
        when="midnight",
        interval=1,
        backupCount=retention_days,
        encoding="utf-8",
        utc=True,
    )
    fh.suffix = "%Y-%m-%d"
    fh.setLevel(log_level)
    fh.setFormatter(formatter)
    _file_handler = fh

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    _console_handler = ch

    root.setLevel(log_level)
    root.addHandler(fh)
    root.addHandler(ch)

    _cleanup_old_logs(log_dir, retention_days)

    # Noisy loggers.
    logging.getLogger("uvicorn.access").setLevel(max(log_level, logging.WARNING))
    logging.getLogger("ldap3").setLevel(max(log_level, logging.WARNING))

    logging.getLogger("directory_api").info(
        "Logging configured: level=%s, dir=%s, retention=%d days", level_str, log_dir, retention_days
    )


def _cleanup_old_logs(log_dir: str, retention_days: int) -> None:
    """Delete rotated files older than `retention_days` left from earlier settings."""
    cutoff = time.time() - retention_days * 86400
    for f in glob.glob(os.path.join(log_dir, _LOG_NAME + ".*")):
        try:
            if os.path.getmtime(f) < cutoff:
                os.remove(f)
        except OSError as e:
            logging.getLogger(__name__).debug("Could not remove old log %s: %s", f, e)
