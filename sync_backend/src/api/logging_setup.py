from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional


# PUBLIC_INTERFACE
def setup_logging(level: str, logfile: Optional[str] = None) -> None:
    """
    Configure the root logger once for the process.

    Logs always go to stderr; when `logfile` is given they are also appended to
    that file (parent directories are created). Uvicorn's loggers are routed
    through the root handlers so request and sync logs share one format.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)

    # Clear existing handlers to avoid duplicates across reloads.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] [%(name)s] %(message)s")

    if logfile:
        Path(logfile).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile, encoding="utf-8")
        fh.setLevel(log_level)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        logger.handlers.clear()
        logger.setLevel(log_level)
        logger.propagate = True

    root.debug("logging initialized")
