"""File logging setup. The terminal belongs to the UI, so logs go to disk."""
from __future__ import annotations

import logging
import os
import platform
from pathlib import Path
from typing import Optional

APP_LOGGER = "toy_piano"
LOG_DIR_ENV = "TOY_PIANO_LOG_DIR"
LOG_FILE = "toy-piano.log"


def default_log_dir() -> Path:
    env_dir = os.environ.get(LOG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Logs" / "ToyPiano"
    return Path.home() / ".toy-piano" / "logs"


def log_path(filename: str = LOG_FILE, log_dir: Optional[str] = None) -> Path:
    base_dir = Path(log_dir).expanduser() if log_dir else default_log_dir()
    return base_dir / filename


def setup_file_logger(
    name: str = APP_LOGGER,
    filename: str = LOG_FILE,
    *,
    level: int | str = logging.INFO,
    log_dir: Optional[str] = None,
) -> Path:
    """Attach a single FileHandler to ``name`` and return the log file path.

    Calling this twice for the same logger keeps the first handler.
    """
    logger = logging.getLogger(name)
    path = log_path(filename, log_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    if logger.handlers:
        return path
    logger.setLevel(level)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
    return path
