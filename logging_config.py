import logging
import os
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _parse_level(value, default: int = logging.INFO) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip().upper()
    if not text:
        return default
    level = logging.getLevelName(text)
    if isinstance(level, int):
        return level
    try:
        return int(text)
    except ValueError:
        return default


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None, log_format: str = DEFAULT_FORMAT) -> None:
    """Configure root logging for the relay.

    Safe to call more than once: existing root handlers are replaced, so
    importing both entrypoint.py and app.py does not duplicate output.
    """
    handlers: list = [logging.StreamHandler()]

    if log_file:
        path = Path(os.path.expanduser(log_file))
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    formatter = logging.Formatter(fmt=log_format)
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(_parse_level(log_level))

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.captureWarnings(True)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
