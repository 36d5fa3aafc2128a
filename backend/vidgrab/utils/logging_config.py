"""Logging setup shared by the API and the CLI entry point"""
import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
}


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once; repeated calls only adjust the level"""
    from ..config import LOG_LEVEL

    resolved = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    root = logging.getLogger()
    if not any(getattr(h, "_vidgrab", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._vidgrab = True
        root.addHandler(handler)
    root.setLevel(resolved)
    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
