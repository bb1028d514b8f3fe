from __future__ import annotations
import logging, logging.handlers, sys
import structlog
from .paths import get_dirs

def setup_logging(level: str = "INFO", to_file: bool = True):
    level = level.upper()
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    fmt = logging.Formatter("%(message)s")
    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(fmt)
    root.addHandler(stream)

    if to_file:
        logfile = get_dirs()["logs"] / "showtracker.log"
        rot = logging.handlers.RotatingFileHandler(
            logfile, maxBytes=10_000_000, backupCount=5, encoding="utf-8"
        )
        rot.setFormatter(fmt)
        root.addHandler(rot)

    # urllib3 chatters about every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
    )
    return structlog.get_logger()
