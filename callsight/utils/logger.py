import logging
import os
import sys
from logging.handlers import RotatingFileHandler


def _log_dir() -> str:
    return os.environ.get(
        "CALLSIGHT_LOG_DIR", os.path.join(os.path.expanduser("~"), ".callsight", "logs")
    )


def setup_logger(name="callsight", level=logging.INFO):
    """
    Configure a logger writing to a rotating file and stderr.
    Never stdout: the CLI prints reports there.

    Module loggers (logging.getLogger(__name__)) inside the package
    propagate to the "callsight" logger and share its handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Already configured (module re-import, tests)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    log_dir = _log_dir()
    try:
        os.makedirs(log_dir, exist_ok=True)
        # Max 5MB, keep 3 backups
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "callsight.log"),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        sys.stderr.write(f"CallSight: file logging disabled ({e})\n")

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    return logger


def set_level(level_name: str) -> None:
    """Apply a level name from config (e.g. "DEBUG") to the package logger."""
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logger.setLevel(level)


logger = setup_logger()
