"""Logging configuration for CLI and hook processes.

Hook processes talk to the host over stdout, so log records always go to
stderr. When debug logging is switched on (SKILL_RUNTIME_DEBUG_LOG or the
rule set's `enableDebugLogging`), DEBUG records are also appended to a log
file in the session cache directory.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEBUG_LOG_NAME = "skill-runtime-debug.log"

_file_handler: Optional[logging.Handler] = None


def configure_logging(level: str = "WARNING") -> None:
    """Send package logs to stderr at `level`."""
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(level=numeric, format=LOG_FORMAT, stream=sys.stderr, force=True)
    # Records the debug file handler lets through must not reach stderr
    for handler in logging.getLogger().handlers:
        handler.setLevel(numeric)


def enable_debug_log(log_path: Path) -> bool:
    """Attach a DEBUG file handler for the skill_runtime loggers.

    Args:
        log_path: Log file to append to (parent directories are created)

    Returns:
        True if the handler is active
    """
    global _file_handler
    if _file_handler is not None:
        return True

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as e:
        logging.getLogger(__name__).warning(f"Cannot open debug log {log_path}: {e}")
        return False

    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger = logging.getLogger("skill_runtime")
    package_logger.setLevel(logging.DEBUG)
    package_logger.addHandler(handler)
    _file_handler = handler
    return True


def disable_debug_log() -> None:
    global _file_handler
    if _file_handler is None:
        return
    package_logger = logging.getLogger("skill_runtime")
    package_logger.removeHandler(_file_handler)
    package_logger.setLevel(logging.NOTSET)
    _file_handler.close()
    _file_handler = None
