"""Logging for pvekit: Rich console output per module, one optional log file."""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console()

PACKAGE_LOGGER = "pvekit"
DEFAULT_LOG_FILE = Path("/var/log/pvekit/pvekit.log")
FALLBACK_LOG_FILE = Path("/tmp/pvekit.log")
FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

_file_handler: Optional[logging.FileHandler] = None


def _open_log_file(path: Path) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path)


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> Path:
    """Mirror every pvekit logger into a file.

    Args:
        log_file: Target file (default /var/log/pvekit/pvekit.log)
        verbose: Record DEBUG messages as well

    Returns:
        Path of the file actually written, which is FALLBACK_LOG_FILE when the
        default location is not writable. Repeated calls keep the first file.
    """
    global _file_handler

    if _file_handler is not None:
        return Path(_file_handler.baseFilename)

    target = Path(log_file) if log_file else DEFAULT_LOG_FILE
    try:
        handler = _open_log_file(target)
    except PermissionError:
        if log_file:
            raise
        target = FALLBACK_LOG_FILE
        handler = _open_log_file(target)

    level = logging.DEBUG if verbose else logging.INFO
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    _file_handler = handler

    package_logger.info(f"pvekit logging initialized: {target}")
    return target


def reset_file_logging():
    """Detach and close the log file handler, if any."""
    global _file_handler

    if _file_handler is None:
        return
    logging.getLogger(PACKAGE_LOGGER).removeHandler(_file_handler)
    _file_handler.close()
    _file_handler = None


def get_logger(name: str) -> logging.Logger:
    """Module logger printing through the shared Rich console.

    Args:
        name: Logger name (typically __name__)
    """
    logger = logging.getLogger(name)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger
