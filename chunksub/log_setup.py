"""Logging configuration for ChunkSub."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from .exceptions import FileSystemError
from .utils import ensure_dir_exists

DEFAULT_LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# HTTP client loggers that chatter on every chunk request
QUIET_LOGGERS = ("urllib3", "requests")

_HANDLER_TAG = "_chunksub_handler"


def _tagged(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_TAG, True)
    return handler


def _remove_own_handlers(root: logging.Logger) -> None:
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_TAG, False)]:
        root.removeHandler(handler)
        handler.close()


def _rotating_file_handler(log_dir: str, log_file: str, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    ensure_dir_exists(log_dir)
    return RotatingFileHandler(
        os.path.join(log_dir, log_file),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8',
    )


def setup_logging(
    log_level: int = logging.INFO,
    log_dir: str = "logs",
    log_file: str = "chunksub.log",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    max_bytes: int = 10 * 1024 * 1024, # 10 MB
    backup_count: int = 5
) -> Optional[str]:
    """
    Routes ChunkSub's log records to stdout and to a rotating log file.

    The CLI calls this twice: once with a bootstrap file before the config
    is read, then with the configured log_dir/log_file. Each call swaps out
    the handlers installed by the previous one; handlers added by anything
    else are left alone.

    Returns:
        The log file path, or None if only console logging could be set up.
    """
    root = logging.getLogger()
    _remove_own_handlers(root)
    root.setLevel(log_level)
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console = _tagged(logging.StreamHandler(sys.stdout))
    console.setFormatter(formatter)
    console.setLevel(log_level)
    root.addHandler(console)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    try:
        file_handler = _tagged(_rotating_file_handler(log_dir, log_file, max_bytes, backup_count))
    except (FileSystemError, OSError) as e:
        root.error(f"File logging disabled, cannot open {log_dir}/{log_file}: {e}")
        return None
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    log_path = file_handler.baseFilename
    root.info(f"Logging to {log_path} at level {logging.getLevelName(log_level)}")
    return log_path
