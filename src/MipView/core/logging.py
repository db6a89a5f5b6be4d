"""Logging setup for the mip viewer.

Console output is kept short (level, logger, message). The optional log file
gets timestamps and the worker thread name, since mips are decoded on a pool.
When the host process already configured the root logger, only the
``mip_viewer`` hierarchy is touched.
"""

import logging
import logging.handlers
import os
import threading

logger = logging.getLogger("mip_viewer")

_CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(threadName)s): %(message)s"

# Rotate at 5 MB, keep 2 backups.
_FILE_MAX_BYTES = 5 * 1024 * 1024
_FILE_BACKUPS = 2

_lock = threading.Lock()


def setup_logging(level: str = "INFO", log_file: str = None, force: bool = False):
    """Configure viewer logging.

    With an unconfigured root logger (or ``force``), the root gets a console
    handler and, if ``log_file`` is set, a rotating file handler. Otherwise
    the host's handlers are left alone and the file handler is attached to
    ``mip_viewer`` only, once per path.
    """
    numeric_level = _parse_level(level)
    with _lock:
        root = logging.getLogger()
        if force or not root.handlers:
            _configure_root(root, numeric_level, log_file, replace=force)
        else:
            logger.setLevel(numeric_level)
            if log_file:
                _attach_file_handler(logger, log_file)


def _parse_level(level) -> int:
    numeric_level = logging.getLevelNamesMapping().get(str(level).upper())
    if numeric_level is not None:
        return numeric_level
    logger.warning("Unknown log level %r, using INFO", level)
    return logging.INFO


def _file_handler(log_file: str) -> logging.Handler:
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=_FILE_MAX_BYTES, backupCount=_FILE_BACKUPS, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    return handler


def _configure_root(root: logging.Logger, numeric_level: int, log_file, replace: bool):
    if replace:
        for old in list(root.handlers):
            root.removeHandler(old)
            old.close()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    root.addHandler(console)
    if log_file:
        root.addHandler(_file_handler(log_file))
    root.setLevel(numeric_level)
    logger.debug("Logging configured on root (replace=%s, file=%s)", replace, log_file)


def _attach_file_handler(target: logging.Logger, log_file: str) -> None:
    path = os.path.abspath(log_file)
    for handler in target.handlers:
        if getattr(handler, "baseFilename", None) == path:
            return
    target.addHandler(_file_handler(path))
    logger.info("Logging to %s", path)
