"""Logging for accessmatrix.

Every component logs through a child of the ``accessmatrix`` logger, so the
API configures handlers once at startup and the services, stores and audit
middleware inherit them.
"""

import logging
import logging.handlers
import os

ROOT_LOGGER_NAME = "accessmatrix"

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
MAX_LOG_BYTES = 10485760  # 10MB
LOG_BACKUPS = 5


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    log_dir: str = "./logs",
    level: str = "INFO",
    file_logging: bool = False,
    console_logging: bool = True,
) -> logging.Logger:
    """Attach console and rotating file handlers to ``name``.

    Args:
        name: Logger name (the package root unless testing)
        log_dir: Directory for ``<name>.log`` when file logging is on
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        file_logging: Enable the rotating file handler
        console_logging: Enable the stderr handler

    Raises:
        ValueError: If ``level`` is not a logging level name
    """
    logger = logging.getLogger(name)

    level_upper = level.upper()
    if level_upper not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    logger.setLevel(getattr(logging, level_upper))

    # setup runs on every app import; handlers are attached once
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Component logger under the ``accessmatrix`` namespace.

    ``get_logger("matrix_service")`` and ``get_logger("accessmatrix.matrix_service")``
    return the same logger.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
