"""
Centralized logging configuration for the lottery bot
Console output for the host, optional rotating log file for history
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

CONSOLE_FORMAT = '[%(asctime)s] %(levelname)-8s %(message)s'
FILE_FORMAT = '[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Libraries that flood the log below INFO
NOISY_LOGGERS = ('discord', 'sqlalchemy.engine')


def setup_logging(app_name=None, log_level=None, log_file=None):
    """
    Configure console and optional file logging

    Args:
        app_name: Logger to configure (None = root logger, which covers
            every module's ``logging.getLogger(__name__)``)
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: LOG_LEVEL env, INFO)
        log_file: Path of a rotating log file (default: LOG_FILE env, none)

    Returns:
        logging.Logger: The configured logger
    """
    level = _resolve_level(log_level or os.getenv('LOG_LEVEL', 'INFO'))
    log_file = log_file or os.getenv('LOG_FILE') or None

    logger = logging.getLogger(app_name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(_console_handler(level))

    if log_file:
        try:
            logger.addHandler(_file_handler(log_file, level))
            logger.info(f"📝 File logging enabled: {log_file}")
        except OSError as e:
            logger.error(f"Failed to setup file logging: {e}")

    if app_name:
        logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    return logger


def _resolve_level(log_level):
    return getattr(logging, str(log_level).upper(), logging.INFO)


def _console_handler(level):
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    return handler


def _file_handler(log_file, level):
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    handler = RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def log_error(logger, error, context=None):
    """Log error with optional context"""
    message = f"{context}: {error}" if context else str(error)
    logger.error(message, exc_info=error)
