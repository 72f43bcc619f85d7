"""Centralized logging configuration for ecodyn."""

import logging
import sys

# Create logger
logger = logging.getLogger('ecodyn')
logger.setLevel(logging.INFO)

# Create console handler with formatting
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)

# Create formatter
formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
console_handler.setFormatter(formatter)

# Add handler to logger
if not logger.handlers:
    logger.addHandler(console_handler)


def get_logger(name: str = None):
    """Get a logger instance.

    Parameters
    ----------
    name : str, optional
        Logger name (typically __name__). If None, returns root package logger.

    Returns
    -------
    logging.Logger
        Configured logger instance
    """
    if name:
        if name == 'ecodyn' or name.startswith('ecodyn.'):
            return logging.getLogger(name)
        return logging.getLogger(f'ecodyn.{name}')
    return logger


def configure_logging(level: int = logging.INFO):
    """Set the level of the package logger and its console handler."""
    logger.setLevel(level)
    console_handler.setLevel(level)
