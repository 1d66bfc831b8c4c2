"""
Top-level boundary shared by the command-line procedures.

Each procedure runs inside `run_driver`, which turns its outcome into a
`DriverResult`. The console scripts map that result to the process exit code.
"""
import logging
import sys

from .models import DriverResult

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("escrow_deploy")


def configure_logging(level="INFO", stream=None):
    """
    Attaches a single console handler to the package logger.

    Calling it again only updates the level.

    Args:
        level: Logging level name or number
        stream: Output stream, defaults to stderr
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(level)
    return logger


def run_driver(name, procedure, *args, **kwargs):
    """
    Runs a procedure and captures its outcome.

    Args:
        name: Human readable procedure name used in the failure message
        procedure: Callable to run

    Returns:
        DriverResult.success with the procedure's return value, or
        DriverResult.failure with the exception that stopped it
    """
    try:
        return DriverResult.success(procedure(*args, **kwargs))
    except Exception as e:
        logger.debug(f"{name} failed", exc_info=True)
        print(f"{name} failed: {e}", file=sys.stderr)
        return DriverResult.failure(e)
