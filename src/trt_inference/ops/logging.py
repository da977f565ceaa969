"""
Process-wide logging for the inference runner.

Application messages go to a log file and the console. Runtime and
TensorRT messages reach the same handlers through the session observer,
whose severity cutoff follows the configured log level.
"""

from __future__ import annotations

import logging
import os

from ..inference.observer import Severity


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_OBSERVER_SEVERITY = {
    "DEBUG": Severity.VERBOSE,
    "INFO": Severity.INFO,
    "WARNING": Severity.WARNING,
    "ERROR": Severity.ERROR,
    "CRITICAL": Severity.INTERNAL_ERROR,
}


def setup_logging(log_path: str, log_level: str) -> None:
    """Log to log_path and stderr, replacing any handlers already installed."""
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
        force=True,
    )


def observer_severity(log_level: str) -> Severity:
    """Least severe runtime message still worth forwarding at log_level."""
    return _OBSERVER_SEVERITY.get(log_level.upper(), Severity.WARNING)
