"""Logging for credential resolution.

Resolution components log through structlog. The library never configures
logging itself; applications that want Safir-style output call
`configure_logging` (re-exported from `safir.logging`) with the name of the
logger used here.
"""

from __future__ import annotations

import structlog
from safir.logging import (
    LogLevel,
    Profile,
    add_log_severity,
    configure_logging,
)
from structlog.stdlib import BoundLogger

__all__ = [
    "DEFAULT_LOGGER_NAME",
    "LogLevel",
    "Profile",
    "add_log_severity",
    "configure_logging",
    "get_logger",
]

DEFAULT_LOGGER_NAME = "kubecreds"
"""Name of the logger used when the caller does not provide one."""


def get_logger(
    logger: BoundLogger | None = None, name: str = DEFAULT_LOGGER_NAME
) -> BoundLogger:
    """Return the given logger or the default library logger.

    Parameters
    ----------
    logger
        Logger supplied by the caller, if any.
    name
        Logger name to use if no logger was supplied.

    Returns
    -------
    structlog.stdlib.BoundLogger
        Logger to use.
    """
    if logger is not None:
        return logger
    return structlog.get_logger(name)
