"""
Logging Configuration

Configures the standard library root logger once at application start.
Module loggers (logging.getLogger(__name__)) and the access logger in
app.middleware.logging all propagate to it.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Send log records to stdout at the given level.

    Calling it again replaces the handler instead of adding a second one.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
