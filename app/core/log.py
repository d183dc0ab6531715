"""Logging setup shared by the CLI and server entrypoints."""

import logging
import time

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
# asctime is rendered in UTC, hence the Z suffix.
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger with UTC timestamps."""
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, datefmt=LOG_DATEFMT)
