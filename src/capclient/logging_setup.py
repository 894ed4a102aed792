"""Process-wide logging configuration for the command line tools."""

import logging


def setup_logging(level: str = "INFO") -> logging.Logger:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    # urllib3 logs every connection at DEBUG, including request lines.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return logging.getLogger("capclient")
