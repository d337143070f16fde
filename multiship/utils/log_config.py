"""Logging setup for the multiship CLI."""

import json
import logging
import sys

_TEXT_FORMAT = "%(levelname)s:%(name)s:%(message)s"


class _JsonFormatter(logging.Formatter):
    """One JSON object per record for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: str = "info", fmt: str = "text") -> None:
    """Send log records to stderr at the given level.

    Args:
        level: Level name (debug, info, warning, error).
        fmt: ``text`` or ``json``.
    """
    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)
    logging.getLogger("multiship").setLevel(level.upper())
