"""Logging setup for the signer and verifier.

Signing code logs through ``logging.getLogger(__name__)`` and attaches the
scope, signed header list and access key as record extras. The JSON format
carries those extras as top-level keys; the secret key and signing key are
never attached to a record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TextIO

# Record attributes copied into JSON lines when present.
EXTRA_FIELDS = ("method", "host", "scope", "signed_headers", "access_key", "code")

# httpx logs every request at INFO; keep it quiet unless we are debugging.
NOISY_LOGGERS = ("httpx", "httpcore")

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message and extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text", stream: TextIO | None = None) -> None:
    """Replace the root handlers with a single stream handler.

    Args:
        level: Log level name. Unknown names fall back to INFO.
        fmt: 'json' for structured lines, anything else for plain text.
        stream: Where to write. Defaults to stderr so stdout stays clean
            for command output.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
