"""Logging setup and message redaction."""

import logging
import re
import sys
from dataclasses import dataclass

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS = ("googleapiclient", "google", "httpx", "httpcore")

# Order matters: the private key block must go before generic token patterns.
_REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.DOTALL),
        "[REDACTED PRIVATE KEY]",
    ),
    (
        re.compile(r"(https?://(?:[\w-]+\.)?discord(?:app)?\.com/api/webhooks/)[^\s\"'<>]+"),
        r"\1[REDACTED]",
    ),
    (
        re.compile(r"(/spreadsheets/d/)[A-Za-z0-9_-]+"),
        r"\1[REDACTED]",
    ),
    (
        re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
        r"\1[REDACTED]",
    ),
    (
        re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
        "[REDACTED EMAIL]",
    ),
]


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    redact: bool = False


def redact(message: str, enabled: bool) -> str:
    """Mask webhook tokens, sheet IDs, bearer tokens, keys and emails when enabled."""
    if not enabled or not message:
        return message
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    return message


class RedactingFilter(logging.Filter):
    """Rewrites each record's rendered message through redact()."""

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled:
            return True
        record.msg = redact(record.getMessage(), True)
        record.args = None
        if record.exc_info and not record.exc_text:
            record.exc_text = redact(
                logging.Formatter().formatException(record.exc_info), True
            )
        elif record.exc_text:
            record.exc_text = redact(record.exc_text, True)
        return True


def setup_logging(config: LoggingConfig) -> None:
    """Configure root logging from an explicit config object."""
    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    if config.redact:
        for handler in logging.getLogger().handlers:
            handler.addFilter(RedactingFilter())

    # Reduce noise from libraries
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
