from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from edurpg.core.redaction import scrub


class ScrubFilter(logging.Filter):
    """
    Last line of defence for the text sinks: any record reaching an
    "edurpg" handler has its rendered message content-scrubbed, including
    records from code that never went through log_service.Logger.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        # same rule set as the message pre-check: request ids must survive
        clean = scrub(msg, redact_unknown_tokens=False)
        if clean != msg:
            record.msg = clean
            record.args = None
        return True


def _has_scrub_filter(handler: logging.Handler) -> bool:
    return any(isinstance(f, ScrubFilter) for f in handler.filters)


def setup_logging(
    log_dir: str = "logs",
    level: str = "INFO",
    *,
    max_bytes: int = 1_000_000,
    backup_count: int = 5,
) -> logging.Logger:
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger("edurpg")
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    logger.propagate = False

    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        h = RotatingFileHandler(os.path.join(log_dir, "edurpg.log"), maxBytes=int(max_bytes), backupCount=int(backup_count), encoding="utf-8")
        h.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))
        logger.addHandler(h)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler) for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(sh)

    for h in logger.handlers:
        if not _has_scrub_filter(h):
            h.addFilter(ScrubFilter())
    return logger
