from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from edurpg.core.redaction.content import MESSAGE_RULES
from edurpg.core.redaction.engine import redact


logger = logging.getLogger("edurpg.redaction")

MESSAGE_PLACEHOLDER = "[message withheld: sensitive content]"


def message_contains_pii(message: str) -> bool:
    text = str(message or "")
    return any(rule.pattern.search(text) for rule in MESSAGE_RULES)


def safe_message(message: str) -> str:
    """
    Free-text log messages are all-or-nothing: either unchanged or replaced
    by a generic placeholder. No partial in-message redaction.
    """
    text = str(message or "")
    return MESSAGE_PLACEHOLDER if message_contains_pii(text) else text


def validate_log_entry(level: str, message: str, metadata: Optional[Mapping[str, Any]] = None) -> bool:
    if message_contains_pii(message):
        logger.warning("PII detected in %s log message (content withheld)", level)
        return False
    if metadata is not None:
        try:
            clean = redact(metadata)
        except Exception as e:  # noqa: BLE001
            logger.warning("log metadata could not be checked: %s", type(e).__name__)
            return False
        if clean != dict(metadata):
            logger.warning("PII detected in %s log metadata (keys: %s)", level, sorted(str(k) for k in metadata.keys())[:50])
            return False
    return True
