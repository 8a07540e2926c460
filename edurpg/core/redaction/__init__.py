"""
PII redaction for everything that reaches a log sink.

- field-name classification (exact denylist, then patterns)
- ordered content scrubbing of string leaves
- cycle- and depth-safe traversal
- safe_payload(): total wrapper, never raises

Markers are fixed strings of the form "[redacted:<kind>]".
"""

from edurpg.core.redaction.content import CONTENT_RULES, ContentRule
from edurpg.core.redaction.engine import RedactionOptions, redact, resolve_options, safe_payload, scrub
from edurpg.core.redaction.fields import DENY_FIELD_NAMES, DENY_FIELD_PATTERNS, is_sensitive_field
from edurpg.core.redaction.markers import MarkerKind, is_marker, marker
from edurpg.core.redaction.message import MESSAGE_PLACEHOLDER, message_contains_pii, safe_message, validate_log_entry

__all__ = [
    "CONTENT_RULES",
    "ContentRule",
    "DENY_FIELD_NAMES",
    "DENY_FIELD_PATTERNS",
    "MESSAGE_PLACEHOLDER",
    "MarkerKind",
    "RedactionOptions",
    "is_marker",
    "is_sensitive_field",
    "marker",
    "message_contains_pii",
    "redact",
    "resolve_options",
    "safe_message",
    "safe_payload",
    "scrub",
    "validate_log_entry",
]
