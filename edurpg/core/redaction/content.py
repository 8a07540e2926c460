from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern, Tuple

from edurpg.core.redaction.markers import MarkerKind, marker


@dataclass(frozen=True)
class ContentRule:
    name: str
    kind: MarkerKind
    pattern: Pattern[str]
    # Only applied when RedactionOptions.redact_unknown_tokens is set.
    unknown_token: bool = False

    def apply(self, text: str) -> str:
        return self.pattern.sub(marker(self.kind), text)


# Order matters: earlier rules consume their matches before later ones run.
CONTENT_RULES: Tuple[ContentRule, ...] = (
    ContentRule(
        name="email",
        kind=MarkerKind.EMAIL,
        pattern=re.compile(
            r"[\w.+-]+@(?:(?:[\w-]+\.)+[A-Za-z]{2,}|(?:[\w-]+\.)*local(?:host)?)",
            re.ASCII,
        ),
    ),
    ContentRule(
        name="cz_phone",
        kind=MarkerKind.PHONE,
        pattern=re.compile(
            r"(?<!\d)(?:\+?420[\s.-]?)?\d{3}[\s.-]?\d{3}[\s.-]?\d{3}(?!\d)",
            re.ASCII,
        ),
    ),
    ContentRule(
        name="password_assignment",
        kind=MarkerKind.PASSWORD,
        pattern=re.compile(r"(?:password|pwd|pass)\s*[:=]\s*[^\s,}]+", re.IGNORECASE),
    ),
    ContentRule(
        name="token_assignment",
        kind=MarkerKind.TOKEN,
        pattern=re.compile(r"(?:api[_-]?key|token|secret|auth[_-]?key)\s*[:=]\s*[^\s,}]+", re.IGNORECASE),
    ),
    ContentRule(
        name="unknown_token",
        kind=MarkerKind.TOKEN,
        pattern=re.compile(r"\b(?:eyJ[A-Za-z0-9_\-]{10,}|[A-Za-z0-9_\-]{24,})\b", re.ASCII),
        unknown_token=True,
    ),
)

# Rules used by the free-text message pre-check.
MESSAGE_RULES: Tuple[ContentRule, ...] = tuple(r for r in CONTENT_RULES if not r.unknown_token)


def scrub(text: str, *, redact_unknown_tokens: bool = True) -> str:
    out = text
    for rule in CONTENT_RULES:
        if rule.unknown_token and not redact_unknown_tokens:
            continue
        out = rule.apply(out)
    return out


def rule_by_name(name: str) -> ContentRule:
    for rule in CONTENT_RULES:
        if rule.name == name:
            return rule
    raise KeyError(name)
