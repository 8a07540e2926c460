from __future__ import annotations

import re
from typing import Any, List, Pattern


# Exact matches, compared against the lower-cased key.
DENY_FIELD_NAMES = frozenset(
    {
        "password",
        "pwd",
        "pass",
        "token",
        "access_token",
        "refresh_token",
        "id_token",
        "authorization",
        "auth",
        "api_key",
        "apikey",
        "secret",
        "key",
        "email",
        "mail",
        "phone",
        "tel",
        "mobile",
        "address",
        "ssn",
        "social_security_number",
        "credit_card",
        "creditcard",
        "card_number",
        "cardnumber",
        "mfa_code",
        "mfacode",
        "mfa_token",
        "mfatoken",
        "verification_code",
        "verificationcode",
        "ip_address",
        "ipaddress",
        "ip",
    }
)

# Partial matches against the original key. Bare "user" and "name" are not
# here: userCount, userRole, displayName etc. are structural fields.
DENY_FIELD_PATTERNS: List[Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"password",
        r"pwd",
        r"pass",
        r"token",
        r"secret",
        r"api[_-]?key",
        r"email",
        r"mail",
        r"phone",
        r"tel",
        r"mobile",
        r"address",
        r"username",
        r"login",
        r"account",
        r"firstname",
        r"lastname",
        r"fullname",
        r"ssn",
        r"social[_-]?security",
        r"credit[_-]?card",
        r"card[_-]?number",
        r"mfa[_-]?code",
        r"mfa[_-]?token",
        r"verification[_-]?code",
        r"ip[_-]?address",
    )
]


def is_sensitive_field(key: Any) -> bool:
    """
    True when the value stored under `key` must be replaced wholesale.

    Exact denylist first (case-insensitive), then the pattern list.
    """
    name = key if isinstance(key, str) else str(key)
    if name.lower() in DENY_FIELD_NAMES:
        return True
    return any(p.search(name) for p in DENY_FIELD_PATTERNS)
