from __future__ import annotations

from enum import Enum
from typing import Union


class MarkerKind(str, Enum):
    FIELD = "field"
    EMAIL = "email"
    PHONE = "phone"
    PASSWORD = "password"
    TOKEN = "token"
    CIRCULAR = "circular"
    PAYLOAD_ERROR = "payload_error"


def marker(kind: Union[MarkerKind, str]) -> str:
    k = kind.value if isinstance(kind, MarkerKind) else str(kind)
    return f"[redacted:{k}]"


FIELD_MARKER = marker(MarkerKind.FIELD)
CIRCULAR_MARKER = marker(MarkerKind.CIRCULAR)
PAYLOAD_ERROR_MARKER = marker(MarkerKind.PAYLOAD_ERROR)


def is_marker(value: object) -> bool:
    return isinstance(value, str) and value in _ALL_MARKERS


_ALL_MARKERS = frozenset(marker(k) for k in MarkerKind)
