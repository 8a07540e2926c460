from __future__ import annotations

import contextlib
import contextvars
import re
import uuid
from typing import Iterator, Optional

_REQUEST_ID: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("edurpg.request_id", default=None)

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)


def new_request_id() -> str:
    return str(uuid.uuid4())


def validate_request_id(candidate: Optional[str]) -> str:
    """Client-supplied ids are kept only when they are RFC 4122 UUIDs."""
    if candidate and _UUID_RE.match(str(candidate).strip()):
        return str(candidate).strip()
    return new_request_id()


def current_request_id(default: Optional[str] = None) -> Optional[str]:
    request_id = _REQUEST_ID.get()
    return request_id if request_id else default


def set_request_id(request_id: Optional[str]) -> contextvars.Token:
    return _REQUEST_ID.set(str(request_id) if request_id else None)


def reset_request_id(token: contextvars.Token) -> None:
    try:
        _REQUEST_ID.reset(token)
    except ValueError:
        # token created in another context
        pass


@contextlib.contextmanager
def request_context(request_id: Optional[str]) -> Iterator[Optional[str]]:
    if not request_id:
        yield current_request_id()
        return
    token = set_request_id(request_id)
    try:
        yield str(request_id)
    finally:
        reset_request_id(token)
