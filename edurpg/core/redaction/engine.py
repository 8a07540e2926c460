from __future__ import annotations

import dataclasses
import logging
import numbers
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from edurpg.core.redaction.content import scrub as _scrub_text
from edurpg.core.redaction.fields import is_sensitive_field
from edurpg.core.redaction.markers import CIRCULAR_MARKER, FIELD_MARKER, PAYLOAD_ERROR_MARKER


logger = logging.getLogger("edurpg.redaction")


@dataclass(frozen=True)
class RedactionOptions:
    max_depth: int = 6
    # False returns the repeated object itself; unsafe for JSON serialization.
    redact_circular: bool = True
    redact_unknown_tokens: bool = True


OptionsLike = Union[RedactionOptions, Mapping, None]


def resolve_options(options: OptionsLike = None, **overrides: Any) -> RedactionOptions:
    if options is None:
        opts = RedactionOptions()
    elif isinstance(options, RedactionOptions):
        opts = options
    else:
        opts = RedactionOptions(**dict(options))
    if overrides:
        opts = replace(opts, **overrides)
    if int(opts.max_depth) < 0:
        opts = replace(opts, max_depth=0)
    return opts


def _structured_items(value: Any) -> Optional[Iterable[Tuple[Any, Any]]]:
    """Key/value view for mapping-like values, None for everything else."""
    if isinstance(value, Mapping):
        return list(value.items())
    dump = getattr(value, "model_dump", None)
    if callable(dump) and not isinstance(value, type):
        return list(dump().items())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return [(f.name, getattr(value, f.name)) for f in dataclasses.fields(value)]
    return None


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (Sequence, set, frozenset))


class _Walker:
    """
    One traversal. The visited set lives exactly as long as this object,
    which never outlives a single redact() call.
    """

    def __init__(self, opts: RedactionOptions):
        self.opts = opts
        self._seen: Set[int] = set()
        # ids are only unique while the object lives; model_dump() output is
        # temporary, so every visited container is pinned for the whole call
        self._alive: List[Any] = []

    def scrub(self, text: str) -> str:
        return _scrub_text(text, redact_unknown_tokens=self.opts.redact_unknown_tokens)

    def walk(self, value: Any, depth: int) -> Any:
        if value is None:
            return None
        if depth > self.opts.max_depth:
            return value
        if isinstance(value, str):
            return self.scrub(value)
        if isinstance(value, numbers.Number):
            return value
        if isinstance(value, (bytes, bytearray, memoryview)):
            return self.scrub(bytes(value).decode("utf-8", errors="replace"))

        items = _structured_items(value)
        if items is None and not _is_sequence(value):
            # Outside the JSON-like subset: render, then treat as text.
            return self.scrub(str(value))

        if id(value) in self._seen:
            return CIRCULAR_MARKER if self.opts.redact_circular else value
        self._seen.add(id(value))
        self._alive.append(value)

        if items is not None:
            return self._mapping(items, depth)
        out = [self.walk(v, depth + 1) for v in value]
        return tuple(out) if isinstance(value, tuple) else out

    def _mapping(self, items: Iterable[Tuple[Any, Any]], depth: int) -> Dict[Any, Any]:
        out: Dict[Any, Any] = {}
        for k, v in items:
            if is_sensitive_field(k):
                # Whole subtree is dropped; the key alone signals sensitivity.
                out[k] = FIELD_MARKER
                continue
            if isinstance(v, str):
                out[k] = self.scrub(v)
                continue
            out[k] = self.walk(v, depth + 1)
        return out


def redact(value: Any, options: OptionsLike = None, **overrides: Any) -> Any:
    """
    Redact PII from an arbitrary JSON-like value.

    Faults propagate; log call-sites should use safe_payload() instead.
    """
    opts = resolve_options(options, **overrides)
    return _Walker(opts).walk(value, 0)


def scrub(text: str, options: OptionsLike = None, **overrides: Any) -> str:
    opts = resolve_options(options, **overrides)
    return _scrub_text(text, redact_unknown_tokens=opts.redact_unknown_tokens)


def safe_payload(value: Any, options: OptionsLike = None, **overrides: Any) -> Any:
    """
    Total variant of redact(): never raises, never returns partial output.

    Any internal fault yields the single payload_error marker.
    """
    try:
        return redact(value, options, **overrides)
    except Exception as e:  # noqa: BLE001
        # Type only: exception text may itself carry the data being redacted.
        logger.debug("safe_payload contained fault: %s", type(e).__name__)
        return PAYLOAD_ERROR_MARKER
