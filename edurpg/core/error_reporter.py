from __future__ import annotations

import json
import os
import threading
import time
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Optional

from edurpg.core.errors import ConfigError, EduError, LogStoreError, RateLimitError, ValidationError
from edurpg.core.redaction import safe_payload, scrub
from edurpg.core.redaction.markers import PAYLOAD_ERROR_MARKER


@dataclass
class ErrorReporterConfig:
    include_tracebacks: bool = False


class ErrorReporter:
    def __init__(self, *, path: str = os.path.join("logs", "errors.jsonl"), cfg: Optional[ErrorReporterConfig] = None):
        self.path = path
        self.cfg = cfg or ErrorReporterConfig()
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def report_exception(self, exc: BaseException, *, request_id: str, subsystem: str, context: Optional[Dict[str, Any]] = None) -> EduError:
        err = normalize_exception(exc, subsystem=subsystem, context=context or {})
        self.write_error(err, request_id=request_id, subsystem=subsystem, internal_exc=exc)
        return err

    def write_error(self, err: EduError, *, request_id: str, subsystem: str, internal_exc: Optional[BaseException] = None) -> None:
        entry: Dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "request_id": request_id,
            "subsystem": subsystem,
            "error_code": err.code,
            "severity": err.severity.value,
            "recoverable": bool(err.recoverable),
            "user_message": err.user_message,
            "safe_context": safe_payload(err.context or {}),
        }
        if self.cfg.include_tracebacks and internal_exc is not None:
            tb = "".join(traceback.format_exception(type(internal_exc), internal_exc, internal_exc.__traceback__, limit=30))
            entry["internal_context"] = {"traceback": scrub(tb)}
        try:
            line = json.dumps(entry, ensure_ascii=False, default=str)
        except (ValueError, TypeError):
            entry["safe_context"] = PAYLOAD_ERROR_MARKER
            line = json.dumps(entry, ensure_ascii=False, default=str)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def tail(self, n: int = 20) -> list[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                lines = f.readlines()
            return [json.loads(x) for x in lines[-max(1, int(n)) :]]
        except (OSError, ValueError):
            return []

    def by_request_id(self, request_id: str) -> list[Dict[str, Any]]:
        return [e for e in self.tail(10_000) if e.get("request_id") == request_id]


def normalize_exception(exc: BaseException, *, subsystem: str, context: Dict[str, Any]) -> EduError:
    if isinstance(exc, EduError):
        return exc

    msg = str(exc)
    ctx = {str(k): v for k, v in (context or {}).items() if str(k) != "error"}

    if subsystem == "config":
        return ConfigError("Configuration error.", error=msg, **ctx)
    if subsystem == "rate_limit":
        return RateLimitError(**ctx)
    if subsystem == "log_store" or isinstance(exc, OSError):
        return LogStoreError(error=msg, **ctx)
    if isinstance(exc, (ValueError, TypeError)):
        return ValidationError(error=msg, **ctx)

    return EduError(code="unknown_error", user_message="Something went wrong.", context={"error": msg, **ctx})
