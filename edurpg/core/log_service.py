from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from edurpg.core.redaction import RedactionOptions, safe_message, safe_payload
from edurpg.core.system_log import SystemLogStore
from edurpg.core.trace import current_request_id


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"


_PY_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.FATAL: logging.CRITICAL,
}


@dataclass
class LogContext:
    user_id: Optional[str] = None
    request_id: Optional[str] = None
    session_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LogEntry:
    level: LogLevel
    message: str
    service: str
    environment: str
    timestamp: str
    user_id: Optional[str] = None
    request_id: Optional[str] = None
    session_id: Optional[str] = None
    tags: tuple = ()
    metadata: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "message": self.message,
            "service": self.service,
            "environment": self.environment,
            "timestamp": self.timestamp,
            "user_id": self.user_id,
            "request_id": self.request_id,
            "session_id": self.session_id,
            "tags": list(self.tags),
            "metadata": self.metadata,
        }


def default_environment() -> str:
    return os.environ.get("EDURPG_ENV") or "development"


class Logger:
    """
    Leveled application logger.

    Messages pass the PII pre-check (whole message withheld on a hit) and
    metadata goes through safe_payload() before any sink sees it. INFO and
    above are persisted to the system log store when one is configured.
    """

    def __init__(
        self,
        service: str = "edurpg",
        *,
        environment: Optional[str] = None,
        store: Optional[SystemLogStore] = None,
        options: Optional[RedactionOptions] = None,
    ):
        self.service = service
        self.environment = environment or default_environment()
        self.store = store
        self.options = options
        self._console = logging.getLogger(f"edurpg.{service}")

    def _entry(self, level: LogLevel, message: str, context: Optional[LogContext]) -> LogEntry:
        ctx = context or LogContext()
        return LogEntry(
            level=level,
            message=safe_message(message),
            service=self.service,
            environment=self.environment,
            timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            user_id=ctx.user_id,
            request_id=ctx.request_id or current_request_id(),
            session_id=ctx.session_id,
            tags=tuple(ctx.tags or ()),
            metadata=safe_payload(ctx.metadata, self.options) if ctx.metadata is not None else None,
        )

    @staticmethod
    def format_console(entry: LogEntry) -> str:
        req = f"[{entry.request_id}]" if entry.request_id else ""
        user = f"[user:{entry.user_id}]" if entry.user_id else ""
        tags = f"[{','.join(entry.tags)}]" if entry.tags else ""
        return f"{entry.timestamp} {entry.level.value} {req}{user}{tags} {entry.message}"

    def _write(self, entry: LogEntry, *, persist: bool) -> LogEntry:
        self._console.log(_PY_LEVELS[entry.level], self.format_console(entry))
        if persist and self.store is not None:
            try:
                self.store.write_entry(entry.to_dict())
            except (OSError, ValueError, TypeError) as e:
                self._console.error("Failed to write log entry to system log store: %s", type(e).__name__)
        return entry

    def log(self, level: LogLevel, message: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        level = LogLevel(level)
        if level is LogLevel.DEBUG and self.environment == "production":
            return None
        entry = self._entry(level, message, context)
        return self._write(entry, persist=level is not LogLevel.DEBUG)

    def debug(self, message: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, message, context)

    def warn(self, message: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, message, context)

    def error(self, message: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.ERROR, message, context)

    def fatal(self, message: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.FATAL, message, context)

    # ---- Convenience helpers ----
    @staticmethod
    def _extend(context: Optional[LogContext], tags: List[str], extra: Dict[str, Any]) -> LogContext:
        ctx = context or LogContext()
        meta = dict(ctx.metadata or {})
        meta.update(extra)
        return LogContext(user_id=ctx.user_id, request_id=ctx.request_id, session_id=ctx.session_id, metadata=meta, tags=list(ctx.tags or []) + tags)

    def log_api_request(self, method: str, path: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        ctx = self._extend(context, ["api", "request"], {"method": method, "path": path})
        return self.info(f"API Request: {method} {path}", ctx)

    def log_api_response(self, method: str, path: str, status_code: int, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        ctx = self._extend(context, ["api", "response"], {"method": method, "path": path, "status_code": int(status_code)})
        level = LogLevel.WARN if int(status_code) >= 400 else LogLevel.INFO
        return self.log(level, f"API Response: {method} {path} - {int(status_code)}", ctx)

    def log_database_operation(self, operation: str, table: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        ctx = self._extend(context, ["database", operation], {"operation": operation, "table": table})
        return self.debug(f"Database {operation} on {table}", ctx)

    def log_security_event(self, event: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        ctx = self._extend(context, ["security", "event"], {"event": event})
        return self.warn(f"Security Event: {event}", ctx)

    def log_business_event(self, event: str, context: Optional[LogContext] = None) -> Optional[LogEntry]:
        ctx = self._extend(context, ["business", "event"], {"event": event})
        return self.info(f"Business Event: {event}", ctx)
