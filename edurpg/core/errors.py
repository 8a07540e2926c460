from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from edurpg.core.redaction import safe_payload


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class EduError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": safe_payload(self.context or {}),
        }


class ConfigError(EduError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class ValidationError(EduError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("validation_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class PermissionDeniedError(EduError):
    def __init__(self, user_message: str = "Permission denied.", **ctx: Any):
        super().__init__("permission_denied", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class RateLimitError(EduError):
    def __init__(self, user_message: str = "Too many requests. Please slow down.", **ctx: Any):
        super().__init__("rate_limited", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class LogStoreError(EduError):
    def __init__(self, user_message: str = "Log store unavailable.", **ctx: Any):
        super().__init__("log_store_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)
