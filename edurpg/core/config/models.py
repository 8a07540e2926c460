from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from edurpg.core.redaction import RedactionOptions


class RedactionConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    max_depth: int = Field(default=6, ge=0, le=64)
    redact_circular: bool = True
    redact_unknown_tokens: bool = True

    def to_options(self) -> RedactionOptions:
        return RedactionOptions(
            max_depth=self.max_depth,
            redact_circular=self.redact_circular,
            redact_unknown_tokens=self.redact_unknown_tokens,
        )


class LoggingConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    level: str = "INFO"
    service: str = "edurpg"
    environment: Optional[str] = None
    system_log_path: str = "logs/system_log.jsonl"
    error_log_path: str = "logs/errors.jsonl"
    include_tracebacks: bool = False


class RateLimitRule(BaseModel):
    model_config = ConfigDict(extra="forbid")
    window_seconds: float = Field(default=60.0, gt=0)
    max_attempts: int = Field(default=100, ge=1, le=1_000_000)
    block_seconds: float = Field(default=0.0, ge=0)


class RateLimitsConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = True
    login: RateLimitRule = Field(default_factory=lambda: RateLimitRule(window_seconds=15 * 60, max_attempts=5, block_seconds=30 * 60))
    api: RateLimitRule = Field(default_factory=lambda: RateLimitRule(window_seconds=60, max_attempts=100, block_seconds=5 * 60))
    sensitive: RateLimitRule = Field(default_factory=lambda: RateLimitRule(window_seconds=60, max_attempts=10, block_seconds=10 * 60))


class AppConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    redaction: RedactionConfigFile = Field(default_factory=RedactionConfigFile)
    logging: LoggingConfigFile = Field(default_factory=LoggingConfigFile)
    rate_limits: RateLimitsConfigFile = Field(default_factory=RateLimitsConfigFile)
