from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from edurpg.core.error_reporter import ErrorReporter
from edurpg.core.limits.rate_limit import RateLimitService
from edurpg.core.log_service import Logger
from edurpg.core.system_log import LogType, SystemLogStore
from edurpg.web.middleware import RequestLoggingMiddleware


class EventIn(BaseModel):
    model_config = ConfigDict(extra="forbid")
    type: LogType
    actor_id: Optional[str] = Field(default=None, max_length=64)
    target_id: Optional[str] = Field(default=None, max_length=64)
    payload: Any = None


def create_app(
    *,
    logger: Logger,
    store: SystemLogStore,
    rate_limiter: Optional[RateLimitService] = None,
    error_reporter: Optional[ErrorReporter] = None,
) -> FastAPI:
    app = FastAPI(title="edurpg-logging", version="0.1.0")
    app.middleware("http")(RequestLoggingMiddleware(logger=logger, rate_limiter=rate_limiter, error_reporter=error_reporter))

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/v1/events", status_code=201)
    def record_event(body: EventIn, request: Request):
        request_id = getattr(request.state, "request_id", None)
        try:
            rec = store.log_event(body.type, body.actor_id, body.target_id, body.payload, request_id=request_id)
        except OSError:
            raise HTTPException(status_code=503, detail="Log store unavailable.")
        return {"ok": True, "request_id": request_id, "type": rec["type"]}

    return app
