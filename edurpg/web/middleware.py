from __future__ import annotations

import time
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from edurpg.core.error_reporter import ErrorReporter
from edurpg.core.limits.rate_limit import RateLimitService
from edurpg.core.log_service import LogContext, Logger
from edurpg.core.trace import request_context, validate_request_id


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or "unknown"
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return getattr(getattr(request, "client", None), "host", None) or "unknown"


class RequestLoggingMiddleware:
    """
    Request logging chain (order matters):
    1) request id (client value kept only if it is a UUID)
    2) optional per-client rate limit
    3) request / response logging, path only (no query string, no body)
    4) unhandled exceptions logged by type, reported, then re-raised
    """

    def __init__(
        self,
        *,
        logger: Logger,
        rate_limiter: Optional[RateLimitService] = None,
        error_reporter: Optional[ErrorReporter] = None,
    ):
        self.logger = logger
        self.rate_limiter = rate_limiter
        self.error_reporter = error_reporter

    async def __call__(self, request: Request, call_next):  # noqa: ANN001
        request_id = validate_request_id(request.headers.get("X-Request-Id"))
        request.state.request_id = request_id
        method = request.method
        path = request.url.path
        t0 = time.time()

        with request_context(request_id):
            if self.rate_limiter is not None:
                ip = _client_ip(request)
                rl = self.rate_limiter.check(f"api:{ip}")
                if not rl.allowed:
                    retry_after = rl.retry_after_seconds(self.rate_limiter.now())
                    self.logger.log_security_event(
                        "rate_limited",
                        LogContext(request_id=request_id, metadata={"path": path, "blocked": rl.blocked}),
                    )
                    return JSONResponse(
                        status_code=429,
                        content={
                            "error": "Rate limit exceeded",
                            "message": "Too many attempts. Please try again later." if rl.blocked else "Too many requests. Please slow down.",
                            "retry_after": retry_after,
                            "blocked": rl.blocked,
                        },
                        headers={
                            "Retry-After": str(retry_after),
                            "X-RateLimit-Limit": str(self.rate_limiter.rule.max_attempts),
                            "X-RateLimit-Remaining": str(rl.remaining),
                            "X-RateLimit-Reset": str(int(rl.reset_at)),
                            "X-Request-Id": request_id,
                        },
                    )

            self.logger.log_api_request(method, path, LogContext(request_id=request_id))
            try:
                resp = await call_next(request)
            except Exception as e:
                self.logger.error(
                    f"API Exception: {method} {path}",
                    LogContext(request_id=request_id, tags=["api", "exception"], metadata={"error_type": type(e).__name__}),
                )
                if self.error_reporter is not None:
                    self.error_reporter.report_exception(e, request_id=request_id, subsystem="web", context={"method": method, "path": path})
                raise
            self.logger.log_api_response(
                method,
                path,
                resp.status_code,
                LogContext(request_id=request_id, metadata={"duration_ms": round((time.time() - t0) * 1000.0, 2)}),
            )
            resp.headers["X-Request-Id"] = request_id
            return resp
