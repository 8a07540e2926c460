from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from typing import Optional

import uvicorn
from fastapi import FastAPI

from edurpg.core.config import AppConfigFile, load_app_config
from edurpg.core.error_reporter import ErrorReporter, ErrorReporterConfig
from edurpg.core.limits.rate_limit import RateLimitService, RateLimitStore
from edurpg.core.log_service import Logger
from edurpg.core.logger import setup_logging
from edurpg.core.system_log import SystemLogStore
from edurpg.web.api import create_app


@dataclass
class Services:
    store: SystemLogStore
    error_reporter: ErrorReporter
    logger: Logger
    rate_limiter: Optional[RateLimitService]

    def app(self) -> FastAPI:
        return create_app(logger=self.logger, store=self.store, rate_limiter=self.rate_limiter, error_reporter=self.error_reporter)


def build_services(config: AppConfigFile) -> Services:
    opts = config.redaction.to_options()
    lc = config.logging
    store = SystemLogStore(path=lc.system_log_path, options=opts)
    reporter = ErrorReporter(path=lc.error_log_path, cfg=ErrorReporterConfig(include_tracebacks=lc.include_tracebacks))
    logger = Logger(lc.service, environment=lc.environment, store=store, options=opts)
    limiter = None
    if config.rate_limits.enabled:
        limiter = RateLimitService(config.rate_limits.api, RateLimitStore())
    return Services(store=store, error_reporter=reporter, logger=logger, rate_limiter=limiter)


def main() -> None:
    ap = argparse.ArgumentParser(description="EduRPG log service (redacted system log API)")
    ap.add_argument("--config", default=os.path.join("config", "edurpg.json"), help="Path to the JSON config file.")
    ap.add_argument("--host", default="127.0.0.1", help="Bind host.")
    ap.add_argument("--port", type=int, default=8000, help="Bind port.")
    args = ap.parse_args()

    loaded = load_app_config(args.config)
    cfg = loaded.config
    py_logger = setup_logging(cfg.logging.log_dir, cfg.logging.level)
    if loaded.error:
        py_logger.warning(f"Config {args.config} not used ({loaded.error}); running with defaults.")

    services = build_services(cfg)
    services.logger.info(f"Starting log service on http://{args.host}:{args.port}")
    uvicorn.run(services.app(), host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
