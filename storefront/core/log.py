"""Logging setup and the request timing middleware."""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("storefront.api")


# PUBLIC_INTERFACE
def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


# PUBLIC_INTERFACE
def add_timing_middleware(app: FastAPI) -> None:
    """Log `<METHOD> <path> took <n>ms` for every `/api` request; health probes stay quiet."""

    @app.middleware("http")
    async def _timing(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        if request.url.path.startswith("/api"):
            logger.info("%s %s took %dms", request.method, request.url.path, elapsed_ms)
        return response
