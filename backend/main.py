# main.py

from __future__ import annotations

import json
import logging
import secrets
import time
from typing import Any, Optional

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import Settings, get_settings
from backend.errors import ScanError
from backend.text_scanner import TextScanner

logger = logging.getLogger("scamcheck")


def _parse_body(raw: bytes) -> Any:
    """Lenient JSON parse: anything unreadable becomes None and fails validation as missing text."""
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


def create_app(settings: Optional[Settings] = None, scanner: Optional[TextScanner] = None) -> FastAPI:
    settings = settings or get_settings()
    scanner = scanner or TextScanner(settings)

    logging.basicConfig(level=settings.log_level, format="%(message)s")

    # Init Sentry if configured
    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn, traces_sample_rate=0.2)

    app = FastAPI(title="Scam Check API")
    app.state.settings = settings
    app.state.scanner = scanner

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Every pipeline failure already knows its status and body
    @app.exception_handler(ScanError)
    async def scan_error_handler(request: Request, exc: ScanError):
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    # Return JSON for unexpected errors to avoid empty/HTML responses
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(json.dumps({"event": "error", "path": request.url.path, "error": str(exc)}))
        return JSONResponse({"error": "Internal server error."}, status_code=500)

    # Request id + access log + security headers
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        request_id = secrets.token_hex(8)
        request.state.request_id = request_id
        start_time = time.time()
        response = await call_next(request)
        duration = round((time.time() - start_time) * 1000, 2)
        logger.info(
            json.dumps(
                {
                    "event": "request",
                    "request_id": request_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status": response.status_code,
                    "duration_ms": duration,
                }
            )
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "no-referrer"
        return response

    @app.get("/health")
    def health():
        return {"status": "ok", "model": settings.openai_model, "configured": settings.configured}

    @app.post("/api/analyze")
    async def analyze(request: Request):
        payload = _parse_body(await request.body())
        content_type = request.headers.get("content-type")
        result = await run_in_threadpool(scanner.analyze, payload, content_type)
        return JSONResponse(result.model_dump(), status_code=200)

    return app


app = create_app()
