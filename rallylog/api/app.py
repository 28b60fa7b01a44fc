"""
RallyLog API — FastAPI application factory.
REST surface for recording matches point by point and reading statistics.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from rallylog.config import settings
from rallylog.exceptions import RallyLogError
from rallylog.logging_config import configure_logging
from rallylog.api.middleware import RequestLoggingMiddleware
from rallylog.api.routes_matches import router as matches_router
from rallylog.api.routes_stats import router as stats_router
from rallylog.api.routes_players import router as players_router
from rallylog.api.routes_data import router as data_router

logger = logging.getLogger("rallylog.api")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()
    app = FastAPI(
        title="RallyLog API",
        description="Point-by-point tennis match recording, scoreboards and statistics.",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ── Middleware ──────────────────────────────────────
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Errors ──────────────────────────────────────────
    @app.exception_handler(RallyLogError)
    async def rallylog_error_handler(request: Request, exc: RallyLogError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError):
        errors = [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
        return JSONResponse(status_code=422, content={"detail": errors, "code": "invalid_settings"})

    # ── Routes ──────────────────────────────────────────
    prefix = settings.API_PREFIX
    app.include_router(matches_router, prefix=f"{prefix}/matches", tags=["Matches"])
    app.include_router(stats_router, prefix=f"{prefix}/stats", tags=["Stats"])
    app.include_router(players_router, prefix=f"{prefix}/players", tags=["Players"])
    app.include_router(data_router, prefix=f"{prefix}/data", tags=["Data"])

    # ── Health check ────────────────────────────────────
    @app.get("/health", tags=["System"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT.value,
        }

    return app


# Module-level app instance for `uvicorn rallylog.api.app:app`
app = create_app()
