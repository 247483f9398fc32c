# backend/tutor_scheduling/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import is_running_tests, settings
from .core.exceptions import DomainException
from .database import init_db
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import availability as availability_v1, bookings as bookings_v1
from .services.audit_service import SlotAuditRecorder

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

API_TITLE = "Tutor Scheduling API"


def create_app(
    *,
    audit_recorder: Optional[SlotAuditRecorder] = None,
    init_schema: bool = True,
) -> FastAPI:
    """
    Build the API application.

    Args:
        audit_recorder: Listener that persists slot changes (defaults to one
            writing through the global session factory)
        init_schema: Create missing tables on startup
    """

    @asynccontextmanager
    async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Handle application startup/shutdown without deprecated events."""
        logger.info(f"{API_TITLE} starting up (environment: {settings.environment})")
        if is_running_tests():
            logger.info("Running under pytest (test mode active)")
        if init_schema:
            init_db()
        recorder: SlotAuditRecorder = app.state.audit_recorder
        recorder.install()
        try:
            yield
        finally:
            recorder.uninstall()
            logger.info(f"{API_TITLE} shutting down")

    app = FastAPI(
        title=API_TITLE,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
    )
    app.state.audit_recorder = audit_recorder or SlotAuditRecorder()

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        http_exc = exc.to_http_exception()
        return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(availability_v1.router, prefix="/tutors")
    api_v1.include_router(bookings_v1.router, prefix="/bookings")
    app.include_router(api_v1)

    @app.get("/health", include_in_schema=False)
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(
            content=prometheus_metrics.get_metrics(),
            media_type=prometheus_metrics.get_content_type(),
        )

    return app


app = create_app()
