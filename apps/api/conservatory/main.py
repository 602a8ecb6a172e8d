"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from conservatory.core.config import settings
from conservatory.core.errors import AppError
from conservatory.core.logging import configure_logging
from conservatory.api.routes import router as api_router
from conservatory.api.middleware import LoggingMiddleware, RequestContextMiddleware
from conservatory.models.database import async_session_factory, close_db, init_db
from conservatory.services.audit import audit_service
from conservatory.services.roles import RoleService
from conservatory.services.system import SystemService

logger = structlog.get_logger()


async def bootstrap_rbac() -> None:
    """Sync the permission catalog and create missing default roles."""
    async with async_session_factory() as session:
        await SystemService(session, audit_service).sync_permissions()
        await RoleService(session, audit_service).ensure_default_roles()
        await session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    await init_db()
    if settings.auth.bootstrap_rbac:
        await bootstrap_rbac()
    logger.info("Application started", environment=settings.environment)

    yield

    # Shutdown
    await audit_service.drain()
    await close_db()
    logger.info("Application stopped", audit_failures=audit_service.failures.total)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error into the {success: false, message, ...} envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_dict()),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Validation failed",
                "errors": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.exception("Unhandled error", path=request.url.path)
        content = {"success": False, "message": "Internal server error"}
        if settings.debug:
            content["error"] = str(exc)
        return JSONResponse(status_code=500, content=content)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware (order matters - last added is outermost)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(api_router, prefix="/api")

    register_exception_handlers(app)

    @app.get("/health")
    async def health_check():
        """Quick health check endpoint (for load balancers)."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "conservatory.main:app",
        host=settings.host,
        port=settings.port,
    )
