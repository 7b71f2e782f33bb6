"""
WeddingShare API Server

Entry point for the FastAPI application.
"""

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import init_db, ping_db
from app.core.errors import register_exception_handlers
from app.core.identity import IdentityGateway, create_identity_gateway
from app.core.logconfig import configure_logging
from app.core.mailer import Mailer
from app.core.media import MediaGateway
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from app.core.tenancy import TenantResolverMiddleware
from app.api.tenant import router as tenant_router
from app.api.v1 import router as api_v1_router
from app.api.v1.auth import router as auth_router

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="WeddingShare",
        description="Multi-tenant wedding photo sharing.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Gateways are replaced on startup; until then every call fails as "not configured".
    app.state.identity = IdentityGateway(None)
    app.state.media = MediaGateway.from_settings(settings)
    app.state.mailer = None

    # Middleware (order matters — outermost last)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware, enabled=settings.csrf_enabled)
    app.add_middleware(TenantResolverMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )

    register_exception_handlers(app)

    # Auth routes (not versioned)
    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    # Wedding subdomain pages
    app.include_router(tenant_router, prefix="/subdomain", tags=["Tenant"])

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        await ping_db()
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        configure_logging(settings.log_level, "console" if settings.debug else "json")
        app.state.identity = await create_identity_gateway(settings)
        app.state.mailer = Mailer.from_settings(settings)
        if settings.auto_create_tables:
            await init_db()
        log.info(
            "WeddingShare starting",
            identity_provider=app.state.identity.configured,
            media_storage=app.state.media.configured,
        )

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("WeddingShare shutting down")
        if app.state.mailer is not None:
            await app.state.mailer.aclose()
        await app.state.identity.aclose()

    return app


app = create_app()


def serve() -> None:
    """Run the API under uvicorn on the configured host and port."""
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, reload=settings.debug)


if __name__ == "__main__":
    serve()
