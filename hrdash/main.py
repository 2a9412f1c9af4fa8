"""HR Dashboard — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrdash.auth.router import router as auth_router
from hrdash.cache.query_cache import QueryCache
from hrdash.common.exceptions import register_exception_handlers
from hrdash.common.rate_limit import limiter
from hrdash.config import settings
from hrdash.dashboard.router import router as dashboard_router
from hrdash.database import async_session_factory
from hrdash.export.router import router as export_router
from hrdash.leave.router import router as leave_router
from hrdash.notifications.router import router as notifications_router
from hrdash.profiles.router import router as profiles_router
from hrdash.session.registry import SessionRegistry
from hrdash.session.router import router as session_router
from hrdash.store.service import RemoteStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("hr dashboard starting (%s)", settings.ENVIRONMENT)
    yield
    app.state.query_cache.clear()
    logger.info("hr dashboard stopped")


def create_app(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="HR Dashboard",
        description="Profiles, leave requests, notifications and exports for the HR dashboard",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Process-wide data layer: one store, one cache, one session registry
    app.state.store = RemoteStore(session_factory or async_session_factory)
    app.state.query_cache = QueryCache()
    app.state.sessions = SessionRegistry()

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(session_router, prefix="/api/v1/session", tags=["session"])
    app.include_router(profiles_router, prefix="/api/v1/profiles", tags=["profiles"])
    app.include_router(leave_router, prefix="/api/v1/leave-requests", tags=["leave"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])
    app.include_router(dashboard_router, prefix="/api/v1/dashboard", tags=["dashboard"])
    app.include_router(export_router, prefix="/api/v1/export", tags=["export"])

    return app


app = create_app()
