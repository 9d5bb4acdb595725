"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from festauth import __version__
from festauth.api.routers import auth as auth_router
from festauth.api.routers import password_reset as password_reset_router
from festauth.api.routers import users as users_router
from festauth.core.config import get_settings
from festauth.core.database import close_engine, get_engine, get_session_factory
from festauth.core.limiter import limiter
from festauth.core.logging import configure_logging, get_logger
from festauth.services.credentials import UserRepository
from festauth.services.users import bootstrap_admin

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    configure_logging()
    settings = get_settings()
    logger.info("Starting festauth", environment=settings.environment, debug=settings.app_debug)

    # Warm up DB connection pool
    get_engine()

    factory = get_session_factory()
    async with factory() as session:
        await bootstrap_admin(UserRepository(session), settings)
        await session.commit()

    yield

    await close_engine()
    logger.info("festauth stopped")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="festauth",
        description="Session and identity management for the festival companion app",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Cookies need credentials, so origins must be explicit
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_prefix = "/api/v1"
    app.include_router(auth_router.router, prefix=api_prefix)
    app.include_router(password_reset_router.router, prefix=api_prefix)
    app.include_router(users_router.router, prefix=api_prefix)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
