"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Initialize FastAPI application with metadata (title, version)
  - Configure middleware (request context)
  - Mount routers under the /v1 prefix
  - Expose a health check

Collaborators:
  - api.routers: signup, token, users, accounts, user_accounts, projects
  - api.middleware.RequestContextMiddleware
  - api.exception_handlers
  - container: key store / pool wiring

Notes:
  - Settings are validated at startup (lifespan), not at import time
  - The key store is built at startup so a missing or unreadable key fails
    the process instead of the first login
  - The test env runs on in-memory stores and never opens a pool
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .. import __version__
from ..container import get_key_store
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..infrastructure.db.pool import close_pool, init_pool
from .exception_handlers import register_exception_handlers
from .middleware import RequestContextMiddleware
from .routers import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle. Validates settings, pool and signing keys."""
    settings = get_settings()

    if not settings.is_test:
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )

    key_store = get_key_store()
    logger.info(
        "SaaS Starter API starting up",
        extra={
            "app_env": settings.app_env,
            "kid": key_store.current().kid,
            "session_ttl_minutes": settings.session_ttl_minutes,
            "db_pool_min": settings.db_pool_min_size,
            "db_pool_max": settings.db_pool_max_size,
        },
    )
    yield

    if not settings.is_test:
        close_pool()
    logger.info("SaaS Starter API shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title="SaaS Starter API",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "auth", "description": "Signup, tokens, account switch"},
            {"name": "users", "description": "Users (scoped by membership)"},
            {"name": "accounts", "description": "Accounts (tenants)"},
            {"name": "user_accounts", "description": "Memberships"},
            {"name": "projects", "description": "Account-scoped projects"},
        ],
    )
    app.add_middleware(RequestContextMiddleware)
    app.include_router(router, prefix="/v1")
    register_exception_handlers(app)

    @app.get("/v1/health")
    def health():
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
