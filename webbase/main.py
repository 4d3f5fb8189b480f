"""
FastAPI application factory and entry point.

create_app() builds and configures the application:
  1. Lifespan manager — table creation, default seed data, expired-session
     cleanup on startup; engine disposal on shutdown
  2. Session binder — constructed here and stored on app.state, handed to
     handlers through the get_session_binder dependency
  3. CORS middleware
  4. Exception handlers — maps domain errors to HTTP responses
  5. Routers and static files

Running locally:
    uvicorn webbase.main:app --reload
or
    python -m webbase
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from webbase.config import settings
from webbase.database import AsyncSessionLocal, create_tables, engine
from webbase.exceptions import register_exception_handlers
from webbase.logging import setup_logging
from webbase.routers import api, pages
from webbase.services import catalog_service
from webbase.services.session_service import SessionBinder
from webbase.templating import STATIC_DIR

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Creates all tables if they don't exist, seeds the default catalog,
      and reaps sessions that expired while the server was down.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    await create_tables(engine)
    async with AsyncSessionLocal() as db:
        if settings.SEED_DEFAULTS:
            await catalog_service.seed_defaults(db)
        await app.state.session_binder.reap_expired(db)
        await db.commit()
    logger.info("startup_complete", port=settings.PORT, database=engine.url.render_as_string())
    yield
    # --- Shutdown ---
    await engine.dispose()


def create_app() -> FastAPI:
    setup_logging(settings.DEBUG)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Server-rendered web application template with session-backed authentication",
        lifespan=lifespan,
    )

    app.state.session_binder = SessionBinder(inactivity=settings.session_inactivity)

    # ---------------------------------------------------------------------------
    # Middleware
    # ---------------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------------------------------------------------------
    # Exception handlers
    # ---------------------------------------------------------------------------

    register_exception_handlers(app)

    # ---------------------------------------------------------------------------
    # Routes
    # ---------------------------------------------------------------------------

    app.include_router(pages.router, tags=["Pages"])
    app.include_router(api.router)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    return app


app = create_app()
